"""Okey server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from okey.logic.enums import DeckExhaustionPolicy
from okey.logic.settings import GameSettings
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class OkeyServerSettings(BaseSettings):
    model_config = {"env_prefix": "OKEY_"}

    max_rooms: int = Field(default=500, ge=1)
    log_dir: str = Field(default="backend/logs/okey", min_length=1)
    cors_origins: list[str] = ["http://localhost:5173"]

    # Room rules, passed to every room through GameSettings.
    min_players: int = Field(default=2, ge=1, le=4)
    deck_exhaustion: DeckExhaustionPolicy = DeckExhaustionPolicy.RESHUFFLE
    bot_draw_delay: float = Field(default=1.5, ge=0)
    bot_discard_delay: float = Field(default=1.0, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings

    def to_game_settings(self) -> GameSettings:
        return GameSettings(
            min_players=self.min_players,
            deck_exhaustion=self.deck_exhaustion,
            bot_draw_delay=self.bot_draw_delay,
            bot_discard_delay=self.bot_discard_delay,
        )
