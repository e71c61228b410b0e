"""Centralized game settings for Okey rooms."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from okey.logic.enums import DeckExhaustionPolicy

NUM_PLAYERS = 4


class GameSettings(BaseModel):
    """
    Configuration for room capacity, draw pile handling and bot pacing.

    All fields have defaults matching the standard four-seat table.
    """

    model_config = ConfigDict(frozen=True)

    # --- Table ---
    max_players: int = Field(default=NUM_PLAYERS, ge=1, le=NUM_PLAYERS)
    min_players: int = Field(default=2, ge=1, le=NUM_PLAYERS)

    # --- Draw pile ---
    deck_exhaustion: DeckExhaustionPolicy = DeckExhaustionPolicy.RESHUFFLE

    # --- Bots ---
    bot_draw_delay: float = Field(default=1.5, ge=0)
    bot_discard_delay: float = Field(default=1.0, ge=0)

    @model_validator(mode="after")
    def _check_player_range(self) -> GameSettings:
        if self.min_players > self.max_players:
            raise ValueError(f"min_players ({self.min_players}) exceeds max_players ({self.max_players})")
        return self
