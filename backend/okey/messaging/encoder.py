"""
MessagePack framing for the room wire protocol.

One WebSocket binary frame carries one MessagePack map. Outbound frames are
built from the pydantic message models; inbound frames are size-checked
here and validated against the client message union by the router.
"""

from typing import Any

import msgpack
from pydantic import BaseModel

# A full room snapshot (106 tiles across deck counts, hands and discard
# piles) stays far below these; client requests are a handful of fields.
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 4 * 1024
MAX_BIN_LEN = 4 * 1024
MAX_ARRAY_LEN = 512
MAX_MAP_LEN = 64
MAX_EXT_LEN = 256


class DecodeError(Exception):
    """Raised when an inbound frame is not a well-formed MessagePack map."""


def encode(message: BaseModel | dict[str, Any]) -> bytes:
    """Pack a message model (or an already dumped payload) into one frame."""
    payload = message.model_dump(mode="json") if isinstance(message, BaseModel) else message
    return msgpack.packb(payload, use_bin_type=True)


def decode(frame: bytes) -> dict[str, Any]:
    """
    Unpack one inbound frame.

    Raises DecodeError if the frame is oversized, malformed, exceeds a
    container limit or does not hold a map.
    """
    if len(frame) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(frame)} bytes (max {MAX_BUFFER_LEN})")
    try:
        payload = msgpack.unpackb(
            frame,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"expected map, got {type(payload).__name__}")
    return payload
