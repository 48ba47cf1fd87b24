"""Wire framing for the VNDB TCP API.

Every message, in either direction, looks like::

    <keyword>[ <json>]<0x04>

There is no length prefix; the end-of-transmission byte delimits frames on
the stream.  JSON escapes every control character, so the terminator can
never occur inside a payload.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from vndb.core.exceptions import DecodeError

TERMINATOR = b"\x04"

_ENCODING = "utf-8"


def _has_payload(args: Any) -> bool:
    if args is None:
        return False
    if isinstance(args, (dict, list, tuple)):
        return bool(args)
    return True


def encode(command: str, args: Any = None) -> bytes:
    """Frame *command* and its optional JSON *args* for the wire."""
    data = command.encode(_ENCODING)
    if _has_payload(args):
        data += b" " + json.dumps(args, separators=(",", ":")).encode(_ENCODING)
    return data + TERMINATOR


def decode(data: bytes) -> tuple[str, Any]:
    """Split a frame into ``(keyword, payload)``.

    Only the first space separates the keyword; the payload may contain
    spaces of its own.  A frame without a payload decodes to ``{}``.
    """
    if data.endswith(TERMINATOR):
        data = data[: -len(TERMINATOR)]
    try:
        text = data.decode(_ENCODING)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Frame is not valid UTF-8: {exc}") from exc

    keyword, sep, rest = text.partition(" ")
    if not sep:
        return keyword, {}
    try:
        payload = json.loads(rest)
    except ValueError as exc:
        raise DecodeError(f"Malformed payload for '{keyword}': {exc}") from exc
    return keyword, payload


class FrameBuffer:
    """Reassembles complete frames from arbitrary stream chunks."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self._scanned = 0

    def __len__(self) -> int:
        return len(self._buf)

    def feed(self, chunk: bytes) -> None:
        """Append a chunk received from the stream."""
        self._buf += chunk

    def next_frame(self) -> Optional[bytes]:
        """Pop a single complete frame, or ``None`` if none is buffered."""
        end = self._buf.find(TERMINATOR, self._scanned)
        if end < 0:
            self._scanned = len(self._buf)
            return None
        frame = bytes(self._buf[: end + 1])
        del self._buf[: end + 1]
        self._scanned = 0
        return frame

