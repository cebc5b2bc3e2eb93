"""
Mojibake simulation: read bytes with the wrong decoder on purpose.

Two mismatch directions are shown side by side:
  - utf8_as_legacy: UTF-8 bytes opened as Shift-JIS  ("あ" -> "縺�")
  - legacy_as_utf8: Shift-JIS bytes opened as UTF-8  ("あ" -> "��")

Garbled output is the point, so decoding uses errors="replace" and nothing
is filtered. Missing codecs and decoder failures come back as states rather
than exceptions.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from encoders import SHIFT_JIS, LegacyCodec, encode_legacy, encode_universal


STATE_OK = "ok"
STATE_UNAVAILABLE = "unavailable"
STATE_ERROR = "error"


class EncodingKind(str, enum.Enum):
    UTF8 = "utf-8"
    LEGACY = "legacy"


@dataclass(frozen=True)
class Misread:
    text: str
    state: str = STATE_OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.state == STATE_OK

    def to_json(self) -> Dict[str, Any]:
        return {"text": self.text, "state": self.state, "message": self.message}


def _unavailable(message: str) -> Misread:
    return Misread(text="", state=STATE_UNAVAILABLE, message=message)


def simulate_misread(
    data: bytes,
    decode_as: EncodingKind,
    legacy: Optional[LegacyCodec] = SHIFT_JIS,
) -> Misread:
    if decode_as == EncodingKind.LEGACY and legacy is None:
        return _unavailable("Legacy codec is not available; simulation unavailable.")
    try:
        if decode_as == EncodingKind.UTF8:
            text = bytes(data).decode("utf-8", errors="replace")
        elif decode_as == EncodingKind.LEGACY:
            text = legacy.decode(data, errors="replace")
        else:
            return Misread(text="", state=STATE_ERROR, message=f"Unknown encoding kind: {decode_as!r}")
    except Exception as e:
        return Misread(text="", state=STATE_ERROR, message=f"Conversion error: {e}")
    return Misread(text=text)


def simulate_mojibake(text: str, legacy: Optional[LegacyCodec] = SHIFT_JIS) -> Dict[str, Misread]:
    utf8_bytes = encode_universal(text)
    legacy_bytes = encode_legacy(text, legacy)

    if legacy_bytes is None:
        legacy_as_utf8 = _unavailable("Legacy bytes could not be produced; simulation unavailable.")
    else:
        legacy_as_utf8 = simulate_misread(legacy_bytes, EncodingKind.UTF8, legacy)

    return {
        "utf8_as_legacy": simulate_misread(utf8_bytes, EncodingKind.LEGACY, legacy),
        "legacy_as_utf8": legacy_as_utf8,
    }
