"""
Character -> bytes adapters for the two encodings the lab compares.

UTF-8 ("universal"):
  - Every Unicode scalar value has a representation of 1-4 bytes.
  - ASCII stays 1 byte, kana/kanji take 3, most emoji take 4.

Shift-JIS ("legacy"):
  - A fixed, incomplete table. Kana and JIS X 0208 kanji take 2 bytes,
    ASCII takes 1, emoji and many symbols have no entry at all.
  - Unmappable characters come out as the substitute byte 0x3F ("?").
    That byte is indistinguishable from a real "?", so the only way to
    know whether the bytes are faithful is to decode them back and compare
    (the round-trip check).

The legacy codec is a capability: it is looked up once and passed around as
a LegacyCodec handle, or None when it is not available.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import Optional


DEFAULT_LEGACY_CODEC = "shift_jis"
SUBSTITUTE_ERRORS = "replace"

# Shift-JIS family only: single-byte ASCII range plus double-byte JIS rows.
LEGACY_CODEC_NAMES = ("shift_jis", "cp932", "shift_jis_2004", "shift_jisx0213")


@dataclass(frozen=True)
class LegacyCodec:
    name: str
    info: codecs.CodecInfo

    def encode(self, text: str) -> bytes:
        data, _ = self.info.encode(text, SUBSTITUTE_ERRORS)
        return bytes(data)

    def decode(self, data: bytes, errors: str = "strict") -> str:
        text, _ = self.info.decode(bytes(data), errors)
        return text


def load_legacy_codec(name: Optional[str] = DEFAULT_LEGACY_CODEC) -> Optional[LegacyCodec]:
    """
    Resolve a Shift-JIS family codec by name. Returns None if the name is
    empty, unknown to this interpreter, or not in LEGACY_CODEC_NAMES, so
    callers can treat "unavailable" as a normal value.
    """
    if not name:
        return None
    try:
        info = codecs.lookup(name)
    except LookupError:
        return None
    if info.name not in LEGACY_CODEC_NAMES:
        return None
    return LegacyCodec(name=info.name, info=info)


SHIFT_JIS = load_legacy_codec(DEFAULT_LEGACY_CODEC)


def encode_universal(char: str) -> bytes:
    # surrogatepass keeps lone surrogates (not scalar values) from raising.
    return char.encode("utf-8", errors="surrogatepass")


def encode_legacy(char: str, legacy: Optional[LegacyCodec] = SHIFT_JIS) -> Optional[bytes]:
    """
    Returns the legacy bytes for `char`, or None when the codec is unavailable
    or fails outright. Unmappable characters still produce (substitute) bytes.
    """
    if legacy is None:
        return None
    try:
        return legacy.encode(char)
    except Exception:
        return None


def is_legacy_round_trip_valid(
    char: str,
    data: Optional[bytes],
    legacy: Optional[LegacyCodec] = SHIFT_JIS,
) -> bool:
    """
    True iff decoding `data` through the legacy codec gives back `char` exactly.
    """
    if legacy is None or data is None:
        return False
    if not data:
        return char == ""
    try:
        return legacy.decode(data) == char
    except Exception:
        return False
