"""
Per-character encoding analysis.

analyze("Aあ🚀") yields one record per user-perceived character:

  char  code_point  utf8          legacy (Shift-JIS)
  A     U+0041      41            41      valid
  あ    U+3042      E3 81 82      82 A0   valid
  🚀    U+1F680     F0 9F 9A 80   3F      invalid (round-trip gives "?")

Records are rebuilt from scratch on every call; nothing is cached, and a
character the legacy codec cannot handle never stops the rest of the text
from being analyzed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import regex

from encoders import (
    SHIFT_JIS,
    LegacyCodec,
    encode_legacy,
    encode_universal,
    is_legacy_round_trip_valid,
)
from formatting import display_char, format_code_point, to_binary, to_hex


# Extended grapheme cluster (UAX #29): keeps emoji ZWJ sequences, flags and
# combining marks together.
GRAPHEME_PATTERN = regex.compile(r"\X")


@dataclass(frozen=True)
class ByteView:
    data: bytes = b""
    is_valid: bool = True

    @property
    def hex(self) -> str:
        return to_hex(self.data)

    @property
    def binary(self) -> str:
        return to_binary(self.data)

    @property
    def length(self) -> int:
        return len(self.data)

    def to_json(self) -> Dict[str, Any]:
        return {
            "bytes": list(self.data),
            "hex": self.hex,
            "binary": self.binary,
            "length": self.length,
            "isValid": self.is_valid,
        }


@dataclass(frozen=True)
class CharacterRecord:
    char: str
    utf8: ByteView
    legacy: ByteView
    code_point: str = ""
    code_points: Tuple[str, ...] = ()
    display: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "char": self.char,
            "display": self.display,
            "codePoint": self.code_point,
            "codePoints": list(self.code_points),
            "utf8": self.utf8.to_json(),
            "legacy": self.legacy.to_json(),
        }


@dataclass(frozen=True)
class Analysis:
    records: Tuple[CharacterRecord, ...]
    utf8_total: int
    legacy_total: int
    legacy_representable: bool

    def totals_json(self) -> Dict[str, Any]:
        return {
            "characters": len(self.records),
            "utf8Bytes": self.utf8_total,
            "legacyBytes": self.legacy_total,
            "legacyRepresentable": self.legacy_representable,
        }


def segment(text: str) -> List[str]:
    if not text:
        return []
    return GRAPHEME_PATTERN.findall(text)


def _legacy_view(char: str, legacy: Optional[LegacyCodec]) -> ByteView:
    data = encode_legacy(char, legacy)
    if data is None:
        return ByteView(data=b"", is_valid=False)
    return ByteView(data=data, is_valid=is_legacy_round_trip_valid(char, data, legacy))


def analyze_char(char: str, legacy: Optional[LegacyCodec] = SHIFT_JIS) -> CharacterRecord:
    return CharacterRecord(
        char=char,
        utf8=ByteView(data=encode_universal(char), is_valid=True),
        legacy=_legacy_view(char, legacy),
        code_point=format_code_point(char),
        code_points=tuple(format_code_point(ch) for ch in char),
        display=display_char(char),
    )


def analyze(text: str, legacy: Optional[LegacyCodec] = SHIFT_JIS) -> List[CharacterRecord]:
    return [analyze_char(char, legacy) for char in segment(text)]


def summarize(records: Iterable[CharacterRecord]) -> Analysis:
    """
    Aggregate a record list. legacy_total is only meaningful when
    legacy_representable is True (otherwise it counts substitute bytes).
    """
    records = tuple(records)
    return Analysis(
        records=records,
        utf8_total=sum(r.utf8.length for r in records),
        legacy_total=sum(r.legacy.length for r in records),
        legacy_representable=all(r.legacy.is_valid for r in records),
    )


def analyze_text(text: str, legacy: Optional[LegacyCodec] = SHIFT_JIS) -> Analysis:
    return summarize(analyze(text, legacy))
