"""
Byte and code point formatting for the HUD.

Everything here is a pure rendering of values computed elsewhere:
- to_hex([0xE3, 0x81, 0x82])    -> "E3 81 82"
- to_binary([0x41])             -> "01000001"
- format_code_point("あ")        -> "U+3042"

The renderings never add or drop information, so splitting the output on
spaces and parsing each group gives back the original bytes.
"""

from __future__ import annotations

from typing import Iterable


def to_hex(data: Iterable[int]) -> str:
    return " ".join(f"{int(b):02X}" for b in data)


def to_binary(data: Iterable[int]) -> str:
    return " ".join(f"{int(b):08b}" for b in data)


def format_code_point(char: str) -> str:
    """
    Unicode scalar value of the first code point, e.g. "U+3042", "U+1F680".
    """
    if not char:
        return ""
    return f"U+{ord(char[0]):04X}"


def display_char(char: str) -> str:
    """
    Make a character visible in the HUD.

    Whitespace and control characters would render as nothing (or break the
    layout), so they get an escape instead.
    """
    if char == "\n":
        return "\\n"
    if char == "\t":
        return "\\t"
    if char == "\r":
        return "\\r"

    out = []
    for ch in char:
        cp = ord(ch)
        if cp < 0x20 or cp == 0x7F:
            out.append(f"\\x{cp:02x}")
        elif 0xD800 <= cp <= 0xDFFF:
            # Lone surrogates cannot be shown by any font.
            out.append(f"\\u{cp:04x}")
        else:
            out.append(ch)
    return "".join(out)
