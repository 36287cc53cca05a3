"""Barcode Format — token formatting and dual-format code classification.

Invariants:
    - format_token is PURE: counter value in, fixed-width token out
    - A token is <prefix><digits> with exactly `width` zero-padded digits
    - is_valid_ean13 is the single checksum used by classification and ISBN validation
    - classify never raises: unknown input is CodeKind.INVALID
    - Only ASCII 0-9 count as digits; other Unicode digits make a code invalid

Design Decisions:
    - BarcodeFormat as frozen dataclass: prefix/width come from settings but the
      functions stay pure and testable without config
"""

import re
from dataclasses import dataclass

from bibli.core.domain_types import CodeKind

_EAN13_DIGITS = re.compile(r"[0-9]{13}")


@dataclass(frozen=True)
class BarcodeFormat:
    """Fixed prefix + zero-padded digits."""
    prefix: str = "VOL"
    width: int = 8

    @property
    def max_value(self) -> int:
        return 10 ** self.width - 1

    @property
    def pattern(self) -> re.Pattern:
        return re.compile(rf"^{re.escape(self.prefix)}[0-9]{{{self.width}}}$")


def fits(value: int, fmt: BarcodeFormat) -> bool:
    """True if the counter value can be rendered without overflowing the width."""
    return 0 < value <= fmt.max_value


def format_token(value: int, fmt: BarcodeFormat) -> str:
    """Render a counter value. Caller checks fits() first."""
    return f"{fmt.prefix}{value:0{fmt.width}d}"


def normalize_isbn(raw: str) -> str:
    """Strip hyphens and whitespace from a scanned or typed ISBN."""
    return re.sub(r"[\s-]", "", raw)


def is_valid_ean13(digits: str) -> bool:
    """EAN-13 weighted checksum: alternating x1/x3 weights, sum mod 10 == 0."""
    if not _EAN13_DIGITS.fullmatch(digits):
        return False
    total = sum(
        int(d) * (3 if i % 2 else 1) for i, d in enumerate(digits)
    )
    return total % 10 == 0


def classify(raw: str, fmt: BarcodeFormat) -> CodeKind:
    """Classify a scanned code as an internal volume code, an ISBN, or neither."""
    value = raw.strip()
    if fmt.pattern.match(value):
        return CodeKind.VOLUME_CODE
    if is_valid_ean13(normalize_isbn(value)):
        return CodeKind.ISBN_CODE
    return CodeKind.INVALID
