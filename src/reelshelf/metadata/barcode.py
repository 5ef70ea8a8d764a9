"""Barcode parsing for scanned disc packaging."""

import re
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class InvalidBarcodeError(ValueError):
    """A scanned code failed its checksum or is empty."""

    pass


class Symbology(str, Enum):
    """Retail symbologies recognised by check digit."""

    EAN_8 = "ean8"
    EAN_13 = "ean13"
    UPC_A = "upca"
    UPC_E = "upce"
    OTHER = "other"  # QR, Code 128/39/93, PDF417: kept verbatim


class BarcodeScan(BaseModel):
    """A scanned code, ready to be turned into a placeholder record."""

    code: str = Field(..., description="Code as scanned, whitespace removed")
    symbology: Symbology = Field(default=Symbology.OTHER)

    @property
    def gtin13(self) -> Optional[str]:
        """EAN-13 form of retail codes, for comparing UPC and EAN scans."""
        if self.symbology == Symbology.EAN_13:
            return self.code
        if self.symbology == Symbology.UPC_A:
            return "0" + self.code
        if self.symbology == Symbology.UPC_E:
            return "0" + expand_upc_e(self.code)
        return None

    @classmethod
    def parse(cls, raw: str) -> "BarcodeScan":
        return parse_barcode(raw)


def _check_digit_ok(digits: str) -> bool:
    """Validate a GTIN check digit (weights 3,1,3,... from the right)."""
    body, check = digits[:-1], int(digits[-1])
    total = sum(int(d) * (3 if i % 2 == 0 else 1) for i, d in enumerate(reversed(body)))
    return (10 - total % 10) % 10 == check


def expand_upc_e(code: str) -> str:
    """Expand an 8-digit UPC-E code to its 12-digit UPC-A form."""
    system, data, check = code[0], code[1:7], code[7]
    d1, d2, d3, d4, d5, d6 = data

    if d6 in "012":
        middle = f"{d1}{d2}{d6}0000{d3}{d4}{d5}"
    elif d6 == "3":
        middle = f"{d1}{d2}{d3}00000{d4}{d5}"
    elif d6 == "4":
        middle = f"{d1}{d2}{d3}{d4}00000{d5}"
    else:
        middle = f"{d1}{d2}{d3}{d4}{d5}0000{d6}"

    return f"{system}{middle}{check}"


def parse_barcode(raw: str) -> BarcodeScan:
    """Parse a scanned code.

    Numeric codes of retail length (8, 12 or 13 digits) must carry a valid
    check digit. An 8-digit code is tried as EAN-8 first, then as UPC-E.
    Anything else is kept as-is with symbology ``other``.

    Args:
        raw: Scanned text

    Returns:
        BarcodeScan

    Raises:
        InvalidBarcodeError: Empty input or a retail code with a bad check digit
    """
    code = re.sub(r"\s+", "", raw or "")
    if not code:
        raise InvalidBarcodeError("Barcode is empty")

    if not code.isdigit() or len(code) not in (8, 12, 13):
        logger.debug("Unrecognised barcode format, keeping verbatim", code=code)
        return BarcodeScan(code=code, symbology=Symbology.OTHER)

    if len(code) == 13:
        symbology = Symbology.EAN_13 if _check_digit_ok(code) else None
    elif len(code) == 12:
        symbology = Symbology.UPC_A if _check_digit_ok(code) else None
    elif _check_digit_ok(code):
        symbology = Symbology.EAN_8
    elif code[0] in "01" and _check_digit_ok(expand_upc_e(code)):
        symbology = Symbology.UPC_E
    else:
        symbology = None

    if symbology is None:
        logger.warning("Barcode failed check digit", code=code)
        raise InvalidBarcodeError(f"Invalid check digit in barcode {code}")

    logger.debug("Parsed barcode", code=code, symbology=symbology.value)
    return BarcodeScan(code=code, symbology=symbology)
