"""GS1 identifier engine for product variants.

Two responsibilities live here and nothing else:

1. Check-digit arithmetic: computing and verifying the mod-10 check digit that
   closes every GS1 identifier.
2. Payload formatting: laying out company prefix, location reference, and
   sequence number into the fixed-width payload of each supported
   :class:`~catalog_erp.constants.BarcodeFormat`.

Weights are applied from the leftmost payload digit (3, 1, 3, 1, ...). GS1
weights from the digit next to the check digit instead, so the two agree only
for odd-length payloads (GTIN-14, SSCC) and differ for the 12-digit GTIN-13
payload. Barcodes already issued depend on the left-anchored weights, so
generation and validation both keep them.

No function in this module touches storage or mutates its inputs; sequence
numbers arrive already allocated inside the :class:`GS1Configuration`.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Iterable

from . import log
from .constants import (
    COMPANY_PREFIX_WIDTH,
    GTIN_14_INDICATOR,
    LOCATION_REFERENCE_WIDTH,
    SEQUENCE_WIDTH,
    SSCC_EXTENSION,
    BarcodeFormat,
)


class IdentifierError(Exception):
    """Base class for barcode computation and formatting failures."""


class InvalidInputError(IdentifierError):
    """Raised when check-digit input contains anything but decimal digits."""


class MissingConfigurationError(IdentifierError):
    """Raised when a GS1 field required by the requested format is empty."""


class UnsupportedFormatError(IdentifierError):
    """Raised when the configured barcode format is not a known layout."""


@dataclass(frozen=True)
class GS1Configuration:
    """Settings that drive barcode generation.

    ``barcode_format`` holds the textual format name (``BarcodeFormat`` members
    are strings) so values read back from storage can be validated at
    generation time instead of at load time.
    """

    company_prefix: str = ""
    location_reference: str = ""
    sequence_counter: int = 0
    enable_auto_generation: bool = False
    barcode_format: str = BarcodeFormat.GTIN_13.value


def _require_digits(digits: str) -> None:
    if any(ch not in string.digits for ch in digits):
        log.error("Identifier input contains non-digit characters: %r", digits)
        raise InvalidInputError(f"Expected decimal digits only, got {digits!r}")


def _weights(length: int) -> Iterable[int]:
    return (3 if index % 2 == 0 else 1 for index in range(length))


def compute_check_digit(digits: str) -> int:
    """Compute the mod-10 check digit for a payload.

    Args:
        digits (str): Payload without its check digit.

    Returns:
        int: Check digit in ``0..9``.

    Raises:
        InvalidInputError: If ``digits`` contains a non-digit character.
    """

    _require_digits(digits)
    total = sum(int(digit) * weight for digit, weight in zip(digits, _weights(len(digits))))
    return (10 - (total % 10)) % 10


def validate_barcode(barcode: str) -> bool:
    """Return whether ``barcode`` ends in the check digit of its payload.

    Non-numeric input fails closed and returns ``False`` instead of raising.
    """

    if not barcode or any(ch not in string.digits for ch in barcode):
        return False
    payload, claimed = barcode[:-1], int(barcode[-1])
    return compute_check_digit(payload) == claimed


def format_sequence(sequence: int) -> str:
    """Render a sequence number as a zero-padded five digit string."""

    return str(sequence).zfill(SEQUENCE_WIDTH)


def build_payload(config: GS1Configuration) -> str:
    """Lay out the pre-check-digit payload for ``config.barcode_format``.

    Args:
        config (GS1Configuration): Configuration carrying the already
            allocated ``sequence_counter``.

    Returns:
        str: 12 digits for GTIN-13, 13 for GTIN-14, 15 for SSCC.

    Raises:
        UnsupportedFormatError: If the format is not one of the known layouts.
        MissingConfigurationError: If the company prefix is empty, or the
            location reference is empty for SSCC.
        InvalidInputError: If the prefix or location reference is not numeric.
    """

    try:
        barcode_format = BarcodeFormat(config.barcode_format)
    except ValueError as exc:
        log.error("Unsupported barcode format requested: %s", config.barcode_format)
        raise UnsupportedFormatError(f"Unsupported barcode format: {config.barcode_format}") from exc

    if not config.company_prefix:
        log.error("Barcode generation attempted without a company prefix")
        raise MissingConfigurationError(f"Company prefix is required for {barcode_format.value}")

    prefix = config.company_prefix.zfill(COMPANY_PREFIX_WIDTH)
    sequence = format_sequence(config.sequence_counter)

    if barcode_format is BarcodeFormat.GTIN_13:
        payload = f"{prefix}{sequence}"
    elif barcode_format is BarcodeFormat.GTIN_14:
        payload = f"{GTIN_14_INDICATOR}{prefix}{sequence}"
    else:
        if not config.location_reference:
            log.error("SSCC generation attempted without a location reference")
            raise MissingConfigurationError("Company prefix and location reference are required for SSCC")
        location = config.location_reference.zfill(LOCATION_REFERENCE_WIDTH)
        payload = f"{SSCC_EXTENSION}{prefix}{location}{sequence}"

    _require_digits(payload)
    return payload


def generate_barcode(config: GS1Configuration) -> str:
    """Build the full barcode (payload plus check digit) for ``config``.

    The configuration object is left untouched; persisting the advanced
    sequence counter is the allocator's job.
    """

    payload = build_payload(config)
    barcode = f"{payload}{compute_check_digit(payload)}"
    log.debug("Generated %s barcode %s", config.barcode_format, barcode)
    return barcode


__all__ = [
    "IdentifierError",
    "InvalidInputError",
    "MissingConfigurationError",
    "UnsupportedFormatError",
    "GS1Configuration",
    "compute_check_digit",
    "validate_barcode",
    "format_sequence",
    "build_payload",
    "generate_barcode",
]
