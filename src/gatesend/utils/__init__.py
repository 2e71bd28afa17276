"""Utility modules for gatesend."""

from gatesend.utils.units import (
    format_units,
    is_valid_address,
    limit_decimals,
    parse_units,
    to_checksum,
)

__all__ = [
    "format_units",
    "is_valid_address",
    "limit_decimals",
    "parse_units",
    "to_checksum",
]
