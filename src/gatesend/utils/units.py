"""Amount and address helpers.

Amounts are carried as integers in minor units (the token's smallest
denomination) and only converted to Decimal for display. Nothing here goes
through float.
"""

from decimal import Decimal, InvalidOperation

from web3 import Web3


def parse_decimal(value: str) -> Decimal:
    """Parse a user-entered decimal string.

    Raises:
        ValueError: If the value is empty, non-numeric or not finite
    """
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError("Amount is required")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def parse_units(value: str, decimals: int) -> int:
    """Convert a decimal string to integer minor units.

    Args:
        value: Human-readable amount, e.g. "10.5"
        decimals: Token decimals

    Returns:
        Amount in minor units

    Raises:
        ValueError: If the value is invalid or has more fractional digits
            than the token supports
    """
    amount = parse_decimal(value)
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Too many decimal places for a {decimals}-decimals token")
    return int(scaled)


def format_units(amount: int, decimals: int) -> Decimal:
    """Convert integer minor units to a Decimal amount."""
    return Decimal(amount) / Decimal(10**decimals)


def limit_decimals(value: str, dp: int) -> str:
    """Truncate a decimal string to at most ``dp`` fractional digits.

    Works on the string form so large balances never lose precision.
    """
    text = str(value)
    integer, _, fraction = text.partition(".")
    if dp <= 0:
        return integer
    if len(fraction) > dp:
        return f"{integer}.{fraction[:dp]}"
    return text


def is_valid_address(address: str) -> bool:
    """Check EVM address format (mixed-case input must carry a valid checksum)."""
    if not address or not isinstance(address, str):
        return False
    if not Web3.is_address(address):
        return False

    body = address[2:] if address[:2].lower() == "0x" else address
    if body != body.lower() and body != body.upper():
        return Web3.is_checksum_address(address)
    return True


def to_checksum(address: str) -> str:
    """Return the EIP-55 checksummed form of an address."""
    return Web3.to_checksum_address(address)
