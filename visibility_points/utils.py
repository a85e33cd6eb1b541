"""Shared helpers for addresses and wei amounts"""
import re
from decimal import Decimal

from visibility_points.exceptions import InvalidAddressError

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
ETHER_DECIMALS = 18


def check_valid_address(address: str) -> str:
    """Validate an EVM address and return it lowercased"""
    if not isinstance(address, str) or not ADDRESS_RE.match(address.strip()):
        raise InvalidAddressError(f"Invalid address: {address}")
    return address.strip().lower()


def format_ether(wei: int) -> Decimal:
    """Convert a wei amount to an exact ETH decimal"""
    return Decimal(int(wei)).scaleb(-ETHER_DECIMALS)
