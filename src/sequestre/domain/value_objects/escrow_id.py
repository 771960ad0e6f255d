"""
Escrow identifiers.

The ledger numbers escrows with uint256 counters. Callers may send the same
id with padding or leading zeros; every lookup uses the canonical decimal
form so "05" and "5" address the same mirror rows.
"""

from typing import Union

from sequestre.domain.exceptions import ValidationError

UINT256_LIMIT = 2**256


def parse_escrow_id(escrow_id: Union[str, int]) -> int:
    """
    Parse a decimal uint256 escrow id.

    Raises:
        ValidationError: If the id is not a non-negative integer
    """
    text = str(escrow_id).strip()
    if not (text.isascii() and text.isdigit()):
        raise ValidationError("escrow_id", f"not a decimal integer: {escrow_id!r}")
    value = int(text)
    if value >= UINT256_LIMIT:
        raise ValidationError("escrow_id", "exceeds uint256")
    return value


def canonical_escrow_id(escrow_id: Union[str, int]) -> str:
    """Canonical decimal form of an escrow id, e.g. " 007" -> "7"."""
    return str(parse_escrow_id(escrow_id))
