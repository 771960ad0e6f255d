"""
Token unit conversion.

Amounts cross the ledger boundary as integers in the token's smallest unit.
Everything above the adapters works with Decimal human units.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from sequestre.domain.exceptions import ValidationError

NATIVE_DECIMALS = 18

AmountLike = Union[str, int, Decimal]


def parse_amount(value: AmountLike, field: str = "amount") -> Decimal:
    """
    Parse a human-unit amount into a finite, non-negative Decimal.

    Floats are refused so that binary rounding never leaks into hashes.

    Raises:
        ValidationError: If the value is not a finite, non-negative number
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(field, "must be a decimal string, int or Decimal")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(field, f"not a decimal number: {value!r}")

    if not amount.is_finite():
        raise ValidationError(field, "must be finite")
    if amount < 0:
        raise ValidationError(field, "must not be negative")

    return amount


def to_base_units(
    value: AmountLike,
    decimals: int = NATIVE_DECIMALS,
    field: str = "amount",
) -> int:
    """
    Scale a human-unit amount to the token's smallest unit.

    Integer arithmetic on the Decimal's digits, so no precision context
    can round large amounts.

    Raises:
        ValidationError: If the amount is invalid or has more fractional
            digits than the token supports
    """
    amount = parse_amount(value, field)
    _, digits, exponent = amount.as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")

    shift = exponent + decimals
    if shift >= 0:
        return coefficient * 10**shift

    scaled, remainder = divmod(coefficient, 10**-shift)
    if remainder:
        raise ValidationError(
            field, f"more than {decimals} fractional digits: {amount}"
        )
    return scaled


def normalize_decimal(value: Decimal) -> Decimal:
    """Strip trailing zeros without switching to exponent notation."""
    _, digits, exponent = value.as_tuple()
    with localcontext() as ctx:
        # Wide enough that normalize and quantize never round
        ctx.prec = len(digits) + max(exponent, 0) + 1
        normalized = value.normalize()
        if normalized.as_tuple().exponent > 0:
            return normalized.quantize(Decimal(1))
        return normalized


def from_base_units(raw: int, decimals: int = NATIVE_DECIMALS) -> Decimal:
    """Convert smallest-unit integer back to a human-unit Decimal."""
    # String construction is exact regardless of context precision
    return normalize_decimal(Decimal(f"{int(raw)}E-{decimals}"))


def format_amount(value: Decimal) -> str:
    """Plain decimal string (no exponent, no trailing zeros) for JSON output."""
    return format(normalize_decimal(value), "f")
