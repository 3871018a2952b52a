# src/domain/money.py

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY = "INR"

# Largest rupee amount the API accepts: 10 integer digits, 2 fraction digits.
MAX_AMOUNT_DIGITS = 12

_TWO_PLACES = Decimal("0.01")
_MAX_AMOUNT = Decimal(10) ** (MAX_AMOUNT_DIGITS - 2)


def to_paise(amount: Decimal | str | int) -> int:
    """Convert a rupee amount to integer paise, rejecting sub-paise precision."""
    try:
        value = Decimal(str(amount))
        if not value.is_finite() or abs(value) >= _MAX_AMOUNT:
            raise ValueError(f"Amount out of range: {amount!r}")
        if value != value.quantize(_TWO_PLACES):
            raise ValueError(f"Amount has more than 2 fraction digits: {amount!r}")
        return int(value * 100)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc


def from_paise(paise: int) -> Decimal:
    return (Decimal(paise) / 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def fare_for(fare_paise: int, seat_count: int) -> int:
    return fare_paise * seat_count
