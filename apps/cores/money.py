from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from apps.cores.exceptions import InvalidArgument

CENT = Decimal("0.01")


def to_amount(value, field="amount"):
    """
    Parse a client-supplied money value into a positive 2dp Decimal.
    """
    if value is None or value == "":
        raise InvalidArgument(f"{field} is required.")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{field} must be a number.")
    if not amount.is_finite() or amount <= 0:
        raise InvalidArgument(f"{field} must be a positive amount.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
