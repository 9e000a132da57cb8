# storefront/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal

def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x or "0"))
    except InvalidOperation:
        return Decimal("NaN")

def round_money(x: Money) -> Money:
    x = D(x)
    if not x.is_finite():
        return x
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

def to_float(x) -> float:
    return float(round_money(x))
