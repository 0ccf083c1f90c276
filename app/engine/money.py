"""
Currency rounding shared by validation and the payment backends.

An amount is rounded once, to the currency's minor unit, before it is
stored; the backends then send exactly the stored value.
"""
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
WHOLE_UNITS = Decimal("1")

# Currencies Stripe and PayPal express without a minor unit.
ZERO_DECIMAL_CURRENCIES = frozenset({"BIF", "CLP", "JPY", "KRW", "PYG", "VND", "XAF", "XOF"})


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    """
    Round an amount half-up to the currency's minor unit.

    Example:
        quantize_amount(Decimal("10.005"), "USD") -> Decimal("10.01")
        quantize_amount(Decimal("1500.4"), "JPY") -> Decimal("1500")
    """
    step = WHOLE_UNITS if currency.upper() in ZERO_DECIMAL_CURRENCIES else CENTS
    return amount.quantize(step, rounding=ROUND_HALF_UP)
