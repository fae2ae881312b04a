# storefront/utils/formatters.py
from decimal import Decimal, ROUND_HALF_UP

from storefront.utils.settings import CURRENCY, MONEY_DECIMALS


def round_money(v, decimals: int = MONEY_DECIMALS) -> Decimal:
    """Zaokraglenie tylko do wyswietlania, nigdy nie zapisywane."""
    quant = Decimal(1).scaleb(-decimals)
    return Decimal(str(v)).quantize(quant, rounding=ROUND_HALF_UP)


def money(v, decimals: int = MONEY_DECIMALS) -> str:
    return f"{CURRENCY} {round_money(v, decimals)}"
