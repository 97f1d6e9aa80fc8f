from __future__ import annotations
import logging
from decimal import Decimal

from liquidaciones.errors import InvalidInputError
from liquidaciones.quoting.models import Promotion, QuoteInput, QuoteResult
from liquidaciones.utils.numbers import (
    HUNDRED, ONE, ZERO, floor_percent, safe_ratio, to_decimal,
)

logger = logging.getLogger(__name__)

AVISO_SIN_COMISION = "Sin comisión configurada para este broker y proyecto"


def total_promotions_against_discount(promotions: list[Promotion]) -> Decimal:
    return sum(
        (to_decimal(p.amount) for p in promotions if p.is_against_discount),
        ZERO,
    )


def _check_percent(name: str, value: Decimal) -> None:
    if value < 0 or value > HUNDRED:
        raise InvalidInputError(f"{name} must be between 0 and 100, got {value}")


def _validate(
    list_price: Decimal,
    discount: Decimal,
    rate: Decimal | None,
    fixed_discount: Decimal,
    bonus_pie: Decimal,
    secondary_prices: list[Decimal],
) -> None:
    if list_price < 0:
        raise InvalidInputError(f"list_price must be >= 0, got {list_price}")
    if discount < 0 or discount > ONE:
        raise InvalidInputError(
            f"available_discount_fraction must be between 0 and 1, got {discount}"
        )
    if rate is not None and rate < 0:
        raise InvalidInputError(f"commission_rate_fraction must be >= 0, got {rate}")
    _check_percent("fixed_discount_percent", fixed_discount)
    _check_percent("down_payment_bonus_percent", bonus_pie)
    for price in secondary_prices:
        if price < 0:
            raise InvalidInputError(f"secondary unit list_price must be >= 0, got {price}")


def quote(data: QuoteInput) -> QuoteResult:
    """Compute every figure of a pre-sale commission quote.

    Pure: no I/O, no hidden state. Identical inputs give identical results.
    Raises InvalidInputError before computing anything if an input is out of range.
    """
    list_price = to_decimal(data.list_price)
    discount = to_decimal(data.available_discount_fraction)
    configured = data.commission_rate_fraction is not None
    rate_in = to_decimal(data.commission_rate_fraction) if configured else None
    fixed_discount = to_decimal(data.fixed_discount_percent)
    bonus_pie = to_decimal(data.down_payment_bonus_percent)
    secondary_prices = [to_decimal(u.list_price) for u in data.secondary_units]

    _validate(list_price, discount, rate_in, fixed_discount, bonus_pie, secondary_prices)
    rate = rate_in if rate_in is not None else ZERO

    # 1-3. Prices
    minimum_price = list_price * (ONE - discount)
    total_secondary = sum(secondary_prices, ZERO)
    total_list_price = list_price + total_secondary

    # 4. Headline commission: own minimum price only, even with secondaries included
    commission_uf = minimum_price * rate

    # 5. Discount available with commission
    if data.include_secondaries:
        discount_with_commission_uf = (minimum_price + total_secondary) * rate
    else:
        discount_with_commission_uf = minimum_price * rate

    # 6-8. Promotions, recovery and available discount
    promotions_total = total_promotions_against_discount(data.promotions)
    recovery_total_minimum = minimum_price + total_secondary + commission_uf
    discount_with_commission = total_list_price - recovery_total_minimum
    base_for_discount = total_list_price - total_secondary
    discount_with_commission_pct = safe_ratio(discount_with_commission, base_for_discount) * HUNDRED

    # 9. Bonus on fixed discount (truncated, never rounded up)
    base_with_fixed = list_price * (ONE - fixed_discount / HUNDRED)
    denominator = base_with_fixed + total_secondary
    numerator = denominator - recovery_total_minimum
    bonus_discount_pct = floor_percent(numerator / denominator) if denominator > 0 else ZERO

    # 10. Discount available for a down-payment bonus (truncated)
    pie_factor = ONE - bonus_pie / HUNDRED
    if list_price > 0 and pie_factor != 0:
        raw = ONE - ((recovery_total_minimum / pie_factor) - total_secondary) / list_price
        down_payment_pct = floor_percent(raw)
    else:
        down_payment_pct = ZERO

    discount_available_uf = list_price * discount

    aviso = AVISO_SIN_COMISION if not configured else None
    logger.debug(
        f"quote list={list_price} min={minimum_price} commission={commission_uf} "
        f"recovery={recovery_total_minimum} configured={configured}"
    )

    return QuoteResult(
        minimum_price=minimum_price,
        total_secondary_value=total_secondary,
        total_list_price=total_list_price,
        commission_uf=commission_uf,
        commission_percent=rate,
        discount_available_with_commission_uf=discount_with_commission_uf,
        total_promotions_against_discount=promotions_total,
        recovery_total_minimum=recovery_total_minimum,
        discount_available_with_commission=discount_with_commission,
        discount_available_with_commission_percent=discount_with_commission_pct,
        bonus_discount_percent=bonus_discount_pct,
        discount_available_for_down_payment_bonus_percent=down_payment_pct,
        discount_available_uf=discount_available_uf,
        discount_available_for_broker_uf=discount_available_uf - commission_uf,
        commission_configured=configured,
        aviso=aviso,
    )
