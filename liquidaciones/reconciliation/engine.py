from __future__ import annotations
import logging
from decimal import Decimal

from liquidaciones.config import app_config
from liquidaciones.errors import InvalidInputError
from liquidaciones.quoting.engine import total_promotions_against_discount
from liquidaciones.reconciliation.models import (
    BrokerTotals, CommissionRecord, InstallmentSplit, ReconcileInput, ReconcileResult,
)
from liquidaciones.utils.numbers import HUNDRED, ZERO, safe_ratio, to_decimal

logger = logging.getLogger(__name__)

VAT_RATE = Decimal("1.19")   # Chilean IVA, fixed by business rule

NUMBER_OF_PAYMENTS = tuple(app_config["installments"]["number_of_payments"])
FIRST_PAYMENT_PERCENTAGES = tuple(app_config["installments"]["first_payment_percentages"])


def net_commission(commission_amount, includes_tax: bool) -> Decimal:
    amount = to_decimal(commission_amount)
    return amount / VAT_RATE if includes_tax else amount


def commission_base_price(minimum_price, parking_price, storage_price, pays_secondary: bool) -> Decimal:
    minimum = to_decimal(minimum_price)
    if pays_secondary:
        return minimum
    return minimum - to_decimal(parking_price) - to_decimal(storage_price)


def commission_percent_of_base(
    commission_amount, minimum_price, parking_price, storage_price, pays_secondary: bool,
) -> Decimal:
    base = commission_base_price(minimum_price, parking_price, storage_price, pays_secondary)
    return safe_ratio(to_decimal(commission_amount), base) * HUNDRED


def split_installments(commission_amount, number_of_payments: int, first_payment_percentage: int) -> InstallmentSplit:
    """Split a gross commission into its one or two invoices.

    Two payments with a 100% first payment is allowed and leaves nothing for the second.
    """
    if number_of_payments not in NUMBER_OF_PAYMENTS:
        raise InvalidInputError(f"number_of_payments must be one of {NUMBER_OF_PAYMENTS}, got {number_of_payments}")
    if first_payment_percentage not in FIRST_PAYMENT_PERCENTAGES:
        raise InvalidInputError(
            f"first_payment_percentage must be one of {FIRST_PAYMENT_PERCENTAGES}, got {first_payment_percentage}"
        )
    amount = to_decimal(commission_amount)
    first = amount * (Decimal(first_payment_percentage) / HUNDRED)
    second = amount - first if number_of_payments == 2 else ZERO
    return InstallmentSplit(first_payment_amount=first, second_payment_amount=second)


def reconcile(data: ReconcileInput) -> ReconcileResult:
    """Compare what the sale actually recovered against minimum price, commission and promotions."""
    total_payment = to_decimal(data.total_payment)
    subsidy = to_decimal(data.subsidy_payment)
    minimum_price = to_decimal(data.minimum_price)
    commission = to_decimal(data.commission_amount)
    for name, value in (("total_payment", total_payment), ("subsidy_payment", subsidy),
                        ("minimum_price", minimum_price), ("commission_amount", commission)):
        if value < 0:
            raise InvalidInputError(f"{name} must be >= 0, got {value}")

    split = split_installments(commission, data.number_of_payments, data.first_payment_percentage)
    promotions_total = total_promotions_against_discount(data.promotions)
    recovery = total_payment - subsidy
    difference = recovery - minimum_price - commission - promotions_total
    base = commission_base_price(minimum_price, data.parking_price, data.storage_price, data.pays_secondary)

    if difference < 0:
        logger.info(f"reconciliation under-recovered by {-difference} UF")

    return ReconcileResult(
        recovery_payment=recovery,
        total_promotions_against_discount=promotions_total,
        difference=difference,
        net_commission=net_commission(commission, data.commission_includes_tax),
        commission_base_price=base,
        commission_percent_of_base=safe_ratio(commission, base) * HUNDRED,
        first_payment_amount=split.first_payment_amount,
        second_payment_amount=split.second_payment_amount,
    )


def penalty_for_rescission(
    commission_amount, first_payment_percentage: int, first_paid: bool, second_paid: bool,
) -> Decimal:
    """Penalty charged to the broker when a sale is rescinded: whatever was already paid out."""
    amount = to_decimal(commission_amount)
    pct = Decimal(first_payment_percentage)
    penalty = ZERO
    if first_paid:
        penalty += amount * (pct / HUNDRED)
    if second_paid:
        penalty += amount * ((HUNDRED - pct) / HUNDRED)
    return penalty


def broker_totals(records: list[CommissionRecord]) -> BrokerTotals:
    """Aggregate a broker's commissions the way the consolidated report shows them.

    - total_commission skips rescinded and at-risk commissions
    - total_paid counts every paid installment, rescinded ones included
    - total_at_risk adds paid installments of at-risk commissions and un-netted penalties
    - total_in_progress is the invoiced-but-unpaid share of live commissions
    """
    total_commission = ZERO
    total_paid = ZERO
    total_at_risk = ZERO
    total_in_progress = ZERO

    for r in records:
        amount = to_decimal(r.commission_amount)
        paid = to_decimal(r.first_payment_amount) + to_decimal(r.second_payment_amount)
        total_paid += paid

        if not (r.is_rescinded or r.at_risk):
            total_commission += amount

        if not r.is_rescinded and r.at_risk:
            total_at_risk += paid
        if r.penalty and not r.is_netted:
            total_at_risk += to_decimal(r.penalty)

        if not r.is_rescinded and not r.at_risk and r.has_payment_flow:
            share = Decimal(r.first_payment_percentage) / HUNDRED
            if r.invoice_1 and not r.payment_1_paid:
                total_in_progress += amount * share
            if r.invoice_2 and not r.payment_2_paid:
                total_in_progress += amount * (1 - share)

    return BrokerTotals(
        total_commission=total_commission,
        total_paid=total_paid,
        total_pending=total_commission - total_paid,
        total_at_risk=total_at_risk,
        total_in_progress=total_in_progress,
    )
