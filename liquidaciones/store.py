"""Loading engine inputs from the record store.

Everything a quote or a reconciliation needs is fetched here, up front; the
engines themselves never touch the database.
"""
from __future__ import annotations
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liquidaciones.db.models import (
    BrokerCommission, BrokerProjectCommission, CommercialPolicy,
    Promotion as PromotionRow, Reservation, StockUnit,
)
from liquidaciones.errors import RecordNotFoundError
from liquidaciones.quoting.models import (
    PRIMARY_UNIT_TYPE, PROMOTION_TYPES, CommissionRate, Promotion, QuoteInput, SecondaryUnitSelection, UnitForSale,
)
from liquidaciones.reconciliation.models import ReconcileInput

logger = logging.getLogger(__name__)


def _unit(row: StockUnit) -> UnitForSale:
    return UnitForSale(
        id=row.id,
        project_name=row.project_name,
        unit_code=row.unit_code,
        list_price=row.list_price,
        available_discount_fraction=row.discount,
        unit_type=row.unit_type,
    )


async def get_unit(session: AsyncSession, unit_id: int) -> UnitForSale:
    row = await session.get(StockUnit, unit_id)
    if row is None:
        raise RecordNotFoundError(f"Unit {unit_id} not found")
    return _unit(row)


async def get_commission_rate(
    session: AsyncSession, broker_id: int | None, project_name: str,
) -> CommissionRate | None:
    if broker_id is None:
        return None
    result = await session.execute(
        select(BrokerProjectCommission).where(
            BrokerProjectCommission.broker_id == broker_id,
            BrokerProjectCommission.project_name == project_name,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        logger.info(f"No commission configured for broker {broker_id} on {project_name}")
        return None
    return CommissionRate.from_percent(row.broker_id, row.project_name, row.commission_rate)


async def available_secondary_units(session: AsyncSession, project_name: str) -> list[UnitForSale]:
    result = await session.execute(
        select(StockUnit)
        .where(StockUnit.project_name == project_name, StockUnit.unit_type != PRIMARY_UNIT_TYPE)
        .order_by(StockUnit.unit_type, StockUnit.unit_code)
    )
    return [_unit(r) for r in result.scalars().all()]


async def get_policy_notes(session: AsyncSession, project_name: str) -> str | None:
    result = await session.execute(
        select(CommercialPolicy.notes).where(CommercialPolicy.project_name == project_name)
    )
    return result.scalar_one_or_none()


async def get_promotions(session: AsyncSession, reservation_id: int) -> list[Promotion]:
    """Promotions granted on a reservation, in the order they were recorded.

    A type outside the configured catalogue is kept, and its amount still
    counts, but a warning is logged.
    """
    result = await session.execute(
        select(PromotionRow).where(PromotionRow.reservation_id == reservation_id).order_by(PromotionRow.id)
    )
    promotions = []
    for p in result.scalars().all():
        if p.promotion_type not in PROMOTION_TYPES:
            logger.warning(f"Reservation {reservation_id}: unknown promotion type {p.promotion_type!r}")
        promotions.append(Promotion(amount=p.amount, is_against_discount=p.is_against_discount,
                                    promotion_type=p.promotion_type, id=p.id))
    return promotions


async def build_quote_input(
    session: AsyncSession,
    unit_id: int,
    broker_id: int | None,
    secondary_ids: list[int] | None = None,
    include_secondaries: bool = False,
    fixed_discount_percent=0,
    down_payment_bonus_percent=0,
) -> tuple[UnitForSale, QuoteInput]:
    """Fetch the unit, its broker rate and the selected secondaries for ``quote``.

    Secondary ids must belong to the unit's project; unknown ids raise
    RecordNotFoundError.
    """
    unit = await get_unit(session, unit_id)
    rate = await get_commission_rate(session, broker_id, unit.project_name)

    available = {u.id: u for u in await available_secondary_units(session, unit.project_name)}
    selection = SecondaryUnitSelection()
    for sid in secondary_ids or []:
        if sid not in available:
            raise RecordNotFoundError(f"Secondary unit {sid} not available in {unit.project_name}")
        selection.add(available[sid])

    return unit, QuoteInput(
        list_price=unit.list_price,
        available_discount_fraction=unit.available_discount_fraction,
        commission_rate_fraction=rate.commission_rate_fraction if rate else None,
        include_secondaries=include_secondaries,
        secondary_units=selection.units,
        fixed_discount_percent=fixed_discount_percent,
        down_payment_bonus_percent=down_payment_bonus_percent,
    )


async def build_reconcile_input(session: AsyncSession, commission_id: int) -> ReconcileInput:
    result = await session.execute(
        select(BrokerCommission, Reservation)
        .join(Reservation, BrokerCommission.reservation_id == Reservation.id)
        .where(BrokerCommission.id == commission_id)
    )
    row = result.one_or_none()
    if row is None:
        raise RecordNotFoundError(f"Broker commission {commission_id} not found")
    commission, reservation = row

    return ReconcileInput(
        total_payment=reservation.total_payment,
        subsidy_payment=reservation.subsidy_payment,
        minimum_price=reservation.minimum_price,
        commission_amount=commission.commission_amount,
        commission_includes_tax=commission.commission_includes_tax,
        pays_secondary=commission.pays_secondary,
        parking_price=reservation.parking_price,
        storage_price=reservation.storage_price,
        number_of_payments=commission.number_of_payments,
        first_payment_percentage=commission.first_payment_percentage,
        promotions=await get_promotions(session, reservation.id),
    )
