"""Persistence of liquidation snapshots.

A liquidation is saved once and never updated: a correction means a new
quote and a new snapshot. The snapshot is built before any I/O so a failed
save can be retried as-is.
"""
from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liquidaciones import metrics
from liquidaciones.db.models import BrokerCommission, CommissionCalculation
from liquidaciones.errors import PersistenceError, RecordNotFoundError
from liquidaciones.liquidation.models import LiquidationSnapshot, SavedLiquidation
from liquidaciones.quoting.models import QuoteResult, UnitForSale
from liquidaciones.utils.numbers import to_decimal

logger = logging.getLogger(__name__)

# scale of the commission_calculations numeric columns
SNAPSHOT_SCALE = Decimal("0.000001")


def _stored(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(SNAPSHOT_SCALE, rounding=ROUND_HALF_UP)


def build_snapshot(
    result: QuoteResult,
    unit: UnitForSale,
    broker_id: int | None,
    broker_name: str | None,
    policy_notes: str | None = None,
) -> LiquidationSnapshot:
    """Freeze the figures of a quote as they will be stored and rendered.

    Amounts are rounded once to the storage scale, so a snapshot read back
    from the database equals the one returned here.
    """
    return LiquidationSnapshot(
        broker_id=broker_id,
        broker_name=broker_name,
        project_name=unit.project_name,
        unit_code=unit.unit_code,
        list_price=_stored(unit.list_price),
        available_discount_fraction=_stored(unit.available_discount_fraction),
        minimum_price=_stored(result.minimum_price),
        recovery_total_minimum=_stored(result.recovery_total_minimum),
        commission_uf=_stored(result.commission_uf),
        commission_percent=_stored(result.commission_percent),
        discount_with_commission_uf=_stored(result.discount_available_with_commission_uf),
        policy_notes=policy_notes,
    )


async def save_liquidation(
    session: AsyncSession,
    snapshot: LiquidationSnapshot,
    created_by: str | None,
) -> SavedLiquidation:
    """Insert the snapshot as a new commission_calculations row.

    Args:
        session:    open async session; committed on success, rolled back on failure.
        snapshot:   figures to persist, exactly as they will be rendered.
        created_by: identifier of the user confirming the liquidation.

    Raises:
        PersistenceError: the insert failed; calling again with the same
            snapshot is safe.
    """
    # DATETIME columns keep whole seconds
    created_at = datetime.utcnow().replace(microsecond=0)
    row = CommissionCalculation(
        broker_id=snapshot.broker_id,
        broker_name=snapshot.broker_name,
        project_name=snapshot.project_name,
        unit_code=snapshot.unit_code,
        list_price=snapshot.list_price,
        available_discount=snapshot.available_discount_fraction,
        minimum_price=snapshot.minimum_price,
        recovery_total_minimum=snapshot.recovery_total_minimum,
        commission_uf=snapshot.commission_uf,
        commission_pct=snapshot.commission_percent,
        discount_with_commission_uf=snapshot.discount_with_commission_uf,
        policy_notes=snapshot.policy_notes,
        created_by=created_by,
        created_at=created_at,
    )
    session.add(row)
    try:
        await session.flush()
        liquidation_id = row.id
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        metrics.liquidations_saved_total.labels(result="failed").inc()
        logger.error(f"Saving liquidation for {snapshot.unit_code} failed: {exc}")
        raise PersistenceError(f"Could not save liquidation for unit {snapshot.unit_code}") from exc

    metrics.liquidations_saved_total.labels(result="saved").inc()
    logger.info(f"Liquidation {liquidation_id} saved for {snapshot.broker_name} / {snapshot.unit_code}")
    return SavedLiquidation(id=liquidation_id, created_at=created_at, created_by=created_by, snapshot=snapshot)


def _saved(row: CommissionCalculation) -> SavedLiquidation:
    snapshot = LiquidationSnapshot(
        broker_id=row.broker_id,
        broker_name=row.broker_name,
        project_name=row.project_name,
        unit_code=row.unit_code,
        list_price=row.list_price,
        available_discount_fraction=row.available_discount,
        minimum_price=row.minimum_price,
        recovery_total_minimum=row.recovery_total_minimum,
        commission_uf=row.commission_uf,
        commission_percent=row.commission_pct,
        discount_with_commission_uf=row.discount_with_commission_uf,
        policy_notes=row.policy_notes,
    )
    return SavedLiquidation(id=row.id, created_at=row.created_at, created_by=row.created_by, snapshot=snapshot)


async def get_liquidation(session: AsyncSession, liquidation_id: int) -> SavedLiquidation:
    row = await session.get(CommissionCalculation, liquidation_id, populate_existing=True)
    if row is None:
        raise RecordNotFoundError(f"Liquidation {liquidation_id} not found")
    return _saved(row)


async def list_liquidations(session: AsyncSession, search: str | None = None) -> list[SavedLiquidation]:
    """Saved liquidations, newest first.

    ``search`` matches any part of the broker name, project name or unit code.
    """
    stmt = select(CommissionCalculation).order_by(
        CommissionCalculation.created_at.desc(), CommissionCalculation.id.desc()
    )
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            CommissionCalculation.broker_name.ilike(pattern),
            CommissionCalculation.project_name.ilike(pattern),
            CommissionCalculation.unit_code.ilike(pattern),
        ))
    result = await session.execute(stmt)
    return [_saved(row) for row in result.scalars().all()]


async def record_difference(session: AsyncSession, commission_id: int, difference: Decimal) -> bool:
    """Store the reconciliation difference on the broker commission.

    Best effort: deployments without the column, or any other database error,
    only log a warning. Returns True when the value was written.
    """
    try:
        await session.execute(
            update(BrokerCommission)
            .where(BrokerCommission.id == commission_id)
            .values(difference=difference, version=BrokerCommission.version + 1)
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        metrics.difference_writes_total.labels(result="skipped").inc()
        logger.warning(f"Could not store difference for commission {commission_id}: {exc}")
        return False
    metrics.difference_writes_total.labels(result="saved").inc()
    return True
