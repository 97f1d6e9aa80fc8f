import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from liquidaciones import metrics
from liquidaciones.config import settings
from liquidaciones.db.models import BrokerCommission, Netting, NettingDetail, Reservation
from liquidaciones.errors import NettingConflictError, NettingError
from liquidaciones.netting.base import PenaltyNetter
from liquidaciones.netting.models import CommissionBalance, NetResult
from liquidaciones.netting.planner import plan_netting

logger = logging.getLogger(__name__)


def _balance(row: BrokerCommission, is_rescinded: bool) -> CommissionBalance:
    return CommissionBalance(
        id=row.id,
        broker_id=row.broker_id,
        commission_amount=row.commission_amount,
        penalty_amount=row.penalty_amount,
        is_rescinded=bool(is_rescinded),
        at_risk=row.at_risk,
        is_netted=row.is_netted,
        is_netting_absorber=row.is_netting_absorber,
    )


class SqlPenaltyNetter(PenaltyNetter):
    """Validate-then-commit netting over broker_commissions.

    Every touched row is version-checked on UPDATE, so a concurrent writer
    makes the flush fail with StaleDataError; the unique penalized id on
    netting_details catches a second netting of the same penalty. Either way
    the transaction is rolled back and the whole operation is retried from a
    fresh read.
    """

    def __init__(self, max_retries: int | None = None):
        self.max_retries = max_retries or settings.netting_max_retries

    async def net(self, session: AsyncSession, absorbing_id: int, penalized_ids: list[int]) -> NetResult:
        for attempt in range(1, self.max_retries + 1):
            try:
                result = await self._attempt(session, absorbing_id, list(penalized_ids))
            except NettingError as exc:
                await session.rollback()
                metrics.nettings_total.labels(result="rejected").inc()
                logger.warning(f"Netting into {absorbing_id} rejected: {exc} (units {exc.offending_ids})")
                raise
            except (StaleDataError, IntegrityError) as exc:
                await session.rollback()
                logger.warning(f"Netting into {absorbing_id} conflicted (attempt {attempt}/{self.max_retries}): {exc}")
                continue
            metrics.nettings_total.labels(result="committed").inc()
            logger.info(
                f"Netting {result.netting_id}: {result.total_netted} UF from {result.netted_ids} "
                f"into commission {absorbing_id}"
            )
            return result

        metrics.nettings_total.labels(result="conflict").inc()
        raise NettingConflictError(
            f"Netting into commission {absorbing_id} kept conflicting after {self.max_retries} attempts"
        )

    async def _load(self, session: AsyncSession, ids: list[int]) -> dict[int, tuple[BrokerCommission, bool]]:
        result = await session.execute(
            select(BrokerCommission, Reservation.is_rescinded)
            .join(Reservation, BrokerCommission.reservation_id == Reservation.id)
            .where(BrokerCommission.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return {row.id: (row, rescinded) for row, rescinded in result.all()}

    async def _attempt(self, session: AsyncSession, absorbing_id: int, penalized_ids: list[int]) -> NetResult:
        rows = await self._load(session, [absorbing_id, *penalized_ids])

        absorbing_row = rows.get(absorbing_id)
        absorbing = _balance(*absorbing_row) if absorbing_row else None
        penalized = [_balance(*rows[i]) for i in penalized_ids if i in rows and i != absorbing_id]

        plan = plan_netting(absorbing, penalized, penalized_ids)

        netting = Netting(absorbing_commission_id=absorbing_id, total_netted=plan.total_netted)
        session.add(netting)
        for commission_id, amount in plan.penalties.items():
            netting.details.append(NettingDetail(penalized_commission_id=commission_id, penalty_amount=amount))
            rows[commission_id][0].is_netted = True

        target = absorbing_row[0]
        target.commission_amount = plan.remaining_commission
        target.is_netting_absorber = True

        await session.flush()
        netting_id = netting.id
        await session.commit()

        return NetResult(
            netting_id=netting_id,
            absorbing_id=absorbing_id,
            netted_ids=list(plan.penalties),
            total_netted=plan.total_netted,
            remaining_commission=plan.remaining_commission,
        )
