"""Validation half of penalty netting.

A penalty left on a rescinded sale can be offset against the positive
commission balance of another sale of the same broker. ``plan_netting``
decides whether a selection is acceptable without touching storage; the
netter commits the returned plan.
"""
from __future__ import annotations
from decimal import Decimal

from liquidaciones.errors import NettingError
from liquidaciones.netting.models import CommissionBalance, NettingPlan
from liquidaciones.utils.numbers import ZERO, to_decimal


def plan_netting(
    absorbing: CommissionBalance | None,
    penalized: list[CommissionBalance],
    requested_ids: list[int],
) -> NettingPlan:
    """Validate a netting selection and return what committing it would write.

    Args:
        absorbing:     balance of the commission taking the penalties, None if missing.
        penalized:     balances found for the requested penalized ids.
        requested_ids: penalized ids as selected by the user, in order.

    Raises:
        NettingError: with ``offending_ids`` naming the commission(s) at fault.
    """
    if absorbing is None:
        raise NettingError("Absorbing commission not found")
    if not requested_ids:
        raise NettingError("No penalized commissions selected", [absorbing.id])

    if absorbing.is_rescinded or absorbing.at_risk:
        raise NettingError(
            f"Commission {absorbing.id} is rescinded or at risk and cannot absorb penalties",
            [absorbing.id],
        )
    if absorbing.is_netting_absorber:
        raise NettingError(f"Commission {absorbing.id} has already absorbed a netting", [absorbing.id])
    balance = to_decimal(absorbing.commission_amount)
    if balance <= 0:
        raise NettingError(f"Commission {absorbing.id} has no positive balance", [absorbing.id])

    duplicates = sorted({i for i in requested_ids if requested_ids.count(i) > 1})
    if duplicates:
        raise NettingError(f"Penalized commissions selected twice: {duplicates}", duplicates)
    if absorbing.id in requested_ids:
        raise NettingError("A commission cannot net its own penalty", [absorbing.id])

    by_id = {p.id: p for p in penalized}
    missing = [i for i in requested_ids if i not in by_id]
    if missing:
        raise NettingError(f"Penalized commissions not found: {missing}", missing)

    other_broker = [i for i in requested_ids if by_id[i].broker_id != absorbing.broker_id]
    if other_broker:
        raise NettingError(f"Penalized commissions belong to another broker: {other_broker}", other_broker)

    already = [i for i in requested_ids if by_id[i].is_netted]
    if already:
        raise NettingError(f"Penalties already netted: {already}", already)

    no_penalty = [i for i in requested_ids if to_decimal(by_id[i].penalty_amount) <= 0]
    if no_penalty:
        raise NettingError(f"Commissions without a penalty: {no_penalty}", no_penalty)

    penalties: dict[int, Decimal] = {}
    running = ZERO
    excess: list[int] = []
    for i in requested_ids:
        amount = to_decimal(by_id[i].penalty_amount)
        running += amount
        penalties[i] = amount
        if running > balance:
            excess.append(i)
    if excess:
        raise NettingError(
            f"Selected penalties ({running}) exceed the balance of commission "
            f"{absorbing.id} ({balance})",
            excess,
        )

    return NettingPlan(
        absorbing_id=absorbing.id,
        penalties=penalties,
        total_netted=running,
        remaining_commission=balance - running,
    )
