import pytest
from decimal import Decimal

from liquidaciones.errors import NettingError
from liquidaciones.netting.models import CommissionBalance
from liquidaciones.netting.planner import plan_netting


def _absorbing(**overrides):
    data = dict(id=1, broker_id=10, commission_amount=Decimal("100"))
    data.update(overrides)
    return CommissionBalance(**data)


def _penalized(id_, penalty, **overrides):
    data = dict(id=id_, broker_id=10, commission_amount=Decimal("0"),
                penalty_amount=Decimal(penalty), is_rescinded=True)
    data.update(overrides)
    return CommissionBalance(**data)


def test_plan_within_balance():
    plan = plan_netting(_absorbing(), [_penalized(2, "30"), _penalized(3, "45")], [2, 3])
    assert plan.absorbing_id == 1
    assert plan.penalties == {2: Decimal("30"), 3: Decimal("45")}
    assert plan.total_netted == Decimal("75")
    assert plan.remaining_commission == Decimal("25")


def test_plan_exactly_consumes_balance():
    plan = plan_netting(_absorbing(), [_penalized(2, "100")], [2])
    assert plan.remaining_commission == Decimal("0")


def test_over_allocation_names_the_units_past_the_balance():
    penalized = [_penalized(2, "60"), _penalized(3, "30"), _penalized(4, "20")]
    with pytest.raises(NettingError, match="exceed") as exc_info:
        plan_netting(_absorbing(), penalized, [2, 3, 4])
    # 60 + 30 = 90 fits, + 20 = 110 does not
    assert exc_info.value.offending_ids == [4]


def test_missing_absorbing_commission():
    with pytest.raises(NettingError, match="not found"):
        plan_netting(None, [_penalized(2, "10")], [2])


def test_empty_selection():
    with pytest.raises(NettingError, match="No penalized"):
        plan_netting(_absorbing(), [], [])


@pytest.mark.parametrize("overrides", [
    {"is_rescinded": True},
    {"at_risk": True},
    {"is_netting_absorber": True},
    {"commission_amount": Decimal("0")},
])
def test_absorbing_commission_must_be_live_and_positive(overrides):
    with pytest.raises(NettingError) as exc_info:
        plan_netting(_absorbing(**overrides), [_penalized(2, "10")], [2])
    assert exc_info.value.offending_ids == [1]


def test_penalized_missing():
    with pytest.raises(NettingError, match="not found") as exc_info:
        plan_netting(_absorbing(), [_penalized(2, "10")], [2, 9])
    assert exc_info.value.offending_ids == [9]


def test_penalized_selected_twice():
    with pytest.raises(NettingError, match="twice") as exc_info:
        plan_netting(_absorbing(), [_penalized(2, "10")], [2, 2])
    assert exc_info.value.offending_ids == [2]


def test_cannot_net_own_penalty():
    with pytest.raises(NettingError, match="own penalty"):
        plan_netting(_absorbing(), [], [1])


def test_penalized_from_other_broker():
    with pytest.raises(NettingError, match="another broker") as exc_info:
        plan_netting(_absorbing(), [_penalized(2, "10", broker_id=99)], [2])
    assert exc_info.value.offending_ids == [2]


def test_penalty_already_netted():
    with pytest.raises(NettingError, match="already netted") as exc_info:
        plan_netting(_absorbing(), [_penalized(2, "10", is_netted=True)], [2])
    assert exc_info.value.offending_ids == [2]


def test_commission_without_penalty():
    with pytest.raises(NettingError, match="without a penalty") as exc_info:
        plan_netting(_absorbing(), [_penalized(2, "0"), _penalized(3, "5")], [2, 3])
    assert exc_info.value.offending_ids == [2]
