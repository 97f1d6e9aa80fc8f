import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from liquidaciones.db.models import Broker, BrokerCommission, CommissionCalculation, Reservation
from liquidaciones.errors import PersistenceError, RecordNotFoundError
from liquidaciones.liquidation.models import SavedLiquidation
from liquidaciones.liquidation.render import document_filename, render_liquidation
from liquidaciones.liquidation.service import (
    build_snapshot, get_liquidation, list_liquidations, record_difference, save_liquidation,
)
from liquidaciones.quoting.engine import quote
from liquidaciones.quoting.models import QuoteInput, UnitForSale

UNIT = UnitForSale(id=1, project_name="Parque Sur", unit_code="501",
                   list_price=Decimal("3000"), available_discount_fraction=Decimal("0.10"))


def _snapshot(notes="Pie en 24 cuotas", unit=UNIT, rate=Decimal("0.02")):
    result = quote(QuoteInput(
        list_price=unit.list_price,
        available_discount_fraction=unit.available_discount_fraction,
        commission_rate_fraction=rate,
    ))
    return build_snapshot(result, unit, broker_id=1, broker_name="Corredora Andes", policy_notes=notes)


def _make_session():
    """Mock session whose flush assigns the row id like the database would."""
    added = []

    async def _flush():
        added[-1].id = 17

    session = MagicMock()
    session.add = MagicMock(side_effect=added.append)
    session.flush = AsyncMock(side_effect=_flush)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    return session


def test_build_snapshot_copies_quote_figures():
    s = _snapshot()
    assert s.minimum_price == Decimal("2700")
    assert s.commission_uf == Decimal("54")
    assert s.commission_percent == Decimal("0.02")
    assert s.recovery_total_minimum == Decimal("2754")
    assert s.discount_with_commission_uf == Decimal("54")
    assert s.unit_code == "501"
    assert s.project_name == "Parque Sur"


@pytest.mark.asyncio
async def test_save_liquidation_stamps_creator():
    session = _make_session()
    saved = await save_liquidation(session, _snapshot(), created_by="ana@inmobiliaria.cl")

    row = session.add.call_args.args[0]
    assert isinstance(row, CommissionCalculation)
    assert row.created_by == "ana@inmobiliaria.cl"
    assert row.commission_uf == Decimal("54")
    assert saved.id == 17
    assert saved.created_by == "ana@inmobiliaria.cl"


@pytest.mark.asyncio
async def test_failed_save_can_be_retried_with_same_snapshot():
    session = _make_session()
    session.commit = AsyncMock(side_effect=[SQLAlchemyError("connection lost"), None])
    snapshot = _snapshot()

    with pytest.raises(PersistenceError):
        await save_liquidation(session, snapshot, created_by="ana")
    session.rollback.assert_awaited_once()

    saved = await save_liquidation(session, snapshot, created_by="ana")
    assert saved.snapshot is snapshot
    assert saved.id == 17


@pytest.mark.asyncio
async def test_save_and_reload_from_database(db_session):
    db_session.add(Broker(id=1, name="Corredora Andes"))
    await db_session.commit()

    saved = await save_liquidation(db_session, _snapshot(), created_by="ana")

    row = (await db_session.execute(select(CommissionCalculation))).scalar_one()
    assert row.id == saved.id
    assert row.minimum_price == Decimal("2700")
    assert row.commission_pct == Decimal("0.02")
    assert row.policy_notes == "Pie en 24 cuotas"


def test_render_uses_snapshot_figures():
    saved = SavedLiquidation(id=17, created_at=datetime(2024, 3, 5, 10, 30, 0),
                             created_by="ana", snapshot=_snapshot())
    text = render_liquidation(saved)
    assert "LIQUIDACIÓN DE COMISIÓN N° 17" in text
    assert "05-03-2024 10:30:00" in text
    assert "3.000,00 UF" in text
    assert "2.700,00 UF" in text
    assert "54,00 UF" in text
    assert "10,00%" in text
    assert "2,00%" in text
    assert "Pie en 24 cuotas" in text


@pytest.mark.asyncio
async def test_render_from_reloaded_row_matches_saved(db_session):
    db_session.add(Broker(id=1, name="Corredora Andes"))
    await db_session.commit()
    unit = UnitForSale(id=9, project_name="Parque Sur", unit_code="1203",
                       list_price=Decimal("1234.5678"), available_discount_fraction=Decimal("0.123457"))

    saved = await save_liquidation(db_session, _snapshot(unit=unit, rate=Decimal("0.012345")), created_by="ana")
    loaded = await get_liquidation(db_session, saved.id)

    # 1234.5678 × 0.876543 = 1082.1517631154, stored at six decimals
    assert saved.snapshot.minimum_price == Decimal("1082.151763")
    assert loaded.snapshot == saved.snapshot
    assert loaded.created_at == saved.created_at
    assert render_liquidation(loaded) == render_liquidation(saved)
    assert document_filename(loaded) == document_filename(saved)


@pytest.mark.asyncio
async def test_get_liquidation_unknown_id(db_session):
    with pytest.raises(RecordNotFoundError):
        await get_liquidation(db_session, 404)


@pytest.mark.asyncio
async def test_list_liquidations_newest_first_and_search(db_session):
    db_session.add(Broker(id=1, name="Corredora Andes"))
    await db_session.commit()
    other = UnitForSale(id=2, project_name="Mirador", unit_code="702",
                        list_price=Decimal("4000"), available_discount_fraction=Decimal("0.05"))

    first = await save_liquidation(db_session, _snapshot(), created_by="ana")
    second = await save_liquidation(db_session, _snapshot(unit=other), created_by="ana")

    assert [s.id for s in await list_liquidations(db_session)] == [second.id, first.id]
    assert [s.id for s in await list_liquidations(db_session, "mirador")] == [second.id]
    assert [s.id for s in await list_liquidations(db_session, "501")] == [first.id]
    assert [s.id for s in await list_liquidations(db_session, "andes")] == [second.id, first.id]
    assert await list_liquidations(db_session, "Costanera") == []


@pytest.mark.asyncio
async def test_committed_save_never_reported_as_failed():
    session = _make_session()
    session.refresh = AsyncMock(side_effect=SQLAlchemyError("connection lost"))

    saved = await save_liquidation(session, _snapshot(), created_by="ana")

    assert saved.id == 17
    session.flush.assert_awaited_once()
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()


def test_render_without_policy_notes():
    saved = SavedLiquidation(id=3, created_at=datetime(2024, 1, 1), created_by=None, snapshot=_snapshot(None))
    assert "Política comercial" not in render_liquidation(saved)


def test_document_filename():
    saved = SavedLiquidation(id=17, created_at=datetime(2024, 3, 5), created_by="ana", snapshot=_snapshot())
    assert document_filename(saved) == "Corredora Andes - Parque Sur - 501 (17).pdf"


@pytest.mark.asyncio
async def test_record_difference_writes_value(db_session):
    db_session.add(Broker(id=1, name="Corredora Andes"))
    db_session.add(Reservation(id=1, reservation_number="R-1", broker_id=1, project_name="Parque Sur"))
    db_session.add(BrokerCommission(id=1, broker_id=1, reservation_id=1, commission_amount=Decimal("54")))
    await db_session.commit()

    assert await record_difference(db_session, 1, Decimal("-12.5")) is True

    row = (await db_session.execute(
        select(BrokerCommission).execution_options(populate_existing=True)
    )).scalar_one()
    assert row.difference == Decimal("-12.5")
    assert row.version == 2


@pytest.mark.asyncio
async def test_record_difference_is_best_effort():
    session = _make_session()
    session.execute = AsyncMock(side_effect=OperationalError(
        "UPDATE broker_commissions", {}, Exception("no such column: difference"),
    ))
    assert await record_difference(session, 1, Decimal("10")) is False
    session.rollback.assert_awaited_once()
