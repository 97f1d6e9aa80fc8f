import argparse
import logging
from decimal import Decimal

from liquidaciones.config import settings
from liquidaciones.db.base import async_session_factory, init_db
from liquidaciones.db.models import Broker
from liquidaciones.liquidation.render import document_filename, render_liquidation
from liquidaciones.liquidation.service import (
    build_snapshot, get_liquidation, list_liquidations, record_difference, save_liquidation,
)
from liquidaciones import metrics
from liquidaciones.netting.sql import SqlPenaltyNetter
from liquidaciones.quoting.engine import quote
from liquidaciones.reconciliation.engine import reconcile
from liquidaciones.store import build_quote_input, build_reconcile_input, get_policy_notes
from liquidaciones.utils.text import format_pct, format_uf

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="liquidador", description="Broker commission liquidations")
    parser.add_argument("--metrics", action="store_true", help="expose Prometheus metrics")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create missing tables")

    q = sub.add_parser("quote", help="quote the commission for a unit")
    q.add_argument("--unit", type=int, required=True)
    q.add_argument("--broker", type=int)
    q.add_argument("--secondary", type=int, action="append", default=[])
    q.add_argument("--include-secondaries", action="store_true")
    q.add_argument("--fixed-discount", type=Decimal, default=Decimal("0"))
    q.add_argument("--bono-pie", type=Decimal, default=Decimal("0"))
    q.add_argument("--save", metavar="USER", help="persist the liquidation as USER")

    r = sub.add_parser("reconcile", help="reconcile a broker commission against the sale")
    r.add_argument("--commission", type=int, required=True)

    n = sub.add_parser("net", help="net penalties against a commission")
    n.add_argument("--absorbing", type=int, required=True)
    n.add_argument("--penalized", type=int, nargs="+", required=True)

    s = sub.add_parser("show", help="regenerate a saved liquidation")
    s.add_argument("--id", type=int, required=True)

    ls = sub.add_parser("list", help="list saved liquidations")
    ls.add_argument("--search", help="broker, project or unit code fragment")
    return parser


async def _quote(args) -> None:
    async with async_session_factory() as session:
        unit, data = await build_quote_input(
            session, args.unit, args.broker, args.secondary, args.include_secondaries,
            args.fixed_discount, args.bono_pie,
        )
        result = quote(data)
        metrics.quotes_total.labels(commission_configured=str(result.commission_configured).lower()).inc()
        print(f"Precio mínimo:                {format_uf(result.minimum_price)} UF")
        print(f"Comisión:                     {format_uf(result.commission_uf)} UF")
        print(f"Recuperación total mínima:    {format_uf(result.recovery_total_minimum)} UF")
        print(f"Dcto. disp. con comisión:     {format_uf(result.discount_available_with_commission_uf)} UF")
        print(f"Dcto. disp. con comisión %:   {format_pct(result.discount_available_with_commission_percent)}")
        print(f"Bono descuento:               {format_pct(result.bonus_discount_percent)}")
        print(f"Dcto. disp. para bono pie:    {format_pct(result.discount_available_for_down_payment_bonus_percent)}")
        if result.aviso:
            print(f"⚠️ {result.aviso}")

        if args.save:
            broker = await session.get(Broker, args.broker) if args.broker else None
            notes = await get_policy_notes(session, unit.project_name)
            snapshot = build_snapshot(result, unit, args.broker, broker.name if broker else None, notes)
            saved = await save_liquidation(session, snapshot, created_by=args.save)
            print()
            print(render_liquidation(saved))
            print(f"\nDocumento: {document_filename(saved)}")


async def _reconcile(args) -> None:
    async with async_session_factory() as session:
        result = reconcile(await build_reconcile_input(session, args.commission))
        await record_difference(session, args.commission, result.difference)
    print(f"Recuperación:        {format_uf(result.recovery_payment)} UF")
    print(f"Promociones c/dcto:  {format_uf(result.total_promotions_against_discount)} UF")
    print(f"Diferencia:          {format_uf(result.difference)} UF")
    print(f"Comisión neta:       {format_uf(result.net_commission)} UF")
    print(f"Comisión % base:     {format_pct(result.commission_percent_of_base)}")
    print(f"Primer pago:         {format_uf(result.first_payment_amount)} UF")
    print(f"Segundo pago:        {format_uf(result.second_payment_amount)} UF")


async def _net(args) -> None:
    async with async_session_factory() as session:
        result = await SqlPenaltyNetter().net(session, args.absorbing, args.penalized)
    print(f"Neteo {result.netting_id}: {format_uf(result.total_netted)} UF "
          f"de {result.netted_ids}; saldo restante {format_uf(result.remaining_commission)} UF")


async def _show(args) -> None:
    async with async_session_factory() as session:
        saved = await get_liquidation(session, args.id)
    print(render_liquidation(saved))
    print(f"\nDocumento: {document_filename(saved)}")


async def _list(args) -> None:
    async with async_session_factory() as session:
        rows = await list_liquidations(session, args.search)
    for saved in rows:
        s = saved.snapshot
        print(f"{saved.id:>6}  {saved.created_at:%d-%m-%Y}  {s.broker_name or '-'}  "
              f"{s.project_name or '-'} {s.unit_code or '-'}  {format_uf(s.commission_uf)} UF")


async def run(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.metrics:
        metrics.start_metrics_server(settings.metrics_port)

    if args.command == "init-db":
        await init_db()
        logger.info("Database schema ready")
    elif args.command == "quote":
        await _quote(args)
    elif args.command == "reconcile":
        await _reconcile(args)
    elif args.command == "net":
        await _net(args)
    elif args.command == "show":
        await _show(args)
    elif args.command == "list":
        await _list(args)
