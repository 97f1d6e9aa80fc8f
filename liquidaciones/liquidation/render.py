"""Text rendering of a saved liquidation.

Works only from the saved snapshot, so re-rendering an old liquidation gives
the same figures regardless of later inventory or commission-rate changes.
"""
from liquidaciones.liquidation.models import SavedLiquidation
from liquidaciones.utils.numbers import HUNDRED
from liquidaciones.utils.text import format_pct, format_uf


def document_filename(saved: SavedLiquidation) -> str:
    s = saved.snapshot
    return f"{s.broker_name or ''} - {s.project_name or ''} - {s.unit_code or ''} ({saved.id}).pdf"


def render_liquidation(saved: SavedLiquidation) -> str:
    s = saved.snapshot
    lines = [
        f"LIQUIDACIÓN DE COMISIÓN N° {saved.id}",
        f"Fecha: {saved.created_at:%d-%m-%Y %H:%M:%S}",
        "",
        f"Broker:   {s.broker_name or '-'}",
        f"Proyecto: {s.project_name or '-'}",
        f"Unidad:   {s.unit_code or '-'}",
        "",
        f"Precio lista:              {format_uf(s.list_price)} UF",
        f"Dcto. disponible:          {format_pct(s.available_discount_fraction * HUNDRED)}",
        f"Precio mínimo:             {format_uf(s.minimum_price)} UF",
        f"Comisión (IVA incluido):   {format_uf(s.commission_uf)} UF",
        f"Comisión %:                {format_pct(s.commission_percent * HUNDRED)}",
        f"Dcto. disp. con comisión:  {format_uf(s.discount_with_commission_uf)} UF",
    ]
    if s.policy_notes:
        lines += ["", "Política comercial:", s.policy_notes]
    return "\n".join(lines)
