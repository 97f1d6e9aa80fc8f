from decimal import Decimal, ROUND_HALF_UP


def format_uf(amount: Decimal, decimals: int = 2) -> str:
    """Format an amount the es-CL way: '.' for thousands, ',' for decimals.

    Examples:
        Decimal('2754')      → '2.754,00'
        Decimal('-1234.5')   → '-1.234,50'
        Decimal('0.125')     → '0,13'
    """
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{abs(rounded):,.{decimals}f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"-{text}" if rounded < 0 else text


def format_pct(value: Decimal, decimals: int = 2) -> str:
    """Percentage figure (already ×100) with es-CL separators and a % sign."""
    return f"{format_uf(value, decimals)}%"
