"""Display formatting for amounts, percentages and archive titles (es-AR)."""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONTHS_ES = [
    'enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio',
    'julio', 'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre'
]

ARCHIVE_TITLE_PREFIX = 'Resumen de Gastos'

Number = Union[int, float, Decimal]


def format_currency(amount: Number) -> str:
    """Format an amount as Argentine pesos, e.g. ``$ 1.234,56``."""
    value = Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    integer_part, _, fraction = f"{abs(value):.2f}".partition('.')
    grouped = f"{int(integer_part):,}".replace(',', '.')
    sign = '-' if value < 0 else ''
    # Intl es-AR separates the symbol with a non-breaking space
    return f"{sign}$\u00a0{grouped},{fraction}"


def format_percentage(value: Number) -> str:
    return f"{float(value):.1f}%"


def month_label(moment: datetime) -> str:
    """Spanish month and year, e.g. ``octubre de 2026``."""
    return f"{MONTHS_ES[moment.month - 1]} de {moment.year}"


def archive_title(moment: datetime) -> str:
    return f"{ARCHIVE_TITLE_PREFIX}: {month_label(moment)}"
