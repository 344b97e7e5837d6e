# menu_familiar/utils/fechas.py

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Ahora en UTC, sin tzinfo (así se guarda en la base de datos)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def inicio_semana(dia: date | None = None) -> date:
    """Lunes de la semana de `dia` (hoy por defecto)."""
    dia = dia or date.today()
    return dia - timedelta(days=dia.weekday())


def rango_semana(inicio: date) -> tuple[date, date]:
    """Semana de 7 días: [inicio, inicio + 6] ambos incluidos."""
    return inicio, inicio + timedelta(days=6)


def parse_fecha(value: str | None) -> date | None:
    """'YYYY-MM-DD' -> date; None si viene vacío o mal formado."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
