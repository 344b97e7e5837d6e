# menu_familiar/utils/codigos.py
"""
Códigos de invitación familiar con formato XXX-XXX.
"""

import re
import secrets

# Sin caracteres ambiguos (0/O, 1/I)
ALFABETO = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

_FORMATO = re.compile(r"^[A-Z0-9]{3}-[A-Z0-9]{3}$")


def generar_codigo_invitacion() -> str:
    """Devuelve un código aleatorio criptográficamente seguro, p. ej. 'K7M-Q2X'."""
    code = "".join(secrets.choice(ALFABETO) for _ in range(6))
    return f"{code[:3]}-{code[3:]}"


def normalizar_codigo(code: str) -> str:
    """
    Normaliza lo que escribe el usuario: quita espacios, pasa a mayúsculas y
    añade el guion central si vienen 6 caracteres seguidos.
    """
    cleaned = re.sub(r"\s", "", code or "").upper()
    if "-" in cleaned:
        return cleaned
    if len(cleaned) == 6 and cleaned.isalnum():
        return f"{cleaned[:3]}-{cleaned[3:]}"
    return cleaned


def es_codigo_valido(code: str) -> bool:
    return bool(_FORMATO.match(normalizar_codigo(code)))
