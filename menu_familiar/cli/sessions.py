# menu_familiar/cli/sessions.py
import click
from flask.cli import AppGroup

from menu_familiar.services.sessions import prune_expired_sessions

sessions_group = AppGroup("sessions", help="Mantenimiento de sesiones de usuario")


@sessions_group.command("prune")
def prune_sessions():
    """Borra de la base de datos las sesiones caducadas."""
    deleted = prune_expired_sessions()
    click.secho(f"Sesiones caducadas eliminadas: {deleted}", fg="green")
