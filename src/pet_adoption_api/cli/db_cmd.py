"""Schema migration commands (``pet-adoption-api db ...``).

Alembic is driven in-process from ``alembic.ini``; the target database comes
from ``DATABASE_URL`` via ``alembic/env.py``.
"""

from pathlib import Path

import typer
from loguru import logger

db_app = typer.Typer()

ALEMBIC_INI = Path("alembic.ini")


def _alembic_config(ini_path: Path = ALEMBIC_INI):  # noqa: ANN202
    from alembic.config import Config

    if not ini_path.exists():
        typer.echo(f"{ini_path} not found; run from the project root", err=True)
        raise typer.Exit(code=1)
    return Config(str(ini_path))


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Revision to migrate up to"),
) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    config = _alembic_config()
    logger.info(f"Migrating schema up to {revision}")
    command.upgrade(config, revision)
    logger.info("Schema is at {}", revision)


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Revision to step back to"),
) -> None:
    """Revert migrations down to REVISION (one step by default)."""
    from alembic import command

    config = _alembic_config()
    logger.warning(f"Reverting schema to {revision}")
    command.downgrade(config, revision)


@db_app.command()
def current() -> None:
    """Print the revision the database is stamped with."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db_app.command()
def history() -> None:
    """List known migrations, newest first."""
    from alembic import command

    command.history(_alembic_config(), indicate_current=True)


@db_app.command()
def stamp(
    revision: str = typer.Argument("head", help="Revision to record without running migrations"),
) -> None:
    """Mark the database as being at REVISION without touching the schema."""
    from alembic import command

    config = _alembic_config()
    logger.info(f"Stamping database at {revision}")
    command.stamp(config, revision)
