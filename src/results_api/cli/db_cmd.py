"""Snapshot store migration commands, driving Alembic programmatically."""

from typing import TYPE_CHECKING

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

ALEMBIC_INI = "alembic.ini"


def _alembic_config() -> "Config":
    from alembic.config import Config

    return Config(ALEMBIC_INI)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
) -> None:
    """Create or migrate the snapshot tables up to the target revision."""
    from alembic import command

    logger.info("Upgrading snapshot store to {}", revision)
    command.upgrade(_alembic_config(), revision)
    logger.info("Snapshot store upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
) -> None:
    """Roll the snapshot tables back to the target revision."""
    from alembic import command

    logger.info("Downgrading snapshot store to {}", revision)
    command.downgrade(_alembic_config(), revision)
    logger.info("Snapshot store downgrade complete")


@db_app.command()
def current() -> None:
    """Show the snapshot store's current migration revision."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)
