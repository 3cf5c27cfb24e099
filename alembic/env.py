"""
Migration environment for the storefront schema.
The database URL always comes from config.settings so migrations hit the
same database as the app; sqlalchemy.url in alembic.ini is ignored.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import DATABASE_URL  # noqa: E402
from config.database import Base  # noqa: E402

# Registers every table on Base.metadata for autogenerate
import modules.catalog.models  # noqa: E402,F401
import modules.cart.models  # noqa: E402,F401
import modules.coupon.models  # noqa: E402,F401
import modules.order.models  # noqa: E402,F401

alembic_cfg = context.config
alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)

if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name)


def _configure_kwargs(url: str) -> dict:
    # SQLite cannot ALTER columns in place; batch mode recreates the table
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def migrate_offline() -> None:
    context.configure(url=DATABASE_URL, literal_binds=True, **_configure_kwargs(DATABASE_URL))
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = engine_from_config(
        alembic_cfg.get_section(alembic_cfg.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(DATABASE_URL))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
