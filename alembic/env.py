"""
Alembic environment for the documents table.

The database URL always comes from audit_trail.settings (DATABASE_URL), never
from alembic.ini. The JSON expression indexes on documents.body are written
by hand in the migrations; autogenerate must not propose dropping them.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

import audit_trail.models  # noqa: F401 (registers Document on Base.metadata)
from audit_trail.models.base import Base
from audit_trail.settings import settings

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to):
    # Reflected indexes with no model counterpart are the hand-written
    # ix_documents_* expression indexes.
    if type_ == "index" and reflected and compare_to is None:
        return False
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


if context.is_offline_mode():
    _configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
