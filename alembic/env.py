from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from mentorbook import models  # noqa: F401 - registers every table on Base.metadata
from mentorbook.config import settings
from mentorbook.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Exclusion constraints live only in hand-written migrations; the models
# cannot express them, so autogenerate must not propose dropping them.
MIGRATION_ONLY_CONSTRAINTS = {"ex_mentorship_sessions_no_overlap"}


def _database_url() -> str:
    """``alembic -x db_url=...`` wins over the application settings."""
    url = context.get_x_argument(as_dictionary=True).get("db_url") or settings.DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL is not set; pass -x db_url=... or configure .env")
    return url


def include_object(obj, name, type_, reflected, compare_to):
    if type_ == "constraint" and name in MIGRATION_ONLY_CONSTRAINTS:
        return False
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    # Alembic's ini parser treats % as interpolation, so the URL bypasses it.
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
