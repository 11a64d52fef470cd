from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  registers billing tables on Base.metadata
    BillingCustomer,
    BillingPayment,
    BillingSubscription,
    DailyMetrics,
    Organization,
    SubscriptionEvent,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def _migration_url() -> str:
    """
    Pick the database the billing schema is migrated against.

    ``alembic -x db_url=...`` wins, then ``sqlalchemy.url`` in alembic.ini,
    then the same DATABASE_URL / CLOUD_DATABASE_URL / LOCAL_DATABASE_URL
    chain the API uses.
    """
    load_env_files()

    override = context.get_x_argument(as_dictionary=True).get("db_url")
    ini_url = (config.get_main_option("sqlalchemy.url") or "").strip()
    candidate = override or ini_url
    url = normalize_postgres_url(candidate) if candidate else resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError(
            "Billing migrations target PostgreSQL only (daily_metrics upserts rely on ON CONFLICT)."
        )
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _migration_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, **_COMPARE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
