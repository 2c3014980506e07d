from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from apartment_manager.core.config import settings
from apartment_manager.core.database import Base

# Importing the models registers their tables on Base.metadata
from apartment_manager.models.monthly_report import MonthlyReport  # noqa: F401
from apartment_manager.models.payment import TenantPayment  # noqa: F401
from apartment_manager.models.property import Property  # noqa: F401
from apartment_manager.models.spending_config import PropertySpendingConfig, SpendingConfig  # noqa: F401
from apartment_manager.models.user import User  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=settings.database_url_sync,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(settings.database_url_sync, pool_pre_ping=True)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
