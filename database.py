# database.py
# Establishes connection to SQL database (Postgres/SQLite) and ORM setup.

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

def _connect_args(url: str) -> dict:
    # asyncpg SSL mode: "prefer" = try SSL but don't fail if unavailable, "require" = SSL mandatory
    if url.startswith("postgresql+asyncpg"):
        return {
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "server_settings": {"application_name": "bank_backoffice"},
            "ssl": settings.DB_SSL_MODE,
        }
    return {}

# NullPool: No pooling, creates new connection for each request (safest for async)
engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args=_connect_args(SQLALCHEMY_DATABASE_URL),
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()
