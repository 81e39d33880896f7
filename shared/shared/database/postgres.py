"""Async engine and session factory construction.

Connection pooling and TLS come from the environment so every process
(API, worker, migrations, seed script) connects the same way:

  DATABASE_SSL        disable | require | verify  (default: disable)
  RDS_SSL_CERT        CA bundle used when DATABASE_SSL=verify
  DATABASE_POOL_SIZE  base pool size (default 5)
"""

import os
import ssl
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _ssl_connect_args() -> dict[str, Any]:
    mode = os.environ.get("DATABASE_SSL", "").lower()
    if not mode or mode == "disable":
        return {}

    cert_path = os.environ.get("RDS_SSL_CERT", "")
    if mode == "verify":
        if not cert_path or not Path(cert_path).exists():
            raise RuntimeError("DATABASE_SSL=verify needs RDS_SSL_CERT pointing at a CA bundle")
        return {"ssl": ssl.create_default_context(cafile=cert_path)}

    # Encrypted, no certificate verification
    return {"ssl": "require"}


def _pool_kwargs(database_url: str, *, pooled: bool) -> dict[str, Any]:
    if not database_url.startswith("postgresql"):
        return {}
    kwargs: dict[str, Any] = {"connect_args": _ssl_connect_args()}
    if pooled:
        pool_size = int(os.environ.get("DATABASE_POOL_SIZE", "5"))
        kwargs.update(
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=pool_size * 2,
            pool_recycle=3600,
        )
    return kwargs


def get_async_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    # A caller-supplied poolclass (e.g. NullPool for migrations) takes no sizing options
    defaults = _pool_kwargs(database_url, pooled="poolclass" not in kwargs)
    return create_async_engine(database_url, **{**defaults, **kwargs})


def get_async_session_factory(
    database_url: str,
    *,
    expire_on_commit: bool = False,
    **engine_kwargs: Any,
) -> async_sessionmaker[AsyncSession]:
    engine = get_async_engine(database_url, **engine_kwargs)
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=expire_on_commit,
        autoflush=False,
    )
