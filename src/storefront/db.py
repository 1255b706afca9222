"""Engine and declarative base shared by all data-access modules."""

import sqlite3
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from storefront import settings


def normalize_database_url(url: str) -> str:
    # Force the psycopg2 driver
    if "psycopg://" in url:
        return url.replace("psycopg://", "psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


DATABASE_URL = normalize_database_url(settings.SQLALCHEMY_DATABASE_URL)

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # Local runs and tests: connections are shared across request threads and
    # writers wait on the busy handler instead of failing immediately.
    connect_args = {"check_same_thread": False, "timeout": settings.ORDER_TX_LOCK_TIMEOUT_MS / 1000}
    sqlite3.register_adapter(Decimal, str)

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

Base = declarative_base()


def is_postgres(conn) -> bool:
    return conn.dialect.name == "postgresql"
