"""
SQLAlchemy Base Configuration

Declarative base shared by the Axon models. Constraint names follow a fixed
convention so alembic migrations stay stable across SQLite and PostgreSQL.
"""

import uuid
from sqlalchemy import JSON, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.declarative import declarative_base

metadata = MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
})

Base = declarative_base(metadata=metadata)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def generate_id() -> str:
    """Primary key for rows created by the application."""
    return str(uuid.uuid4())


class ModelBase(Base):
    """Abstract parent of the Axon models."""

    __abstract__ = True
