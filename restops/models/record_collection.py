"""
Record store table: one row per named collection.
"""
from sqlalchemy import Column, String, JSON, DateTime, func

from restops.db.base import Base


class RecordCollection(Base):
    """
    A whole named collection (sales, purchases, waste, ...) stored as JSON.

    The CRUD screens read and replace collections wholesale, so there is no
    per-record table. `records` is a list for row collections and an object
    for keyed ones (reconciliation inputs).
    """
    __tablename__ = "record_collections"

    name = Column(String(64), primary_key=True)
    records = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
