"""
SQLAlchemy models for RestOps.
"""
from restops.models.record_collection import RecordCollection


__all__ = [
    "RecordCollection",
]
