"""
Shared FastAPI dependencies.
"""
from datetime import date
from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from restops.core.config import get_settings
from restops.db.session import get_db
from restops.services.operations import OperationsService, ReportFilters
from restops.services.record_store import RecordStore, SqlRecordStore


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db)


def get_operations_service(store: RecordStore = Depends(get_record_store)) -> OperationsService:
    return OperationsService(store, get_settings())


def get_report_filters(
    brand: Optional[str] = Query(None, description="Brand, or 'all'"),
    outlet: Optional[str] = Query(None, description="Outlet, or 'all'"),
    start_date: Optional[date] = Query(None, description="Filter from date"),
    end_date: Optional[date] = Query(None, description="Filter to date"),
) -> ReportFilters:
    return ReportFilters(brand=brand, outlet=outlet, start_date=start_date, end_date=end_date)
