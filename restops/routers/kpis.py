"""
KPI router: headline financial metrics and outlet EBITDA history.
"""
from fastapi import APIRouter, Depends

from restops.core.deps import get_operations_service, get_report_filters
from restops.schemas.reports import (
    EbitdaHistoryResponse,
    KpiResponse,
    OutletKpiListResponse,
    OutletKpiResponse,
)
from restops.services.operations import OperationsService, ReportFilters


router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get("", response_model=KpiResponse)
def get_kpis(
    filters: ReportFilters = Depends(get_report_filters),
    service: OperationsService = Depends(get_operations_service),
):
    """
    KPI snapshot for the selected brand/outlet/date slice.

    Percentages are 0 when their denominator is 0.
    """
    return KpiResponse.model_validate(service.kpis(filters))


@router.get("/ebitda-by-outlet", response_model=EbitdaHistoryResponse)
def get_ebitda_history(
    filters: ReportFilters = Depends(get_report_filters),
    service: OperationsService = Depends(get_operations_service),
):
    """Monthly EBITDA per outlet, the input of the negative-streak alert."""
    return EbitdaHistoryResponse(outlets=service.ebitda_history(filters))


@router.get("/by-outlet", response_model=OutletKpiListResponse)
def get_kpis_by_outlet(
    filters: ReportFilters = Depends(get_report_filters),
    service: OperationsService = Depends(get_operations_service),
):
    """KPI snapshot per outlet. Rows without an outlet go under the unassigned label."""
    return OutletKpiListResponse(outlets=[
        OutletKpiResponse(outlet=outlet, kpis=KpiResponse.model_validate(snapshot))
        for outlet, snapshot in service.kpis_by_outlet(filters)
    ])
