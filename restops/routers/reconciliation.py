"""
Inventory reconciliation router.

Provides API endpoints for:
- Theoretical vs actual variance per inventory item
- Editing start/actual counts
- Pushing significant variances to the action plan
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from restops.core.deps import get_operations_service, get_report_filters
from restops.schemas.reports import (
    ActionItemListResponse,
    ActionItemResponse,
    PushRequest,
    ReconciliationInputResponse,
    ReconciliationInputUpdate,
    ReconciliationResponse,
    VarianceRowResponse,
    VarianceSummaryResponse,
)
from restops.services.operations import OperationsService, ReportFilters
from restops.services.reconciliation import ReconciliationKey, ReconciliationThresholds, VarianceRow


router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])


def _row_response(row: VarianceRow) -> VarianceRowResponse:
    return VarianceRowResponse(
        key=row.key.storage_key(),
        item_code=row.item_code,
        item_name=row.item_name,
        brand=row.brand,
        outlet=row.outlet,
        unit=row.unit,
        unit_cost=row.unit_cost,
        start_qty=row.start_qty,
        theoretical_usage_qty=row.theoretical_usage_qty,
        theoretical_qty=row.theoretical_qty,
        actual_qty=row.actual_qty,
        variance_qty=row.variance_qty,
        variance_cost=row.variance_cost,
        variance_pct=row.variance_pct,
        note=row.note,
    )


def _thresholds(
    service: OperationsService,
    cost_threshold: Optional[Decimal],
    pct_threshold: Optional[Decimal],
) -> ReconciliationThresholds:
    defaults = service.default_thresholds()
    return ReconciliationThresholds(
        cost=defaults.cost if cost_threshold is None else cost_threshold,
        pct=defaults.pct if pct_threshold is None else pct_threshold,
    )


@router.get("", response_model=ReconciliationResponse)
def get_reconciliation(
    cost_threshold: Optional[Decimal] = Query(None, ge=0, description="Variance cost threshold"),
    pct_threshold: Optional[Decimal] = Query(None, ge=0, description="Variance % threshold"),
    filters: ReportFilters = Depends(get_report_filters),
    service: OperationsService = Depends(get_operations_service),
):
    """
    Variance rows for every inventory item in the brand/outlet filter, in
    stored order. `variance_pct` is null when theoretical stock is 0.
    """
    thresholds = _thresholds(service, cost_threshold, pct_threshold)
    report = service.reconciliation(filters, thresholds)

    return ReconciliationResponse(
        rows=[_row_response(row) for row in report.rows],
        summary=VarianceSummaryResponse(
            total_variance_cost=report.summary.total_variance_cost,
            total_theoretical_qty=report.summary.total_theoretical_qty,
            total_variance_pct=report.summary.total_variance_pct,
        ),
        significant_keys=[row.key.storage_key() for row in report.significant],
        cost_threshold=thresholds.cost,
        pct_threshold=thresholds.pct,
        unmatched_waste=report.unmatched_waste,
        ambiguous_waste=report.ambiguous_waste,
    )


@router.put("/inputs", response_model=ReconciliationInputResponse)
def update_input(
    update: ReconciliationInputUpdate,
    service: OperationsService = Depends(get_operations_service),
):
    """Set start count, actual count or note for one item."""
    key = ReconciliationKey(update.item_code, update.brand, update.outlet)
    counts = service.update_reconciliation_input(key, update.field, update.value)
    return ReconciliationInputResponse(
        key=key.storage_key(),
        start_qty=counts.start_qty,
        actual_qty=counts.actual_qty,
        note=counts.note,
    )


@router.post("/push-to-action-plan", response_model=ActionItemListResponse)
def push_to_action_plan(
    request: PushRequest,
    service: OperationsService = Depends(get_operations_service),
):
    """
    Create one investigation task per variance above the thresholds.

    Tasks are appended every time this is called.
    """
    filters = ReportFilters(
        brand=request.brand,
        outlet=request.outlet,
        start_date=request.start_date,
        end_date=request.end_date,
    )
    thresholds = _thresholds(service, request.cost_threshold, request.pct_threshold)
    items = service.push_variances_to_action_plan(filters, thresholds, request.check_date)
    return ActionItemListResponse(
        items=[ActionItemResponse.model_validate(item) for item in items],
        created=len(items),
    )
