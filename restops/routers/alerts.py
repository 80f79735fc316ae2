"""
Alerts router: rule configuration and triggered alerts.
"""
from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from restops.core.deps import get_operations_service, get_report_filters
from restops.schemas.reports import (
    ActionItemListResponse,
    ActionItemResponse,
    AlertListResponse,
    AlertResponse,
    PushRequest,
)
from restops.services.operations import OperationsService, ReportFilters


router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=AlertListResponse)
def get_alerts(
    filters: ReportFilters = Depends(get_report_filters),
    service: OperationsService = Depends(get_operations_service),
):
    """Evaluate the enabled rules against the filtered data."""
    report = service.alerts(filters)
    return AlertListResponse(
        alerts=[
            AlertResponse(
                rule_id=alert.rule_id,
                metric_type=alert.metric_type,
                level=alert.level,
                subject=alert.subject,
                value=alert.value,
                threshold=alert.threshold,
                message=alert.message,
            )
            for alert in report.alerts
        ],
        food_cost_pct=report.kpis.cogs_percent_of_sales,
        labor_pct=report.kpis.labor_percent_of_sales,
    )


@router.get("/rules")
def get_rules(service: OperationsService = Depends(get_operations_service)):
    """Stored rules, or the defaults when none are stored."""
    return {"rules": [rule.to_record() for rule in service.alert_rules()]}


@router.put("/rules")
def update_rules(
    rules: List[Any] = Body(..., embed=True),
    service: OperationsService = Depends(get_operations_service),
):
    try:
        saved = service.save_alert_rules(rules)
    except (ValidationError, TypeError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return {"rules": [rule.to_record() for rule in saved]}


@router.post("/push-to-action-plan", response_model=ActionItemListResponse)
def push_alerts(
    request: PushRequest,
    service: OperationsService = Depends(get_operations_service),
):
    """Create one task per triggered alert."""
    filters = ReportFilters(
        brand=request.brand,
        outlet=request.outlet,
        start_date=request.start_date,
        end_date=request.end_date,
    )
    items = service.push_alerts_to_action_plan(filters, request.check_date)
    return ActionItemListResponse(
        items=[ActionItemResponse.model_validate(item) for item in items],
        created=len(items),
    )
