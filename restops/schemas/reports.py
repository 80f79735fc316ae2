"""
Report Pydantic schemas for KPI, reconciliation, alert and action plan endpoints.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class KpiResponse(BaseModel):
    """KPI snapshot for the filtered slice."""
    total_sales: Decimal
    total_purchases: Decimal
    total_waste: Decimal
    total_opex: Decimal
    total_labor: Decimal
    depreciation_amortization: Decimal
    interest_tax: Decimal
    operating_opex: Decimal
    ebitda: Decimal
    net_profit: Decimal
    waste_percent: Decimal
    labor_percent_of_sales: Decimal
    cogs_percent_of_sales: Decimal
    ebitda_margin: Decimal

    class Config:
        from_attributes = True


class OutletKpiResponse(BaseModel):
    outlet: str
    kpis: KpiResponse


class OutletKpiListResponse(BaseModel):
    """Per-outlet snapshots sorted by outlet name."""
    outlets: List[OutletKpiResponse]


class EbitdaHistoryResponse(BaseModel):
    """Monthly EBITDA per outlet: {outlet: {"YYYY-MM": ebitda}}."""
    outlets: Dict[str, Dict[str, Decimal]]


class VarianceRowResponse(BaseModel):
    key: str
    item_code: str
    item_name: str
    brand: str
    outlet: str
    unit: str
    unit_cost: Decimal
    start_qty: Decimal
    theoretical_usage_qty: Decimal
    theoretical_qty: Decimal
    actual_qty: Decimal
    variance_qty: Decimal
    variance_cost: Decimal
    variance_pct: Optional[Decimal]
    note: str


class VarianceSummaryResponse(BaseModel):
    total_variance_cost: Decimal
    total_theoretical_qty: Decimal
    total_variance_pct: Optional[Decimal]


class ReconciliationResponse(BaseModel):
    rows: List[VarianceRowResponse]
    summary: VarianceSummaryResponse
    significant_keys: List[str]
    cost_threshold: Optional[Decimal]
    pct_threshold: Optional[Decimal]
    unmatched_waste: int
    ambiguous_waste: int


class ReconciliationInputUpdate(BaseModel):
    """Edit one field of one item's counts."""
    item_code: str
    brand: str = ""
    outlet: str = ""
    field: str
    value: Any = None

    @field_validator("field")
    @classmethod
    def field_known(cls, v):
        if v not in ("startQty", "actualQty", "note"):
            raise ValueError("field must be one of startQty, actualQty, note")
        return v


class ReconciliationInputResponse(BaseModel):
    key: str
    start_qty: Decimal
    actual_qty: Decimal
    note: str


class PushRequest(BaseModel):
    """Options for pushing findings to the action plan."""
    brand: Optional[str] = None
    outlet: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    check_date: Optional[date] = None
    cost_threshold: Optional[Decimal] = Field(None, ge=0)
    pct_threshold: Optional[Decimal] = Field(None, ge=0)


class AlertResponse(BaseModel):
    rule_id: str
    metric_type: str
    level: str
    subject: str
    value: Optional[Decimal]
    threshold: Decimal
    message: str


class AlertListResponse(BaseModel):
    alerts: List[AlertResponse]
    food_cost_pct: Decimal
    labor_pct: Decimal


class ActionItemResponse(BaseModel):
    id: str
    created_at: datetime
    area: str
    title: str
    description: str
    owner: str
    status: str
    priority: str
    due_date: str
    source: str
    source_key: str

    class Config:
        from_attributes = True


class ActionItemListResponse(BaseModel):
    items: List[ActionItemResponse]
    created: int
