"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ItemIn(CamelModel):
    description: Optional[str] = None
    amount: Optional[float] = None


class CreateFinancialRequest(CamelModel):
    """Request body for POST /financial-requests"""

    branch_id: Optional[int] = None
    requester_user_id: Optional[int] = None
    supervisor_user_id: Optional[int] = None
    description: Optional[str] = None
    currency: Optional[str] = None
    cost_center_id: Optional[int] = None
    items: Optional[List[ItemIn]] = None
    deposit_type: Optional[str] = None
    own_account_id: Optional[int] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_number_cci: Optional[str] = Field(None, alias="accountNumberCCI")
    doc_type: Optional[str] = None
    doc_number: Optional[str] = None


class UpdateFinancialRequest(CreateFinancialRequest):
    """Request body for PUT /financial-requests/{id}; only supplied fields change"""


class StatusChange(CamelModel):
    """Request body for PATCH /financial-requests/{id}/status"""

    status: Optional[str] = None
    evidence_urls: Optional[List[Any]] = None
    rejection_reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    remainder_amount: Optional[float] = None


class ItemOut(CamelModel):
    description: str
    amount: float


class StatusHistoryOut(CamelModel):
    status: str
    changed_at: datetime
    changed_by: int
    approved: bool
    rejection_reason: Optional[str] = None
    evidence_urls: List[str] = []
    metadata: Optional[Dict[str, Any]] = None


class StepOut(CamelModel):
    status: str
    completed: bool


class FinancialRequestOut(CamelModel):
    """Financial request as returned by the API"""

    id: int
    branch_id: int
    supervisor_user_id: Optional[int] = None
    requester_user_id: int
    description: str
    currency: str
    cost_center_id: Optional[int] = None
    items: List[ItemOut]
    total_amount: float
    deposit_type: str
    own_account_id: Optional[int] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_number_cci: Optional[str] = Field(None, alias="accountNumberCCI")
    doc_type: Optional[str] = None
    doc_number: Optional[str] = None
    requires_lead_approval: bool
    current_status: str
    status_history: List[StatusHistoryOut]
    remainder_amount: float
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    state_stepper: Optional[List[StepOut]] = None


class FinancialRequestList(CamelModel):
    """Response for GET /financial-requests"""

    count: int
    data: List[FinancialRequestOut]


class RemainderTargetSchema(CamelModel):
    account_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    notes: Optional[str] = None


class FinanceConfigOut(CamelModel):
    max_amount_lead_approval: float
    default_currency: str
    remainder_target: RemainderTargetSchema


class FinanceConfigUpdate(CamelModel):
    """Request body for PATCH /financial-config"""

    max_amount_lead_approval: Optional[float] = None
    default_currency: Optional[str] = None
    remainder_target: Optional[RemainderTargetSchema] = None
