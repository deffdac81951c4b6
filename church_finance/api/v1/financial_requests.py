"""/financial-requests - create, list, fetch, edit and move requests through the workflow"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from church_finance.api.dependencies import get_current_actor, get_financial_request_service
from church_finance.api.v1.schemas import (
    CreateFinancialRequest,
    FinancialRequestList,
    FinancialRequestOut,
    ItemOut,
    StatusChange,
    StatusHistoryOut,
    StepOut,
    UpdateFinancialRequest,
)
from church_finance.domain.models import Actor, FinancialRequest, RequestDraft, TransitionCommand
from church_finance.domain.requests import build_state_stepper
from church_finance.services.financial_requests import FinancialRequestService

router = APIRouter()


def to_response(request: FinancialRequest, with_stepper: bool = False) -> FinancialRequestOut:
    deposit = request.deposit
    return FinancialRequestOut(
        id=request.id,
        branch_id=request.branch_id,
        supervisor_user_id=request.supervisor_user_id,
        requester_user_id=request.requester_user_id,
        description=request.description,
        currency=request.currency.value,
        cost_center_id=request.cost_center_id,
        items=[ItemOut(description=item.description, amount=float(item.amount)) for item in request.items],
        total_amount=float(request.total_amount),
        deposit_type=deposit.deposit_type.value,
        own_account_id=deposit.own_account_id,
        bank_name=deposit.bank_name,
        account_number=deposit.account_number,
        account_number_cci=deposit.account_number_cci,
        doc_type=deposit.doc_type,
        doc_number=deposit.doc_number,
        requires_lead_approval=request.requires_lead_approval,
        current_status=request.current_status.value,
        status_history=[
            StatusHistoryOut(
                status=entry.status.value,
                changed_at=entry.changed_at,
                changed_by=entry.changed_by,
                approved=entry.approved,
                rejection_reason=entry.rejection_reason,
                evidence_urls=list(entry.evidence_urls),
                metadata=entry.metadata,
            )
            for entry in request.status_history
        ],
        remainder_amount=float(request.remainder_amount),
        version=request.version,
        created_at=request.created_at,
        updated_at=request.updated_at,
        state_stepper=(
            [StepOut(status=step.status.value, completed=step.completed) for step in build_state_stepper(request)]
            if with_stepper
            else None
        ),
    )


@router.post("/financial-requests", response_model=FinancialRequestOut, status_code=201)
def create_financial_request(
    body: CreateFinancialRequest,
    actor: Actor = Depends(get_current_actor),
    service: FinancialRequestService = Depends(get_financial_request_service),
):
    """
    Create a financial request in status CREATED.

    Branch and requester default to the caller's; currency defaults to the
    configured default currency.
    """
    created = service.create(actor, RequestDraft(**body.model_dump()))
    return to_response(created)


@router.get("/financial-requests", response_model=FinancialRequestList)
def list_financial_requests(
    status: Optional[str] = Query(None, description="Filter by current status"),
    branch_id: Optional[int] = Query(None, alias="branchId", description="Filter by branch"),
    requester_user_id: Optional[int] = Query(None, alias="requesterUserId", description="Filter by requester"),
    actor: Actor = Depends(get_current_actor),
    service: FinancialRequestService = Depends(get_financial_request_service),
):
    requests = service.list(actor, status=status, branch_id=branch_id, requester_user_id=requester_user_id)
    return FinancialRequestList(count=len(requests), data=[to_response(r) for r in requests])


@router.get("/financial-requests/{request_id}", response_model=FinancialRequestOut)
def get_financial_request(
    request_id: int,
    actor: Actor = Depends(get_current_actor),
    service: FinancialRequestService = Depends(get_financial_request_service),
):
    """Fetch one request, including the state stepper for progress display"""
    return to_response(service.get(request_id, actor), with_stepper=True)


@router.put("/financial-requests/{request_id}", response_model=FinancialRequestOut)
def update_financial_request(
    request_id: int,
    body: UpdateFinancialRequest,
    actor: Actor = Depends(get_current_actor),
    service: FinancialRequestService = Depends(get_financial_request_service),
):
    """Edit a request while it is still CREATED; only supplied fields change"""
    updated = service.edit(request_id, actor, body.model_dump(exclude_unset=True))
    return to_response(updated)


@router.patch("/financial-requests/{request_id}/status", response_model=FinancialRequestOut)
def change_financial_request_status(
    request_id: int,
    body: StatusChange,
    actor: Actor = Depends(get_current_actor),
    service: FinancialRequestService = Depends(get_financial_request_service),
):
    command = TransitionCommand(
        status=body.status,
        evidence_urls=body.evidence_urls,
        rejection_reason=body.rejection_reason,
        metadata=body.metadata,
        remainder_amount=body.remainder_amount,
    )
    return to_response(service.transition(request_id, actor, command))
