"""Unit tests for the status transition graph"""

from decimal import Decimal

import pytest

from church_finance.domain.models import (
    Currency,
    DepositDestination,
    DepositType,
    FinancialRequest,
    RequestItem,
    RequestStatus,
)
from church_finance.domain.transitions import allowed_next_statuses, can_transition_to

S = RequestStatus


def make_request(status: RequestStatus, requires_lead_approval: bool = False) -> FinancialRequest:
    return FinancialRequest(
        branch_id=1,
        requester_user_id=10,
        description="Viaje de evangelismo",
        currency=Currency.PEN,
        items=[RequestItem(description="Taxi", amount=Decimal("80"))],
        deposit=DepositDestination(deposit_type=DepositType.EXTERNAL, bank_name="BCP", account_number="123"),
        total_amount=Decimal("80"),
        requires_lead_approval=requires_lead_approval,
        current_status=status,
    )


def test_created_moves_to_network_approval_or_rejection():
    """Test the only hops out of CREATED"""
    assert allowed_next_statuses(make_request(S.CREATED)) == {S.APPROVED_NETWORK, S.REJECTED}


def test_network_approval_skips_lead_below_threshold():
    """Test APPROVED_NETWORK goes straight to admin when lead approval is not required"""
    request = make_request(S.APPROVED_NETWORK, requires_lead_approval=False)

    assert allowed_next_statuses(request) == {S.APPROVED_ADMIN, S.REJECTED}
    assert not can_transition_to(request, S.APPROVED_LEAD)


def test_network_approval_requires_lead_above_threshold():
    """Test APPROVED_NETWORK must pass through lead approval when required"""
    request = make_request(S.APPROVED_NETWORK, requires_lead_approval=True)

    assert allowed_next_statuses(request) == {S.APPROVED_LEAD, S.REJECTED}
    assert not can_transition_to(request, S.APPROVED_ADMIN)


def test_expenses_submitted_can_close_directly_or_refund_first():
    """Test both exits from EXPENSES_SUBMITTED"""
    request = make_request(S.EXPENSES_SUBMITTED)

    assert can_transition_to(request, S.CLOSED)
    assert can_transition_to(request, S.REMAINDER_REFUNDED)
    assert not can_transition_to(request, S.MONEY_DELIVERED)


@pytest.mark.parametrize(
    "current,expected",
    [
        (S.APPROVED_LEAD, S.APPROVED_ADMIN),
        (S.APPROVED_ADMIN, S.MONEY_DELIVERED),
        (S.MONEY_DELIVERED, S.EXPENSES_SUBMITTED),
        (S.REMAINDER_REFUNDED, S.CLOSED),
    ],
)
def test_linear_steps(current, expected):
    """Test single-successor statuses also allow rejection"""
    assert allowed_next_statuses(make_request(current, requires_lead_approval=True)) == {expected, S.REJECTED}


@pytest.mark.parametrize("terminal", [S.CLOSED, S.REJECTED])
def test_terminal_statuses_have_no_successors(terminal):
    """Test CLOSED and REJECTED are dead ends"""
    request = make_request(terminal)

    assert allowed_next_statuses(request) == frozenset()
    assert request.is_terminal


def test_created_cannot_be_re_entered():
    """Test CREATED is never a transition target"""
    for status in S:
        assert not can_transition_to(make_request(status), S.CREATED)
