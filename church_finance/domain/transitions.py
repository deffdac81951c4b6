"""Status transition graph for financial requests"""

from typing import FrozenSet

from church_finance.domain.models import FinancialRequest, RequestStatus, TERMINAL_STATUSES

S = RequestStatus

# Main path; APPROVED_NETWORK is resolved against the lead-approval flag
_NEXT = {
    S.CREATED: frozenset({S.APPROVED_NETWORK}),
    S.APPROVED_LEAD: frozenset({S.APPROVED_ADMIN}),
    S.APPROVED_ADMIN: frozenset({S.MONEY_DELIVERED}),
    S.MONEY_DELIVERED: frozenset({S.EXPENSES_SUBMITTED}),
    S.EXPENSES_SUBMITTED: frozenset({S.REMAINDER_REFUNDED, S.CLOSED}),
    S.REMAINDER_REFUNDED: frozenset({S.CLOSED}),
    S.CLOSED: frozenset(),
    S.REJECTED: frozenset(),
}


def allowed_next_statuses(request: FinancialRequest) -> FrozenSet[RequestStatus]:
    """
    Statuses reachable in one hop from the request's current status.

    From APPROVED_NETWORK the next hop is APPROVED_LEAD only when the
    request requires lead approval, otherwise APPROVED_ADMIN. REJECTED is
    reachable from every non-terminal status.
    """
    current = request.current_status
    if current == S.APPROVED_NETWORK:
        main = frozenset({S.APPROVED_LEAD if request.requires_lead_approval else S.APPROVED_ADMIN})
    else:
        main = _NEXT[current]

    if current in TERMINAL_STATUSES:
        return main
    return main | {S.REJECTED}


def can_transition_to(request: FinancialRequest, target: RequestStatus) -> bool:
    return target in allowed_next_statuses(request)
