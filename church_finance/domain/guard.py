"""Authorization matrix for financial request actions"""

from typing import FrozenSet, Iterable

from church_finance.domain.exceptions import AuthorizationError, StateConflictError
from church_finance.domain.models import Actor, FinancialRequest, RequestStatus, Role

S = RequestStatus

# Upper-cased raw role names from the identity provider
ROLE_ALIASES = {
    "REQUESTER": Role.REQUESTER,
    "SOLICITANTE": Role.REQUESTER,
    "NETWORK_PASTOR": Role.NETWORK_PASTOR,
    "PASTOR_RED": Role.NETWORK_PASTOR,
    "PASTOR DE RED": Role.NETWORK_PASTOR,
    "LEAD_PASTOR": Role.LEAD_PASTOR,
    "PASTOR_TITULAR": Role.LEAD_PASTOR,
    "PASTOR TITULAR": Role.LEAD_PASTOR,
    "ADMIN": Role.ADMIN,
    "ADMINISTRADOR": Role.ADMIN,
}

CREATOR_ROLES = (Role.REQUESTER, Role.NETWORK_PASTOR, Role.LEAD_PASTOR, Role.ADMIN)
GLOBAL_VIEWER_ROLES = (Role.ADMIN, Role.LEAD_PASTOR)


def resolve_roles(raw_roles: Iterable[str]) -> FrozenSet[Role]:
    """Map raw role strings to Role kinds once, ignoring unknown names"""
    resolved = set()
    for raw in raw_roles or []:
        role = ROLE_ALIASES.get(str(raw).strip().upper())
        if role is not None:
            resolved.add(role)
    return frozenset(resolved)


def is_requester(request: FinancialRequest, actor: Actor) -> bool:
    return request.requester_user_id == actor.user_id


def _ensure_network_level(request: FinancialRequest, actor: Actor, message: str) -> None:
    # Admins are never branch-scoped; network pastors only act on their own branch
    if actor.has_any(Role.ADMIN):
        return
    if not actor.has_any(Role.NETWORK_PASTOR):
        raise AuthorizationError(message)
    if actor.branch_id is None or actor.branch_id != request.branch_id:
        raise AuthorizationError("Network approval is limited to requests of your own branch")


def _ensure_admin(actor: Actor, message: str) -> None:
    if not actor.has_any(Role.ADMIN):
        raise AuthorizationError(message)


def _ensure_may_reject(request: FinancialRequest, actor: Actor) -> None:
    current = request.current_status

    if current == S.CREATED:
        _ensure_network_level(
            request, actor, "Only a network pastor or an administrator can reject at this stage"
        )
    elif current == S.APPROVED_NETWORK:
        if request.requires_lead_approval:
            if not actor.has_any(Role.LEAD_PASTOR, Role.ADMIN):
                raise AuthorizationError(
                    "Only the lead pastor or an administrator can reject at this stage"
                )
        else:
            _ensure_admin(actor, "Only an administrator can reject at this stage")
    elif current in (
        S.APPROVED_LEAD,
        S.APPROVED_ADMIN,
        S.MONEY_DELIVERED,
        S.EXPENSES_SUBMITTED,
        S.REMAINDER_REFUNDED,
    ):
        _ensure_admin(actor, "Only an administrator can reject at this stage")
    else:
        raise StateConflictError(f"A request in status {current.value} cannot be rejected")


def ensure_transition_permitted(
    request: FinancialRequest,
    target: RequestStatus,
    actor: Actor,
) -> None:
    """
    Check that the actor may move the request to the target status.

    Pure predicate: reads the request snapshot, never mutates it.

    Raises:
        AuthorizationError: actor lacks the required role, identity or branch
        StateConflictError: rejection requested from a terminal status
    """
    if target == S.APPROVED_NETWORK:
        _ensure_network_level(
            request, actor, "Only a network pastor or an administrator can approve at network level"
        )
    elif target == S.APPROVED_LEAD:
        if not actor.has_any(Role.LEAD_PASTOR, Role.ADMIN):
            raise AuthorizationError("Only the lead pastor or an administrator can grant lead approval")
    elif target in (S.APPROVED_ADMIN, S.MONEY_DELIVERED, S.CLOSED):
        _ensure_admin(actor, "Only an administrator can perform this action")
    elif target == S.EXPENSES_SUBMITTED:
        if not is_requester(request, actor):
            raise AuthorizationError("Only the requester can submit expense receipts")
    elif target == S.REMAINDER_REFUNDED:
        if not is_requester(request, actor) and not actor.has_any(Role.ADMIN):
            raise AuthorizationError("Only the requester or an administrator can report a refunded remainder")
    elif target == S.REJECTED:
        _ensure_may_reject(request, actor)
    else:
        raise StateConflictError(f"Status {target.value} cannot be set through a transition")


def ensure_can_create(actor: Actor, requester_user_id: int) -> None:
    if not actor.has_any(*CREATOR_ROLES):
        raise AuthorizationError("Your roles do not allow creating financial requests")
    if requester_user_id != actor.user_id and not actor.has_any(Role.ADMIN):
        raise AuthorizationError("Only an administrator can create requests on behalf of another user")


def ensure_can_edit(request: FinancialRequest, actor: Actor) -> None:
    if not is_requester(request, actor) and not actor.has_any(Role.ADMIN):
        raise AuthorizationError("Only the requester or an administrator can edit the request")


def sees_all_branches(actor: Actor) -> bool:
    return actor.has_any(*GLOBAL_VIEWER_ROLES)


def ensure_can_view(request: FinancialRequest, actor: Actor) -> None:
    if sees_all_branches(actor) or is_requester(request, actor):
        return
    if actor.branch_id is None or actor.branch_id != request.branch_id:
        raise AuthorizationError("You can only view requests of your own branch")


def ensure_can_manage_config(actor: Actor) -> None:
    _ensure_admin(actor, "Only an administrator can change the finance configuration")
