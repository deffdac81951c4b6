"""Financial request use-cases: create, edit, transition, fetch and list"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from church_finance.domain import guard
from church_finance.domain.exceptions import NotFoundError, StateConflictError, ValidationError
from church_finance.domain.models import (
    Actor,
    Branch,
    DepositDestination,
    DepositType,
    FinancialRequest,
    RequestDraft,
    RequestStatus,
    StatusHistoryEntry,
    TransitionCommand,
)
from church_finance.domain.requests import (
    EVIDENCE_REQUIRED_STATUSES,
    build_deposit,
    check_own_account,
    deposit_fields,
    normalize_currency,
    normalize_description,
    normalize_items,
    normalize_metadata,
    normalize_rejection_reason,
    parse_optional_id,
    parse_remainder,
    parse_status,
    recompute_derived,
    sanitize_evidence,
)
from church_finance.domain.transitions import allowed_next_statuses, can_transition_to
from church_finance.infrastructure.database.repositories import (
    AccountRepository,
    BranchRepository,
    FinancialRequestRepository,
    GlobalConfigRepository,
    UserRepository,
)
from church_finance.infrastructure.observability.logging import (
    log_request_created,
    log_request_edited,
    log_status_changed,
)
from church_finance.infrastructure.observability.metrics import record_created, record_transition
from church_finance.services.base import ServiceBase

DEPOSIT_KEYS = (
    "deposit_type",
    "own_account_id",
    "bank_name",
    "account_number",
    "account_number_cci",
    "doc_type",
    "doc_number",
)

EDITABLE_KEYS = frozenset(
    DEPOSIT_KEYS
    + ("description", "currency", "items", "cost_center_id", "supervisor_user_id", "branch_id")
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FinancialRequestService(ServiceBase):
    """
    Orchestrates the financial request workflow.

    Every use-case reads the aggregate, validates completely, and only then
    writes it back in one commit. The global configuration is read fresh on
    each call so threshold changes apply immediately.
    """

    def __init__(
        self,
        db: Session,
        config_store: Optional[GlobalConfigRepository] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(db, request_id)
        self.requests = FinancialRequestRepository(db)
        self.branches = BranchRepository(db)
        self.accounts = AccountRepository(db)
        self.users = UserRepository(db)
        self.config_store = config_store or GlobalConfigRepository(db)

    # Lookups

    def _load(self, request_id: int) -> FinancialRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFoundError(f"Financial request {request_id} not found")
        return request

    def _branch(self, branch_id: int) -> Branch:
        branch = self.branches.get(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        if not branch.active:
            raise ValidationError(f"Branch {branch_id} is inactive")
        return branch

    def _ensure_user(self, user_id: int, label: str) -> None:
        if self.users.get(user_id) is None:
            raise NotFoundError(f"{label} {user_id} not found")

    def _person_of(self, user_id: int) -> Optional[int]:
        user = self.users.get(user_id)
        return user.person_id if user else None

    def _check_destination(self, deposit: DepositDestination, requester_person_id: Optional[int]) -> None:
        if deposit.deposit_type != DepositType.OWN_ACCOUNT:
            return
        account = self.accounts.get(deposit.own_account_id)
        if account is None:
            raise NotFoundError(f"Account {deposit.own_account_id} not found")
        check_own_account(account, requester_person_id)

    # Use-cases

    def create(self, actor: Actor, draft: RequestDraft) -> FinancialRequest:
        """
        Create a request in CREATED status with one seed history entry.

        Raises:
            AuthorizationError: caller lacks a creator role
            NotFoundError: branch, requester, supervisor or account missing
            ValidationError: any field fails its rule
        """
        with self.unit_of_work("create", actor):
            requester_id = parse_optional_id(draft.requester_user_id, "Requester id") or actor.user_id
            guard.ensure_can_create(actor, requester_id)

            branch_id = parse_optional_id(draft.branch_id, "Branch id") or actor.branch_id
            if branch_id is None:
                raise ValidationError("A branch is required")
            branch = self._branch(branch_id)

            if requester_id == actor.user_id:
                requester_person_id = actor.person_id
            else:
                self._ensure_user(requester_id, "Requester")
                requester_person_id = self._person_of(requester_id)

            supervisor_id = parse_optional_id(draft.supervisor_user_id, "Supervisor id")
            if supervisor_id is not None:
                self._ensure_user(supervisor_id, "Supervisor")

            config = self.config_store.load()
            description = normalize_description(draft.description)
            currency = normalize_currency(draft.currency, config.default_currency)
            items = normalize_items(draft.items)

            deposit = build_deposit({key: getattr(draft, key) for key in DEPOSIT_KEYS})
            self._check_destination(deposit, requester_person_id)

            request = FinancialRequest(
                branch_id=branch.id,
                requester_user_id=requester_id,
                supervisor_user_id=supervisor_id or branch.manager_user_id,
                description=description,
                currency=currency,
                cost_center_id=parse_optional_id(draft.cost_center_id, "Cost center id"),
                items=items,
                deposit=deposit,
            )
            recompute_derived(request, config.max_amount_lead_approval)
            request.append_status(
                StatusHistoryEntry(
                    status=RequestStatus.CREATED,
                    changed_by=requester_id,
                    changed_at=_now(),
                    approved=True,
                )
            )

            created = self.requests.add(request)

        record_created(created.currency.value)
        log_request_created(
            self.request_id,
            created.id,
            actor.user_id,
            str(created.total_amount),
            created.requires_lead_approval,
        )
        return created

    def edit(self, request_id: int, actor: Actor, changes: Mapping[str, Any]) -> FinancialRequest:
        """
        Apply a partial edit to a request still in CREATED status.

        Supplied fields are re-validated with the creation rules. Total and
        lead-approval flag are recomputed afterwards even when items did not
        change, since the threshold may have moved.

        Raises:
            StateConflictError: request is past CREATED
            AuthorizationError: caller is neither requester nor admin
        """
        changes = {key: value for key, value in changes.items() if key in EDITABLE_KEYS}

        with self.unit_of_work("edit", actor):
            request = self._load(request_id)
            if request.current_status != RequestStatus.CREATED:
                raise StateConflictError(
                    f"Only requests in status CREATED can be edited (current: {request.current_status.value})"
                )
            guard.ensure_can_edit(request, actor)

            if "description" in changes:
                request.description = normalize_description(changes["description"])
            if "currency" in changes:
                request.currency = normalize_currency(changes["currency"], request.currency)

            items_changed = "items" in changes
            if items_changed:
                request.items = normalize_items(changes["items"])

            if "cost_center_id" in changes:
                request.cost_center_id = parse_optional_id(changes["cost_center_id"], "Cost center id")

            if "supervisor_user_id" in changes:
                supervisor_id = parse_optional_id(changes["supervisor_user_id"], "Supervisor id")
                if supervisor_id is not None:
                    self._ensure_user(supervisor_id, "Supervisor")
                request.supervisor_user_id = supervisor_id

            if "branch_id" in changes:
                branch_id = parse_optional_id(changes["branch_id"], "Branch id")
                if branch_id is None:
                    raise ValidationError("A branch is required")
                branch = self._branch(branch_id)
                request.branch_id = branch.id
                if "supervisor_user_id" not in changes and branch.manager_user_id is not None:
                    request.supervisor_user_id = branch.manager_user_id

            fields = deposit_fields(request.deposit)
            fields.update({key: changes[key] for key in DEPOSIT_KEYS if key in changes})
            request.deposit = build_deposit(fields)
            self._check_destination(request.deposit, self._person_of(request.requester_user_id))

            config = self.config_store.load()
            recompute_derived(request, config.max_amount_lead_approval)

            updated = self.requests.save(request, items_changed=items_changed)

        log_request_edited(self.request_id, updated.id, actor.user_id, list(changes))
        return updated

    def transition(self, request_id: int, actor: Actor, command: TransitionCommand) -> FinancialRequest:
        """
        Move a request to its next status and append the audit entry.

        All checks run before anything is mutated: terminal state, transition
        graph, authorization, rejection reason, evidence and remainder.

        Raises:
            ValidationError: unknown status or missing reason/evidence/remainder
            StateConflictError: request is terminal or target not reachable
            AuthorizationError: actor may not perform this transition
        """
        with self.unit_of_work("transition", actor):
            request = self._load(request_id)
            target = parse_status(command.status)

            if request.is_terminal:
                raise StateConflictError(
                    f"Request is already {request.current_status.value} and cannot change status"
                )
            if not can_transition_to(request, target):
                allowed = ", ".join(sorted(s.value for s in allowed_next_statuses(request)))
                raise StateConflictError(
                    f"Transition from {request.current_status.value} to {target.value} is not allowed "
                    f"(allowed: {allowed})"
                )

            guard.ensure_transition_permitted(request, target, actor)

            rejection_reason = None
            if target == RequestStatus.REJECTED:
                rejection_reason = normalize_rejection_reason(command.rejection_reason)

            evidence = sanitize_evidence(command.evidence_urls)
            if target in EVIDENCE_REQUIRED_STATUSES and not evidence:
                raise ValidationError(f"Evidence is required to move to {target.value}")

            metadata = normalize_metadata(command.metadata)
            remainder: Optional[Decimal] = None
            if target == RequestStatus.REMAINDER_REFUNDED:
                remainder = parse_remainder(command.remainder_amount)
                metadata = dict(metadata or {})
                metadata["remainderAmount"] = float(remainder)

            from_status = request.current_status
            if remainder is not None:
                request.remainder_amount = remainder
            request.append_status(
                StatusHistoryEntry(
                    status=target,
                    changed_by=actor.user_id,
                    changed_at=_now(),
                    approved=target != RequestStatus.REJECTED,
                    rejection_reason=rejection_reason,
                    evidence_urls=tuple(evidence),
                    metadata=metadata,
                )
            )

            updated = self.requests.save(request)

        record_transition(target.value)
        log_status_changed(self.request_id, updated.id, actor.user_id, from_status.value, target.value)
        return updated

    def get(self, request_id: int, actor: Actor) -> FinancialRequest:
        with self.unit_of_work("get", actor):
            request = self._load(request_id)
            guard.ensure_can_view(request, actor)
        return request

    def list(
        self,
        actor: Actor,
        status: Any = None,
        branch_id: Any = None,
        requester_user_id: Any = None,
    ) -> List[FinancialRequest]:
        """List requests; callers without a global view only see their branch and their own requests"""
        with self.unit_of_work("list", actor):
            filters: Dict[str, Any] = {
                "status": parse_status(status) if status else None,
                "branch_id": parse_optional_id(branch_id, "Branch id"),
                "requester_user_id": parse_optional_id(requester_user_id, "Requester id"),
            }
            if not guard.sees_all_branches(actor):
                filters["scope_branch_id"] = actor.branch_id
                filters["scope_user_id"] = actor.user_id
            requests = self.requests.list(**filters)
        return requests
