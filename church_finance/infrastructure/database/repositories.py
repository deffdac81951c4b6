"""Data access layer for finance entities"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from church_finance.config import settings
from church_finance.domain.exceptions import StateConflictError
from church_finance.domain.models import (
    Account,
    Branch,
    Currency,
    DepositDestination,
    DepositType,
    FinancialRequest,
    GlobalConfig,
    RemainderTarget,
    RequestItem,
    RequestStatus,
    StatusHistoryEntry,
    UserRecord,
)
from church_finance.infrastructure.database.models import (
    AccountRow,
    BranchRow,
    FinancialRequestItemRow,
    FinancialRequestRow,
    GlobalConfigRow,
    StatusHistoryRow,
    UserRow,
)


class BranchRepository:
    """Branch directory lookups"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, branch_id: int) -> Optional[Branch]:
        row = self.db.get(BranchRow, branch_id)
        if row is None:
            return None
        return Branch(
            id=row.id,
            name=row.name,
            manager_user_id=row.manager_user_id,
            parent_branch_id=row.parent_branch_id,
            active=row.active,
        )


class UserRepository:
    """Identity provider backed by the users table"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[UserRecord]:
        row = self.db.get(UserRow, user_id)
        if row is None:
            return None
        return UserRecord(
            id=row.id,
            username=row.username,
            person_id=row.person_id,
            branch_id=row.branch_id,
            raw_roles=list(row.roles or []),
            active=row.active,
        )


class AccountRepository:
    """Account registry lookups"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: int) -> Optional[Account]:
        row = self.db.get(AccountRow, account_id)
        if row is None:
            return None
        return Account(
            id=row.id,
            person_id=row.person_id,
            bank_name=row.bank_name,
            account_number=row.account_number,
            active=row.active,
        )


class GlobalConfigRepository:
    """Singleton configuration store, created lazily on first read"""

    def __init__(self, db: Session):
        self.db = db

    def _row(self) -> GlobalConfigRow:
        row = self.db.query(GlobalConfigRow).order_by(GlobalConfigRow.id).first()
        if row is None:
            row = GlobalConfigRow(
                max_amount_lead_approval=settings.default_max_amount_lead_approval,
                default_currency=Currency(settings.default_currency.upper()).value,
            )
            self.db.add(row)
            self.db.flush()
        return row

    def load(self) -> GlobalConfig:
        row = self._row()
        return GlobalConfig(
            max_amount_lead_approval=Decimal(row.max_amount_lead_approval),
            default_currency=Currency(row.default_currency),
            remainder_target=RemainderTarget(
                account_name=row.remainder_account_name,
                bank_name=row.remainder_bank_name,
                account_number=row.remainder_account_number,
                notes=row.remainder_notes,
            ),
        )

    def save(self, config: GlobalConfig) -> None:
        row = self._row()
        row.max_amount_lead_approval = config.max_amount_lead_approval
        row.default_currency = config.default_currency.value
        row.remainder_account_name = config.remainder_target.account_name
        row.remainder_bank_name = config.remainder_target.bank_name
        row.remainder_account_number = config.remainder_target.account_number
        row.remainder_notes = config.remainder_target.notes
        self.db.flush()


def _to_domain(row: FinancialRequestRow) -> FinancialRequest:
    return FinancialRequest(
        id=row.id,
        branch_id=row.branch_id,
        requester_user_id=row.requester_user_id,
        supervisor_user_id=row.supervisor_user_id,
        description=row.description,
        currency=Currency(row.currency),
        cost_center_id=row.cost_center_id,
        items=[RequestItem(description=i.description, amount=Decimal(i.amount)) for i in row.items],
        deposit=DepositDestination(
            deposit_type=DepositType(row.deposit_type),
            own_account_id=row.own_account_id,
            bank_name=row.bank_name,
            account_number=row.account_number,
            account_number_cci=row.account_number_cci,
            doc_type=row.doc_type,
            doc_number=row.doc_number,
        ),
        total_amount=Decimal(row.total_amount),
        requires_lead_approval=row.requires_lead_approval,
        current_status=RequestStatus(row.current_status),
        status_history=[
            StatusHistoryEntry(
                status=RequestStatus(h.status),
                changed_by=h.changed_by,
                changed_at=h.changed_at,
                approved=h.approved,
                rejection_reason=h.rejection_reason,
                evidence_urls=tuple(h.evidence_urls or ()),
                metadata=h.metadata_json,
            )
            for h in row.history
        ],
        remainder_amount=Decimal(row.remainder_amount or 0),
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _scalar_fields(request: FinancialRequest) -> dict:
    deposit = request.deposit
    return {
        "branch_id": request.branch_id,
        "supervisor_user_id": request.supervisor_user_id,
        "requester_user_id": request.requester_user_id,
        "description": request.description,
        "currency": request.currency.value,
        "cost_center_id": request.cost_center_id,
        "total_amount": request.total_amount,
        "deposit_type": deposit.deposit_type.value,
        "own_account_id": deposit.own_account_id,
        "bank_name": deposit.bank_name,
        "account_number": deposit.account_number,
        "account_number_cci": deposit.account_number_cci,
        "doc_type": deposit.doc_type,
        "doc_number": deposit.doc_number,
        "requires_lead_approval": request.requires_lead_approval,
        "current_status": request.current_status.value,
        "remainder_amount": request.remainder_amount,
    }


def _item_rows(request_id: int, items: Iterable[RequestItem]) -> List[FinancialRequestItemRow]:
    return [
        FinancialRequestItemRow(
            request_id=request_id,
            position=position,
            description=item.description,
            amount=item.amount,
        )
        for position, item in enumerate(items)
    ]


def _history_row(request_id: int, sequence: int, entry: StatusHistoryEntry) -> StatusHistoryRow:
    return StatusHistoryRow(
        request_id=request_id,
        sequence=sequence,
        status=entry.status.value,
        changed_by=entry.changed_by,
        changed_at=entry.changed_at,
        approved=entry.approved,
        rejection_reason=entry.rejection_reason,
        evidence_urls=list(entry.evidence_urls),
        metadata_json=entry.metadata,
    )


class FinancialRequestRepository:
    """Repository for financial request aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: int) -> Optional[FinancialRequest]:
        row = (
            self.db.query(FinancialRequestRow)
            .populate_existing()
            .filter(FinancialRequestRow.id == request_id)
            .first()
        )
        return _to_domain(row) if row is not None else None

    def add(self, request: FinancialRequest) -> FinancialRequest:
        """Insert a new aggregate with its items and seed history"""
        row = FinancialRequestRow(version=1, **_scalar_fields(request))
        self.db.add(row)
        self.db.flush()  # Get ID without committing

        self.db.add_all(_item_rows(row.id, request.items))
        self.db.add_all(
            _history_row(row.id, sequence, entry)
            for sequence, entry in enumerate(request.status_history)
        )
        self.db.flush()
        self.db.refresh(row)
        return _to_domain(row)

    def save(self, request: FinancialRequest, items_changed: bool = False) -> FinancialRequest:
        """
        Write an updated aggregate back as one versioned update.

        The UPDATE only matches when the stored version equals the version
        the caller read, so a concurrent writer makes this save fail instead
        of silently overwriting. History rows past the stored count are
        appended; stored history rows are never touched.

        Raises:
            StateConflictError: request changed since it was read
        """
        values = _scalar_fields(request)
        values["version"] = request.version + 1
        values["updated_at"] = datetime.now(timezone.utc)

        rowcount = (
            self.db.query(FinancialRequestRow)
            .filter(FinancialRequestRow.id == request.id)
            .filter(FinancialRequestRow.version == request.version)
            .update(values, synchronize_session=False)
        )
        if not rowcount:
            raise StateConflictError("The request was modified concurrently; reload and retry")

        if items_changed:
            (
                self.db.query(FinancialRequestItemRow)
                .filter(FinancialRequestItemRow.request_id == request.id)
                .delete(synchronize_session=False)
            )
            self.db.add_all(_item_rows(request.id, request.items))

        stored = (
            self.db.query(func.count(StatusHistoryRow.id))
            .filter(StatusHistoryRow.request_id == request.id)
            .scalar()
        )
        self.db.add_all(
            _history_row(request.id, sequence, entry)
            for sequence, entry in enumerate(request.status_history)
            if sequence >= stored
        )
        self.db.flush()
        self.db.expire_all()
        return self.get(request.id)

    def list(
        self,
        status: Optional[RequestStatus] = None,
        branch_id: Optional[int] = None,
        requester_user_id: Optional[int] = None,
        scope_branch_id: Optional[int] = None,
        scope_user_id: Optional[int] = None,
    ) -> List[FinancialRequest]:
        """
        Fetch requests newest first.

        scope_branch_id/scope_user_id restrict results to one branch plus the
        scope user's own requests.
        """
        query = self.db.query(FinancialRequestRow)
        if status is not None:
            query = query.filter(FinancialRequestRow.current_status == status.value)
        if branch_id is not None:
            query = query.filter(FinancialRequestRow.branch_id == branch_id)
        if requester_user_id is not None:
            query = query.filter(FinancialRequestRow.requester_user_id == requester_user_id)
        if scope_user_id is not None:
            query = query.filter(
                or_(
                    FinancialRequestRow.branch_id == scope_branch_id,
                    FinancialRequestRow.requester_user_id == scope_user_id,
                )
            )

        rows = query.order_by(FinancialRequestRow.created_at.desc(), FinancialRequestRow.id.desc()).all()
        return [_to_domain(row) for row in rows]
