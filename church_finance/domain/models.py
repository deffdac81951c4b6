"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


class RequestStatus(str, Enum):
    """Workflow position of a financial request"""

    CREATED = "CREATED"
    APPROVED_NETWORK = "APPROVED_NETWORK"
    APPROVED_LEAD = "APPROVED_LEAD"
    APPROVED_ADMIN = "APPROVED_ADMIN"
    MONEY_DELIVERED = "MONEY_DELIVERED"
    EXPENSES_SUBMITTED = "EXPENSES_SUBMITTED"
    REMAINDER_REFUNDED = "REMAINDER_REFUNDED"
    CLOSED = "CLOSED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES = frozenset({RequestStatus.CLOSED, RequestStatus.REJECTED})


class DepositType(str, Enum):
    OWN_ACCOUNT = "OWN_ACCOUNT"
    EXTERNAL = "EXTERNAL"


class Currency(str, Enum):
    PEN = "PEN"
    USD = "USD"


class Role(str, Enum):
    """Closed set of role kinds the workflow understands"""

    REQUESTER = "REQUESTER"
    NETWORK_PASTOR = "NETWORK_PASTOR"
    LEAD_PASTOR = "LEAD_PASTOR"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as seen by the workflow"""

    user_id: int
    person_id: Optional[int]
    branch_id: Optional[int]
    roles: FrozenSet[Role]

    def has_any(self, *roles: Role) -> bool:
        return any(role in self.roles for role in roles)


@dataclass
class Branch:
    """Branch directory record"""

    id: int
    name: str
    manager_user_id: Optional[int]
    parent_branch_id: Optional[int] = None
    active: bool = True


@dataclass
class Account:
    """Bank account registered to a person"""

    id: int
    person_id: int
    bank_name: str
    account_number: str
    active: bool = True


@dataclass
class UserRecord:
    """User known to the identity provider"""

    id: int
    username: str
    person_id: Optional[int]
    branch_id: Optional[int]
    raw_roles: List[str]
    active: bool = True


@dataclass
class RemainderTarget:
    """Where requesters return unspent funds"""

    account_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class GlobalConfig:
    """Singleton finance configuration"""

    max_amount_lead_approval: Decimal
    default_currency: Currency
    remainder_target: RemainderTarget = field(default_factory=RemainderTarget)


@dataclass(frozen=True)
class RequestItem:
    """Single expense line of a request"""

    description: str
    amount: Decimal


@dataclass(frozen=True)
class StatusHistoryEntry:
    """Audit record of one status change; never edited after append"""

    status: RequestStatus
    changed_by: int
    changed_at: datetime
    approved: bool = True
    rejection_reason: Optional[str] = None
    evidence_urls: tuple = ()
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class DepositDestination:
    """Where the disbursed money goes"""

    deposit_type: DepositType
    own_account_id: Optional[int] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_number_cci: Optional[str] = None
    doc_type: Optional[str] = None
    doc_number: Optional[str] = None


@dataclass
class FinancialRequest:
    """Financial request aggregate"""

    branch_id: int
    requester_user_id: int
    description: str
    currency: Currency
    items: List[RequestItem]
    deposit: DepositDestination
    supervisor_user_id: Optional[int] = None
    cost_center_id: Optional[int] = None
    total_amount: Decimal = Decimal("0")
    requires_lead_approval: bool = False
    current_status: RequestStatus = RequestStatus.CREATED
    status_history: List[StatusHistoryEntry] = field(default_factory=list)
    remainder_amount: Decimal = Decimal("0")
    id: Optional[int] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def append_status(self, entry: StatusHistoryEntry) -> None:
        self.status_history.append(entry)
        self.current_status = entry.status

    def has_recorded(self, status: RequestStatus) -> bool:
        return any(entry.status == status for entry in self.status_history)


@dataclass
class RequestDraft:
    """Caller input for the create use-case, before validation"""

    description: Any
    items: Any
    deposit_type: Any
    branch_id: Optional[int] = None
    requester_user_id: Optional[int] = None
    supervisor_user_id: Optional[int] = None
    currency: Any = None
    cost_center_id: Optional[int] = None
    own_account_id: Any = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_number_cci: Optional[str] = None
    doc_type: Optional[str] = None
    doc_number: Optional[str] = None


@dataclass
class TransitionCommand:
    """Caller input for the status transition use-case"""

    status: Any
    evidence_urls: Any = None
    rejection_reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    remainder_amount: Any = None


@dataclass(frozen=True)
class StepperEntry:
    status: RequestStatus
    completed: bool
