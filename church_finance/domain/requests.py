"""Field rules and derived values for financial requests"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from church_finance.domain.exceptions import ValidationError
from church_finance.domain.models import (
    Account,
    Currency,
    DepositDestination,
    DepositType,
    FinancialRequest,
    RequestItem,
    RequestStatus,
    StepperEntry,
)

S = RequestStatus

ITEM_DESCRIPTION_MIN, ITEM_DESCRIPTION_MAX = 3, 200
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 500
REJECTION_REASON_MAX = 300
CCI_MAX = 20
CENT = Decimal("0.01")
# Money columns are Numeric(14, 2): at most 12 integer digits
AMOUNT_MAX_INTEGER_DIGITS = 12

EVIDENCE_REQUIRED_STATUSES = frozenset(
    {S.MONEY_DELIVERED, S.EXPENSES_SUBMITTED, S.REMAINDER_REFUNDED}
)


def parse_amount(value: Any, label: str) -> Decimal:
    """
    Convert caller input to a Decimal amount.

    Accepts ints, floats, Decimals and numeric strings with at most two
    decimal places that fit the money columns. Booleans, NaN and
    infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a finite number")
    if amount and amount.adjusted() >= AMOUNT_MAX_INTEGER_DIGITS:
        raise ValidationError(f"{label} is out of range")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{label} cannot have more than two decimal places")
    return amount


def _text(value: Any, label: str, min_len: int, max_len: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{label} is required")
    text = value.strip()
    if len(text) < min_len:
        raise ValidationError(f"{label} must be at least {min_len} characters")
    if len(text) > max_len:
        raise ValidationError(f"{label} cannot exceed {max_len} characters")
    return text


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_description(value: Any) -> str:
    return _text(value, "Description", DESCRIPTION_MIN, DESCRIPTION_MAX)


def normalize_items(raw_items: Any) -> List[RequestItem]:
    """Validate the item list: at least one item, each with text and amount > 0"""
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError("At least one expense item is required")

    items = []
    for position, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Item {position} must be an object with description and amount")
        description = _text(
            raw.get("description"),
            f"Item {position} description",
            ITEM_DESCRIPTION_MIN,
            ITEM_DESCRIPTION_MAX,
        )
        amount = parse_amount(raw.get("amount"), f"Item {position} amount")
        if amount <= 0:
            raise ValidationError(f"Item {position} amount must be greater than zero")
        items.append(RequestItem(description=description, amount=amount))
    return items


def compute_total(items: List[RequestItem]) -> Decimal:
    total = sum((item.amount for item in items), Decimal("0"))
    if total <= 0:
        raise ValidationError("Total amount must be greater than zero")
    if total.adjusted() >= AMOUNT_MAX_INTEGER_DIGITS:
        raise ValidationError("Total amount is out of range")
    return total


def recompute_derived(request: FinancialRequest, threshold: Decimal) -> None:
    """Re-derive total and lead-approval flag from current items and the live threshold"""
    request.total_amount = compute_total(request.items)
    request.requires_lead_approval = request.total_amount > threshold


def normalize_currency(value: Any, default: Currency) -> Currency:
    if value is None or value == "":
        return default
    try:
        return Currency(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unsupported currency: {value}") from None


def normalize_deposit_type(value: Any) -> DepositType:
    if value is None or value == "":
        raise ValidationError("Deposit type is required")
    try:
        return DepositType(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid deposit type: {value}") from None


def parse_optional_id(value: Any, label: str) -> Optional[int]:
    """Reference ids are positive integers; empty input means no reference"""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a numeric identifier")
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{label} must be a numeric identifier") from None
    if parsed <= 0:
        raise ValidationError(f"{label} must be a positive identifier")
    return parsed


def build_deposit(fields: Mapping[str, Any]) -> DepositDestination:
    """
    Build the deposit destination from caller fields.

    OWN_ACCOUNT needs an account id (ownership is checked against the
    account registry separately). EXTERNAL needs bank name and account
    number. Fields irrelevant to the chosen type are cleared.
    """
    deposit_type = normalize_deposit_type(fields.get("deposit_type"))

    if deposit_type == DepositType.OWN_ACCOUNT:
        own_account_id = parse_optional_id(fields.get("own_account_id"), "Own account id")
        if own_account_id is None:
            raise ValidationError("An own account is required for OWN_ACCOUNT deposits")
        return DepositDestination(deposit_type=deposit_type, own_account_id=own_account_id)

    bank_name = optional_text(fields.get("bank_name"))
    account_number = optional_text(fields.get("account_number"))
    if not bank_name or not account_number:
        raise ValidationError("Bank name and account number are required for EXTERNAL deposits")

    cci = optional_text(fields.get("account_number_cci"))
    if cci and len(cci) > CCI_MAX:
        raise ValidationError(f"CCI cannot exceed {CCI_MAX} characters")

    return DepositDestination(
        deposit_type=deposit_type,
        bank_name=bank_name,
        account_number=account_number,
        account_number_cci=cci,
        doc_type=optional_text(fields.get("doc_type")),
        doc_number=optional_text(fields.get("doc_number")),
    )


def check_own_account(account: Account, requester_person_id: Optional[int]) -> None:
    if not account.active:
        raise ValidationError("The selected own account is inactive")
    if requester_person_id is not None and account.person_id != requester_person_id:
        raise ValidationError("The selected account does not belong to the requester")


def deposit_fields(deposit: DepositDestination) -> Dict[str, Any]:
    """Flatten a destination back into caller-style fields"""
    return {
        "deposit_type": deposit.deposit_type.value,
        "own_account_id": deposit.own_account_id,
        "bank_name": deposit.bank_name,
        "account_number": deposit.account_number,
        "account_number_cci": deposit.account_number_cci,
        "doc_type": deposit.doc_type,
        "doc_number": deposit.doc_number,
    }


def parse_status(value: Any) -> RequestStatus:
    if value is None or value == "":
        raise ValidationError("Target status is required")
    try:
        return RequestStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid status: {value}") from None


def sanitize_evidence(urls: Any) -> List[str]:
    """Keep trimmed, non-empty string URLs"""
    if urls is None:
        return []
    if not isinstance(urls, (list, tuple)):
        raise ValidationError("Evidence URLs must be a list")
    return [url.strip() for url in urls if isinstance(url, str) and url.strip()]


def normalize_rejection_reason(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("A rejection reason is required")
    reason = value.strip()
    if len(reason) > REJECTION_REASON_MAX:
        raise ValidationError(f"Rejection reason cannot exceed {REJECTION_REASON_MAX} characters")
    return reason


def normalize_metadata(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("Metadata must be an object")
    return dict(value)


def parse_remainder(value: Any) -> Decimal:
    remainder = parse_amount(value, "Remainder amount")
    if remainder < 0:
        raise ValidationError("Remainder amount cannot be negative")
    return remainder


def build_state_stepper(request: FinancialRequest) -> List[StepperEntry]:
    """
    Ordered workflow steps relevant to this request.

    APPROVED_LEAD appears only when lead approval is required,
    REMAINDER_REFUNDED only when a remainder exists or was recorded, and
    REJECTED only when it happened.
    """
    steps = [S.CREATED, S.APPROVED_NETWORK]
    if request.requires_lead_approval:
        steps.append(S.APPROVED_LEAD)
    steps += [S.APPROVED_ADMIN, S.MONEY_DELIVERED, S.EXPENSES_SUBMITTED]
    if request.remainder_amount > 0 or request.has_recorded(S.REMAINDER_REFUNDED):
        steps.append(S.REMAINDER_REFUNDED)
    steps.append(S.CLOSED)
    if request.has_recorded(S.REJECTED):
        steps.append(S.REJECTED)

    return [StepperEntry(status=step, completed=request.has_recorded(step)) for step in steps]
