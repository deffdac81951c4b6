"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from church_finance.config import settings
from church_finance.domain.exceptions import AuthenticationError
from church_finance.domain.guard import resolve_roles
from church_finance.domain.models import Actor
from church_finance.infrastructure.database.repositories import UserRepository
from church_finance.infrastructure.database.session import get_db
from church_finance.services.finance_config import FinanceConfigService
from church_finance.services.financial_requests import FinancialRequestService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_current_actor(request: Request, db: Session = Depends(get_db)) -> Actor:
    """
    Resolve the authenticated caller from the identity header.

    Raw role names are mapped to Role kinds here, once per request.
    """
    raw_id = request.headers.get(settings.identity_header)
    if not raw_id:
        raise AuthenticationError("Missing caller identity")
    try:
        user_id = int(raw_id)
    except ValueError:
        raise AuthenticationError("Invalid caller identity") from None

    user = UserRepository(db).get(user_id)
    if user is None or not user.active:
        raise AuthenticationError("Unknown or inactive user")

    return Actor(
        user_id=user.id,
        person_id=user.person_id,
        branch_id=user.branch_id,
        roles=resolve_roles(user.raw_roles),
    )


def get_financial_request_service(request: Request, db: Session = Depends(get_db)) -> FinancialRequestService:
    return FinancialRequestService(db, request_id=get_request_id(request))


def get_finance_config_service(request: Request, db: Session = Depends(get_db)) -> FinanceConfigService:
    return FinanceConfigService(db, request_id=get_request_id(request))
