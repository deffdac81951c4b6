"""Shared unit-of-work handling for use-case services"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from church_finance.domain.exceptions import DomainException
from church_finance.domain.models import Actor
from church_finance.infrastructure.observability.logging import log_workflow_denied
from church_finance.infrastructure.observability.metrics import record_workflow_error


class ServiceBase:
    """Runs each use-case as a single commit-or-rollback unit"""

    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.db = db
        self.request_id = request_id

    @contextmanager
    def unit_of_work(self, action: str, actor: Optional[Actor]) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except DomainException as e:
            self.db.rollback()
            record_workflow_error(e.kind)
            log_workflow_denied(self.request_id, action, actor.user_id if actor else None, e.kind, e.message)
            raise
        except Exception:
            self.db.rollback()
            raise
