"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from church_finance.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


logger = logging.getLogger("church_finance.workflow")


def log_request_created(
    request_id: Optional[str],
    financial_request_id: int,
    actor_user_id: int,
    total_amount: str,
    requires_lead_approval: bool,
) -> None:
    """Log creation of a financial request"""
    logger.info(
        "Financial request created",
        extra={
            "request_id": request_id,
            "financial_request_id": financial_request_id,
            "actor_user_id": actor_user_id,
            "step": "request_created",
            "total_amount": total_amount,
            "requires_lead_approval": requires_lead_approval,
        },
    )


def log_request_edited(request_id: Optional[str], financial_request_id: int, actor_user_id: int, fields: list) -> None:
    logger.info(
        "Financial request edited",
        extra={
            "request_id": request_id,
            "financial_request_id": financial_request_id,
            "actor_user_id": actor_user_id,
            "step": "request_edited",
            "fields": sorted(fields),
        },
    )


def log_status_changed(
    request_id: Optional[str],
    financial_request_id: int,
    actor_user_id: int,
    from_status: str,
    to_status: str,
) -> None:
    """Log an accepted workflow transition for audit analysis"""
    logger.info(
        "Financial request status changed",
        extra={
            "request_id": request_id,
            "financial_request_id": financial_request_id,
            "actor_user_id": actor_user_id,
            "step": "status_changed",
            "from_status": from_status,
            "to_status": to_status,
        },
    )


def log_workflow_denied(
    request_id: Optional[str],
    action: str,
    actor_user_id: Optional[int],
    kind: str,
    message: str,
) -> None:
    """Log a rejected attempt (validation, authorization, state conflict)"""
    logger.warning(
        "Workflow action denied",
        extra={
            "request_id": request_id,
            "action": action,
            "actor_user_id": actor_user_id,
            "step": "action_denied",
            "kind": kind,
            "reason": message,
        },
    )
