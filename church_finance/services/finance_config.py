"""Global finance configuration: lazy read and admin update"""

from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from church_finance.domain import guard
from church_finance.domain.exceptions import ValidationError
from church_finance.domain.models import Actor, GlobalConfig, RemainderTarget
from church_finance.domain.requests import normalize_currency, optional_text, parse_amount
from church_finance.infrastructure.database.repositories import GlobalConfigRepository
from church_finance.services.base import ServiceBase

REMAINDER_KEYS = ("account_name", "bank_name", "account_number", "notes")


class FinanceConfigService(ServiceBase):
    def __init__(self, db: Session, request_id: Optional[str] = None):
        super().__init__(db, request_id)
        self.store = GlobalConfigRepository(db)

    def get(self, actor: Actor) -> GlobalConfig:
        """Return the singleton, creating it with defaults on first read"""
        with self.unit_of_work("config.get", actor):
            config = self.store.load()
        return config

    def update(self, actor: Actor, changes: Mapping[str, Any]) -> GlobalConfig:
        """
        Update threshold, default currency and/or remainder target.

        Only keys present in ``changes`` are touched. A supplied
        ``remainder_target`` replaces the whole target; missing sub-keys
        become empty.
        """
        with self.unit_of_work("config.update", actor):
            guard.ensure_can_manage_config(actor)
            config = self.store.load()

            if "max_amount_lead_approval" in changes:
                threshold = parse_amount(changes["max_amount_lead_approval"], "Lead approval threshold")
                if threshold < 0:
                    raise ValidationError("Lead approval threshold must be zero or greater")
                config.max_amount_lead_approval = threshold

            if "default_currency" in changes:
                if changes["default_currency"] in (None, ""):
                    raise ValidationError("Default currency cannot be empty")
                config.default_currency = normalize_currency(changes["default_currency"], config.default_currency)

            if "remainder_target" in changes:
                target = changes["remainder_target"] or {}
                if not isinstance(target, Mapping):
                    raise ValidationError("Remainder target must be an object")
                config.remainder_target = RemainderTarget(
                    **{key: optional_text(target.get(key)) for key in REMAINDER_KEYS}
                )

            self.store.save(config)
        return config
