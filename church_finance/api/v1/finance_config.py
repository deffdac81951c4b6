"""/financial-config - read and update the global finance configuration"""

from fastapi import APIRouter, Depends

from church_finance.api.dependencies import get_current_actor, get_finance_config_service
from church_finance.api.v1.schemas import FinanceConfigOut, FinanceConfigUpdate, RemainderTargetSchema
from church_finance.domain.models import Actor, GlobalConfig
from church_finance.services.finance_config import FinanceConfigService

router = APIRouter()


def to_response(config: GlobalConfig) -> FinanceConfigOut:
    target = config.remainder_target
    return FinanceConfigOut(
        max_amount_lead_approval=float(config.max_amount_lead_approval),
        default_currency=config.default_currency.value,
        remainder_target=RemainderTargetSchema(
            account_name=target.account_name,
            bank_name=target.bank_name,
            account_number=target.account_number,
            notes=target.notes,
        ),
    )


@router.get("/financial-config", response_model=FinanceConfigOut)
def get_finance_config(
    actor: Actor = Depends(get_current_actor),
    service: FinanceConfigService = Depends(get_finance_config_service),
):
    return to_response(service.get(actor))


@router.patch("/financial-config", response_model=FinanceConfigOut)
def update_finance_config(
    body: FinanceConfigUpdate,
    actor: Actor = Depends(get_current_actor),
    service: FinanceConfigService = Depends(get_finance_config_service),
):
    """Admin only. Threshold changes apply to the next create/edit of any request."""
    return to_response(service.update(actor, body.model_dump(exclude_unset=True)))
