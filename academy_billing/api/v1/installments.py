"""POST /v1/installments - Generate a one-time installment schedule"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from academy_billing.api.dependencies import get_request_id
from academy_billing.api.v1.schemas import InstallmentDetailSchema, InstallmentsRequest, InstallmentsResponse
from academy_billing.domain.exceptions import DomainException
from academy_billing.domain.installments import (
    calculate_installment_reminder_date,
    generate_one_time_installments,
    get_installment_rule,
    get_installment_stage,
)

router = APIRouter()


@router.post("/installments", response_model=InstallmentsResponse)
def create_installments(
    request_body: InstallmentsRequest,
    request_id: str = Depends(get_request_id),
):
    """
    Split a one-time total into `count` installments every `cadence_days`.

    The last installment absorbs the rounding remainder. Each installment
    carries its stage (FIRST / MIDDLE / LAST) and the invoicing rules of it.
    """
    try:
        installments = generate_one_time_installments(
            total_cents=request_body.total_cents,
            count=request_body.count,
            start_date=request_body.start_date,
            cadence_days=request_body.cadence_days,
        )
        details = []
        for inst in installments:
            rule = get_installment_rule(inst, len(installments))
            details.append(
                InstallmentDetailSchema(
                    sequence_number=inst.sequence_number,
                    due_date=inst.due_date,
                    amount_cents=inst.amount_cents,
                    stage=get_installment_stage(inst.sequence_number, len(installments)).value,
                    reminder_date=calculate_installment_reminder_date(inst, len(installments)),
                    invoice_on_payment=rule.invoice_on_payment,
                    final_invoice=rule.final_invoice,
                )
            )
    except DomainException as e:
        logging.warning(f"Invalid installment config: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    return InstallmentsResponse(total_cents=request_body.total_cents, installments=details)
