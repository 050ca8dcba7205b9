"""
General ledger endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_current_user, get_ledger_system
from .schemas import CreatePostingRequest
from ..errors import RecordNotFound
from ..ledger import Posting
from ..system import LedgerSystem


router = APIRouter()


def posting_to_dict(system: LedgerSystem, posting: Posting) -> dict:
    debit = system.chart.resolve_by_id(posting.debit_account_id)
    credit = system.chart.resolve_by_id(posting.credit_account_id)
    result = posting.to_dict()
    result["debit_account_name"] = debit.name if debit else None
    result["credit_account_name"] = credit.name if credit else None
    result["origin"] = posting.origin
    return result


@router.get("/postings")
async def list_postings(system: LedgerSystem = Depends(get_ledger_system)):
    """All postings, newest first"""
    return {"postings": [posting_to_dict(system, p) for p in system.ledger.list_all()]}


@router.post("/postings", status_code=status.HTTP_201_CREATED)
async def create_posting(
    request: CreatePostingRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Record a manual journal posting"""
    posting = system.ledger.post(
        transaction_date=request.transaction_date,
        description=request.description,
        debit_account_id=request.debit_account_id,
        credit_account_id=request.credit_account_id,
        amount=request.amount,
        memo=request.memo,
        created_by=user_id
    )
    return posting_to_dict(system, posting)


@router.get("/postings/{posting_id}")
async def get_posting(
    posting_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get posting details"""
    posting = system.ledger.get_posting(posting_id)
    if posting is None:
        raise RecordNotFound("Posting", posting_id)
    return posting_to_dict(system, posting)
