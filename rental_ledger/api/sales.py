"""
Sales endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_current_user, get_ledger_system
from .schemas import CreateSaleRequest
from ..parties import PartyKind
from ..system import LedgerSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_sale(
    request: CreateSaleRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Record a sale and its ledger posting"""
    customer_id = system.parties.resolve_id(
        PartyKind.CUSTOMER, request.customer_id, request.customer_name
    )
    sale = system.sales.create_sale(
        sale_date=request.sale_date,
        customer_id=customer_id,
        description=request.description,
        amount=request.amount,
        payment_type=request.payment_type,
        credit_account_id=request.credit_account_id,
        debit_target_account_id=request.debit_target_account_id,
        memo=request.memo,
        created_by=user_id
    )
    return system.sales.describe(sale)


@router.get("")
async def list_sales(system: LedgerSystem = Depends(get_ledger_system)):
    """All sales, newest first, with their posting accounts"""
    return {"sales": system.sales.list_described()}


@router.get("/{sale_id}")
async def get_sale(
    sale_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get sale details"""
    return system.sales.describe(system.sales.require(sale_id))


@router.delete("/{sale_id}")
async def delete_sale(
    sale_id: int,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Delete a sale and its ledger posting"""
    removed = system.sales.delete(sale_id, user_id=user_id)
    return {"id": sale_id, "postings_removed": removed, "message": "Sale deleted successfully"}
