"""
Expenses endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_current_user, get_ledger_system
from .schemas import CreateExpenseRequest
from ..parties import PartyKind
from ..system import LedgerSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    request: CreateExpenseRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Record an expense and its ledger posting"""
    vendor_id = system.parties.resolve_id(
        PartyKind.VENDOR, request.vendor_id, request.vendor_name
    )
    expense = system.expenses.create_expense(
        expense_date=request.expense_date,
        vendor_id=vendor_id,
        description=request.description,
        amount=request.amount,
        payment_type=request.payment_type,
        debit_account_id=request.debit_account_id,
        credit_target_account_id=request.credit_target_account_id,
        memo=request.memo,
        created_by=user_id
    )
    return system.expenses.describe(expense)


@router.get("")
async def list_expenses(system: LedgerSystem = Depends(get_ledger_system)):
    """All expenses, newest first, with their posting accounts"""
    return {"expenses": system.expenses.list_described()}


@router.get("/{expense_id}")
async def get_expense(
    expense_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get expense details"""
    return system.expenses.describe(system.expenses.require(expense_id))


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: int,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Delete an expense and its ledger posting"""
    removed = system.expenses.delete(expense_id, user_id=user_id)
    return {"id": expense_id, "postings_removed": removed, "message": "Expense deleted successfully"}
