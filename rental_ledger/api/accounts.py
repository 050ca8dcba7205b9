"""
Chart of accounts endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .dependencies import get_current_user, get_ledger_system
from .schemas import CreateAccountRequest, ReclassifyAccountRequest
from ..accounts import Account, AccountType
from ..errors import ValidationError
from ..system import LedgerSystem


router = APIRouter()


def _account_type(value: str) -> AccountType:
    try:
        return AccountType(value)
    except ValueError:
        choices = ", ".join(t.value for t in AccountType)
        raise ValidationError.for_field("type", f"The account type must be one of: {choices}.")


def account_to_dict(system: LedgerSystem, account: Account) -> dict:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type.value,
        "description": account.description,
        "bank_account": system.chart.is_bank_asset(account),
    }


@router.get("")
async def list_accounts(
    account_type: Optional[str] = Query(None, alias="type"),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List accounts sorted by name, optionally of one type"""
    type_filter = _account_type(account_type) if account_type else None
    accounts = system.chart.list_accounts(type_filter)
    return {"accounts": [account_to_dict(system, a) for a in accounts]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Add an account to the chart"""
    account = system.chart.create_account(
        name=request.name,
        account_type=_account_type(request.type),
        description=request.description,
        bank_account=request.bank_account,
        user_id=user_id
    )
    return account_to_dict(system, account)


@router.get("/{account_id}")
async def get_account(
    account_id: int,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account details"""
    return account_to_dict(system, system.chart.get_account(account_id))


@router.put("/{account_id}/type")
async def reclassify_account(
    account_id: int,
    request: ReclassifyAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system),
    user_id: str = Depends(get_current_user)
):
    """Change an account's type; refused once postings reference it"""
    account = system.ledger.reclassify_account(account_id, _account_type(request.type), user_id=user_id)
    return account_to_dict(system, account)


@router.get("/{account_id}/ledger")
async def get_account_ledger(
    account_id: int,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Opening balance, postings with running balance and closing balance"""
    report = system.reports.account_ledger(account_id, start_date, end_date)
    return {
        "account": account_to_dict(system, report.account),
        "start_date": report.start_date.isoformat() if report.start_date else None,
        "end_date": report.end_date.isoformat() if report.end_date else None,
        "opening_balance": str(report.opening_balance),
        "lines": [
            {
                "posting_id": line.posting_id,
                "transaction_no": line.transaction_no,
                "transaction_date": line.transaction_date.isoformat(),
                "description": line.description,
                "memo": line.memo,
                "debit": str(line.debit),
                "credit": str(line.credit),
                "balance": str(line.balance),
            }
            for line in report.lines
        ],
        "total_debit": str(report.total_debit),
        "total_credit": str(report.total_credit),
        "closing_balance": str(report.closing_balance),
    }
