"""
Reporting endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends

from .dependencies import get_ledger_system
from ..system import LedgerSystem


router = APIRouter()


@router.get("/trial-balance")
async def trial_balance(
    as_of_date: Optional[str] = None,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Trial balance as of a date (today when omitted)"""
    report = system.reports.as_of(as_of_date)
    return {
        "as_of_date": report.as_of_date.isoformat(),
        "lines": [line.to_dict() for line in report.lines],
        "total_debit": str(report.total_debit),
        "total_credit": str(report.total_credit),
        "balanced": report.is_balanced,
    }
