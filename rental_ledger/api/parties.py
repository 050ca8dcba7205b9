"""
Customer and vendor directory endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_ledger_system
from .schemas import CreatePartyRequest
from ..system import LedgerSystem


router = APIRouter()


@router.post("/{kind}", status_code=status.HTTP_201_CREATED)
async def register_party(
    kind: str,
    request: CreatePartyRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Register a customer or vendor"""
    party = system.parties.register(kind, request.name)
    return {"id": party.id, "kind": party.kind.value, "name": party.name}


@router.get("/{kind}")
async def list_parties(
    kind: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """List customers or vendors by name"""
    parties = system.parties.list(kind)
    return {"parties": [{"id": p.id, "kind": p.kind.value, "name": p.name} for p in parties]}
