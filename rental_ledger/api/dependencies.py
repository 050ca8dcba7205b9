"""
Request dependencies

Authentication is handled upstream; the caller identity arrives in the
X-User-Id header.
"""

from typing import Optional

from fastapi import Header, Request

from ..system import LedgerSystem


def get_ledger_system(request: Request) -> LedgerSystem:
    return request.app.state.ledger_system


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, 'guest' when the header is absent"""
    return x_user_id or "guest"
