"""
Pydantic schemas for API requests

Amounts (JSON number or string) and dates (ISO string) are passed through
as received and parsed by the ledger core, so that a malformed value
produces the same per-field error from every entry point.
"""

from decimal import Decimal
from typing import Optional, Union
from pydantic import BaseModel, Field


class CreateAccountRequest(BaseModel):
    name: str
    type: str = Field(..., description="Asset, Liability, Equity, Revenue or Expense")
    description: Optional[str] = None
    bank_account: Optional[bool] = Field(None, description="Explicit bank flag; name convention when omitted")


class ReclassifyAccountRequest(BaseModel):
    type: str


class CreatePartyRequest(BaseModel):
    name: str


class CreatePostingRequest(BaseModel):
    transaction_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    description: str
    memo: Optional[str] = None
    debit_account_id: int
    credit_account_id: int
    amount: Union[Decimal, str] = Field(..., description="Decimal amount, as a JSON number or string")


class CreateSaleRequest(BaseModel):
    sale_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, description="Resolved to customer_id when no id is given")
    description: str
    memo: Optional[str] = None
    amount: Union[Decimal, str] = Field(..., description="Decimal amount, as a JSON number or string")
    payment_type: str = Field(..., description="cash, bank or credit")
    credit_account_id: Optional[int] = None
    debit_target_account_id: Optional[int] = Field(None, description="Bank account for bank/credit sales")


class CreateExpenseRequest(BaseModel):
    expense_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = Field(None, description="Resolved to vendor_id when no id is given")
    description: str
    memo: Optional[str] = None
    amount: Union[Decimal, str] = Field(..., description="Decimal amount, as a JSON number or string")
    payment_type: str = Field(..., description="cash or bank")
    debit_account_id: Optional[int] = None
    credit_target_account_id: Optional[int] = Field(None, description="Bank account for bank payments")
