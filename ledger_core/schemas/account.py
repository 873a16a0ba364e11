"""
Pydantic schemas for chart-of-accounts operations.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ledger_core.models.enums import AccountType, Side


# --- Request Schemas ---

class AccountCreate(BaseModel):
    """Request to create a new account."""
    name: str = Field(min_length=1, max_length=255)
    account_type: AccountType
    contra: bool = False
    code: int | None = None
    rollup_code: int | None = None
    parent_id: int | None = None


class AccountTypeUpdate(BaseModel):
    account_type: AccountType


class AccountParentUpdate(BaseModel):
    """Move an account; parent_id=None makes it top level."""
    parent_id: int | None = None


# --- Response Schemas ---

class AccountResponse(BaseModel):
    """Account in API responses."""
    id: int
    name: str
    account_type: AccountType
    contra: bool
    normal_balance_side: Side
    code: int | None
    rollup_code: int | None
    parent_id: int | None
    tenant_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    """Response for an account balance query."""
    account_id: int
    account_name: str
    account_type: AccountType
    normal_balance_side: Side
    balance: Decimal
    as_of: date | None = None
    include_descendants: bool = False


class ReconciliationResponse(BaseModel):
    """Running balance versus full recomputation."""
    account_id: int
    recomputed: Decimal
    tracked: Decimal
    agrees: bool
