"""
Pydantic schemas for entries and their amounts.

EntryCreate is the nested builder: debits and credits are
given as lists of {account_id, amount}. It deliberately does
not check balance or description; the entry's own validation
does, and reports every problem at once.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from ledger_core.models.entry import DocumentRef
from ledger_core.models.enums import Side


class DocumentRefSchema(BaseModel):
    """Tagged reference to an application object."""
    kind: str = Field(min_length=1, max_length=100)
    id: str | int

    model_config = {"from_attributes": True}

    def to_ref(self) -> DocumentRef:
        return DocumentRef(kind=self.kind, id=str(self.id))


# --- Request Schemas ---

class AmountCreate(BaseModel):
    """A single debit or credit line."""
    account_id: int
    amount: Decimal = Field(ge=0, max_digits=30, decimal_places=10)


class EntryCreate(BaseModel):
    """A complete entry with nested debit and credit lines."""
    description: str = Field(default="", max_length=255)
    date: dt.date | None = None
    target: DocumentRefSchema | None = None
    commercial_document: DocumentRefSchema | None = None
    debits: list[AmountCreate] = Field(default_factory=list)
    credits: list[AmountCreate] = Field(default_factory=list)


# --- Response Schemas ---

class AmountResponse(BaseModel):
    id: int
    side: Side
    account_id: int
    amount: Decimal

    model_config = {"from_attributes": True}


class EntryResponse(BaseModel):
    """Committed entry in API responses."""
    id: int
    description: str
    date: dt.date
    target: DocumentRefSchema | None = None
    commercial_document: DocumentRefSchema | None = None
    tenant_id: str | None = None
    debit_amounts: list[AmountResponse]
    credit_amounts: list[AmountResponse]
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class EntryErrorDetail(BaseModel):
    code: str
    message: str


class EntryRejectedResponse(BaseModel):
    """Every invariant a rejected entry violated."""
    errors: list[EntryErrorDetail]


class IntegrityResponse(BaseModel):
    """Whole-ledger debit/credit totals."""
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool
