"""
Whole-ledger endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledger_core.api.dependencies import get_tenant_id
from ledger_core.models.base import get_db
from ledger_core.schemas.entry import IntegrityResponse
from ledger_core.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("/integrity", response_model=IntegrityResponse)
def check_integrity(
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """
    Verify total debits equal total credits across the ledger.

    If this ever reports unbalanced, an entry was written
    around the commit protocol.
    """
    return LedgerService(db, tenant_id).check_integrity()
