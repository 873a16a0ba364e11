"""
Entry API endpoints.

POST /entries commits a whole entry or nothing. A rejected
entry answers 422 with every violated invariant, so a client
can fix all of them in one go.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ledger_core.config import get_settings
from ledger_core.api.dependencies import get_running_balances, get_tenant_id
from ledger_core.errors import (
    DomainError,
    EntryRejected,
    NotFoundError,
    PersistenceFailure,
)
from ledger_core.models.base import get_db
from ledger_core.models.entry import DocumentRef
from ledger_core.schemas.entry import (
    EntryCreate,
    EntryErrorDetail,
    EntryRejectedResponse,
    EntryResponse,
)
from ledger_core.services.entry_service import EntryService
from ledger_core.services.running_balances import RunningBalances

router = APIRouter(prefix="/entries", tags=["Entries"])

settings = get_settings()


@router.post(
    "",
    response_model=EntryResponse,
    status_code=201,
    responses={422: {"model": EntryRejectedResponse}},
)
def create_entry(
    request: EntryCreate,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
    tracker: RunningBalances = Depends(get_running_balances),
):
    """
    Build and commit an entry from nested debits and credits.

    Debits must equal credits exactly, with at least one of
    each, and the description must not be blank.
    """
    service = EntryService(db, tenant_id, tracker=tracker)
    try:
        entry = service.create_entry(request)
    except EntryRejected as e:
        db.rollback()
        body = EntryRejectedResponse(errors=[
            EntryErrorDetail(code=err.code, message=err.message)
            for err in e.errors
        ])
        return JSONResponse(status_code=422, content=body.model_dump())
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except DomainError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

    return service.get_entry(entry.id)


@router.get("", response_model=list[EntryResponse])
def list_entries(
    account_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    target_type: str | None = None,
    target_id: str | None = None,
    newest_first: bool = True,
    limit: int = Query(default=100, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """List committed entries, most recent first by default."""
    return EntryService(db, tenant_id).list_entries(
        account_id=account_id,
        date_from=date_from,
        date_to=date_to,
        target=DocumentRef.of(target_type, target_id),
        newest_first=newest_first,
        limit=limit,
        offset=offset,
    )


@router.get("/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    try:
        return EntryService(db, tenant_id).get_entry(entry_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
