"""
Chart-of-accounts API endpoints.

The API layer is thin: HTTP status codes and response shapes
here, all rules in AccountService and LedgerService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger_core.api.dependencies import get_running_balances, get_tenant_id
from ledger_core.errors import DomainError, NotFoundError
from ledger_core.models.base import get_db
from ledger_core.models.enums import AccountType
from ledger_core.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountBalanceResponse,
    AccountParentUpdate,
    AccountTypeUpdate,
    ReconciliationResponse,
)
from ledger_core.services.account_service import AccountService
from ledger_core.services.ledger_service import LedgerService
from ledger_core.services.running_balances import RunningBalances

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """Create a new account in the chart of accounts."""
    service = AccountService(db, tenant_id)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except DomainError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    name: str | None = None,
    account_type: AccountType | None = None,
    code: int | None = None,
    rollup_code: int | None = None,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """List accounts, optionally filtered by name/type, code or rollup code."""
    return AccountService(db, tenant_id).find_accounts(
        name=name,
        account_type=account_type,
        code=code,
        rollup_code=rollup_code,
    )


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    try:
        return AccountService(db, tenant_id).get_account(account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{account_id}/parent", response_model=AccountResponse)
def set_parent(
    account_id: int,
    request: AccountParentUpdate,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """Move an account under another one. Cycles are refused."""
    service = AccountService(db, tenant_id)
    try:
        account = service.set_parent(account_id, request.parent_id)
        db.commit()
        return account
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except DomainError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{account_id}/type", response_model=AccountResponse)
def change_account_type(
    account_id: int,
    request: AccountTypeUpdate,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """Change an account's type; refused once amounts reference it."""
    service = AccountService(db, tenant_id)
    try:
        account = service.change_account_type(account_id, request.account_type)
        db.commit()
        return account
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except DomainError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: int,
    as_of: date | None = None,
    include_descendants: bool = False,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
):
    """
    Return an account's balance, recomputed from its amounts.

    ``as_of`` limits to entries dated on or before that day;
    ``include_descendants`` rolls child accounts up into it.
    """
    service = LedgerService(db, tenant_id)
    try:
        account = AccountService(db, tenant_id).get_account(account_id)
        balance = service.balance(
            account, as_of=as_of, include_descendants=include_descendants
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DomainError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AccountBalanceResponse(
        account_id=account.id,
        account_name=account.name,
        account_type=account.account_type,
        normal_balance_side=account.normal_balance_side,
        balance=balance,
        as_of=as_of,
        include_descendants=include_descendants,
    )


@router.get("/{account_id}/reconciliation", response_model=ReconciliationResponse)
def reconcile_account(
    account_id: int,
    db: Session = Depends(get_db),
    tenant_id: str | None = Depends(get_tenant_id),
    tracker: RunningBalances = Depends(get_running_balances),
):
    """Compare the running balance with a full recomputation."""
    service = LedgerService(db, tenant_id, tracker=tracker)
    try:
        result = service.reconcile(account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ReconciliationResponse(
        account_id=result.account_id,
        recomputed=result.recomputed,
        tracked=result.tracked,
        agrees=result.agrees,
    )
