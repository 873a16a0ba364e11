"""
Shared FastAPI dependencies.

Tenancy is optional. When a client sends X-Tenant-ID, every
service built for the request is scoped to that tenant.
"""

from fastapi import Header

from ledger_core.services.running_balances import RunningBalances

# One tracker per process; every request's services share it
running_balances = RunningBalances()


def get_tenant_id(
    x_tenant_id: str | None = Header(default=None, max_length=64),
) -> str | None:
    return x_tenant_id or None


def get_running_balances() -> RunningBalances:
    return running_balances
