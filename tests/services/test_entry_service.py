"""
Tests for the EntryService commit protocol.

Tests cover:
- Balanced entries commit with all their amounts
- Rejected entries report every problem and write nothing
- A failed database write rolls everything back
- Concurrent commits against the same account
- Listing order and filters
- Tenant scoping
"""

import datetime as dt
import threading
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from ledger_core.errors import (
    EntryRejected, InvalidArgument, InvalidState, NotFoundError,
    PersistenceFailure,
)
from ledger_core.models.amount import Amount
from ledger_core.models.entry import DocumentRef, Entry
from ledger_core.models.enums import AccountType, EntryState
from ledger_core.schemas.account import AccountCreate
from ledger_core.schemas.entry import AmountCreate, DocumentRefSchema, EntryCreate
from ledger_core.services.account_service import AccountService
from ledger_core.services.entry_service import EntryService
from ledger_core.services.ledger_service import LedgerService


# --- Helpers to reduce repetition ---

def entry_request(description, debits, credits, **kwargs):
    """Build an EntryCreate from (account, amount) pairs."""
    return EntryCreate(
        description=description,
        debits=[AmountCreate(account_id=a.id, amount=Decimal(v)) for a, v in debits],
        credits=[AmountCreate(account_id=a.id, amount=Decimal(v)) for a, v in credits],
        **kwargs,
    )


def count_rows(db_session, model):
    return db_session.execute(select(func.count()).select_from(model)).scalar()


# --- Commit Tests ---

class TestCommit:

    def test_invoice_payment_commits(self, db_session, accounts):
        cash, receivable = accounts["cash"], accounts["receivable"]
        service = EntryService(db_session)
        ledger = LedgerService(db_session)

        entry = service.create_entry(entry_request(
            "Invoice payment",
            debits=[(cash, "1000.00")],
            credits=[(receivable, "1000.00")],
        ))

        assert entry.state == EntryState.COMMITTED
        assert entry.id is not None
        assert len(entry.amounts) == 2
        assert ledger.balance(cash) == Decimal("1000.00")
        assert ledger.balance(receivable) == Decimal("-1000.00")

    def test_commit_built_entry(self, db_session, accounts):
        entry = Entry(description="Owner investment")
        entry.add_debit(accounts["cash"], Decimal("5000"))
        entry.add_credit(accounts["equity"], Decimal("5000"))

        EntryService(db_session).commit(entry)

        assert count_rows(db_session, Entry) == 1
        assert count_rows(db_session, Amount) == 2

    def test_date_defaults_to_today(self, db_session, accounts):
        entry = EntryService(db_session).create_entry(entry_request(
            "Undated",
            debits=[(accounts["cash"], "1")],
            credits=[(accounts["revenue"], "1")],
        ))
        assert entry.date == dt.date.today()

    def test_references_are_persisted(self, db_session, accounts):
        service = EntryService(db_session)
        entry = service.create_entry(entry_request(
            "Invoice 42 paid",
            debits=[(accounts["cash"], "10")],
            credits=[(accounts["receivable"], "10")],
            target=DocumentRefSchema(kind="Invoice", id=42),
            commercial_document=DocumentRefSchema(kind="Receipt", id="R-1"),
        ))
        db_session.expire_all()

        loaded = service.get_entry(entry.id)

        assert loaded.target == DocumentRef("Invoice", "42")
        assert loaded.commercial_document == DocumentRef("Receipt", "R-1")

    def test_committed_entry_cannot_be_changed(self, db_session, accounts):
        service = EntryService(db_session)
        entry = service.create_entry(entry_request(
            "Sale",
            debits=[(accounts["cash"], "1")],
            credits=[(accounts["revenue"], "1")],
        ))

        with pytest.raises(InvalidState):
            entry.add_debit(accounts["cash"], Decimal("1"))
        with pytest.raises(InvalidState):
            service.commit(entry)

    def test_loaded_entry_is_committed_and_immutable(self, db_session, accounts):
        service = EntryService(db_session)
        entry = service.create_entry(entry_request(
            "Sale",
            debits=[(accounts["cash"], "1")],
            credits=[(accounts["revenue"], "1")],
        ))
        db_session.expunge_all()

        loaded = service.get_entry(entry.id)

        assert loaded.state == EntryState.COMMITTED
        with pytest.raises(InvalidState):
            loaded.description = "Rewritten history"
        with pytest.raises(InvalidState):
            loaded.amounts[0].amount = Decimal("999")


# --- Rejection Tests ---

class TestRejection:

    def test_blank_description_only(self, db_session, accounts):
        service = EntryService(db_session)

        with pytest.raises(EntryRejected) as exc_info:
            service.create_entry(entry_request(
                "",
                debits=[(accounts["cash"], "50")],
                credits=[(accounts["revenue"], "50")],
            ))

        assert exc_info.value.codes == ["description"]

    def test_unbalanced_writes_nothing(self, db_session, accounts):
        service = EntryService(db_session)

        with pytest.raises(EntryRejected) as exc_info:
            service.create_entry(entry_request(
                "Unbalanced",
                debits=[(accounts["cash"], "100")],
                credits=[(accounts["revenue"], "90")],
            ))

        assert exc_info.value.codes == ["amounts_are_not_equal"]
        assert count_rows(db_session, Entry) == 0
        assert count_rows(db_session, Amount) == 0

    def test_no_credits(self, db_session, accounts):
        service = EntryService(db_session)

        with pytest.raises(EntryRejected) as exc_info:
            service.create_entry(entry_request(
                "No credits",
                debits=[(accounts["cash"], "10")],
                credits=[],
            ))

        assert "at_least_one_credit_amount" in exc_info.value.codes
        assert count_rows(db_session, Entry) == 0

    def test_rejected_entry_keeps_errors_and_can_retry(self, db_session, accounts):
        service = EntryService(db_session)
        entry = Entry(description="Retry me")
        entry.add_debit(accounts["cash"], Decimal("100"))
        entry.add_credit(accounts["revenue"], Decimal("60"))

        with pytest.raises(EntryRejected):
            service.commit(entry)
        assert entry.state == EntryState.REJECTED
        assert [e.code for e in entry.errors] == ["amounts_are_not_equal"]

        entry.add_credit(accounts["revenue"], Decimal("40"))
        service.commit(entry)

        assert entry.state == EntryState.COMMITTED
        assert count_rows(db_session, Amount) == 3

    def test_unknown_account_raises_not_found(self, db_session, accounts):
        service = EntryService(db_session)
        request = EntryCreate(
            description="Ghost",
            debits=[AmountCreate(account_id=999, amount=Decimal("1"))],
            credits=[AmountCreate(account_id=accounts["cash"].id, amount=Decimal("1"))],
        )

        with pytest.raises(NotFoundError, match="999"):
            service.create_entry(request)


# --- Persistence Failure Tests ---

class TestPersistenceFailure:

    def test_failed_commit_rolls_back_everything(
        self, db_session, accounts, monkeypatch
    ):
        service = EntryService(db_session)
        entry = Entry(description="Doomed")
        entry.add_debit(accounts["cash"], Decimal("10"))
        entry.add_credit(accounts["revenue"], Decimal("10"))

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(PersistenceFailure) as exc_info:
            service.commit(entry)
        monkeypatch.undo()

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert entry.state == EntryState.BUILDING
        assert count_rows(db_session, Entry) == 0
        assert count_rows(db_session, Amount) == 0

    def test_running_balances_untouched_by_failed_commit(
        self, db_session, accounts, tracker, monkeypatch
    ):
        cash = accounts["cash"]
        ledger = LedgerService(db_session, tracker=tracker)
        assert ledger.tracked_balance(cash) == Decimal("0")

        entry = Entry(description="Doomed")
        entry.add_debit(cash, Decimal("10"))
        entry.add_credit(accounts["revenue"], Decimal("10"))

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(PersistenceFailure):
            EntryService(db_session, tracker=tracker).commit(entry)
        monkeypatch.undo()

        assert ledger.reconcile(cash).agrees
        assert ledger.tracked_balance(cash) == Decimal("0")


# --- Concurrency Tests ---

class TestConcurrentCommits:

    def test_independent_entries_on_same_account(
        self, db_session, session_factory, accounts, tracker
    ):
        cash_id = accounts["cash"].id
        revenue_id = accounts["revenue"].id
        ledger = LedgerService(db_session, tracker=tracker)
        ledger.tracked_balance(cash_id)
        errors = []

        def post(value):
            session = session_factory()
            try:
                EntryService(session, tracker=tracker).create_entry(EntryCreate(
                    description=f"Sale {value}",
                    debits=[AmountCreate(account_id=cash_id, amount=value)],
                    credits=[AmountCreate(account_id=revenue_id, amount=value)],
                ))
            except Exception as exc:
                errors.append(exc)
            finally:
                session.close()

        threads = [
            threading.Thread(target=post, args=(Decimal(v),))
            for v in ("125.50", "74.50")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert ledger.balance(cash_id) == Decimal("200.00")
        assert ledger.balance(revenue_id) == Decimal("200.00")
        assert ledger.reconcile(cash_id).agrees


# --- Listing Tests ---

class TestListEntries:

    def _post(self, service, accounts, description, date, amount="1"):
        return service.create_entry(entry_request(
            description,
            debits=[(accounts["cash"], amount)],
            credits=[(accounts["revenue"], amount)],
            date=date,
        ))

    def test_newest_first_by_default(self, db_session, accounts):
        service = EntryService(db_session)
        self._post(service, accounts, "Old", dt.date(2024, 1, 1))
        self._post(service, accounts, "New", dt.date(2024, 3, 1))
        self._post(service, accounts, "Middle", dt.date(2024, 2, 1))

        entries = service.list_entries()

        assert [e.description for e in entries] == ["New", "Middle", "Old"]

    def test_oldest_first_on_request(self, db_session, accounts):
        service = EntryService(db_session)
        self._post(service, accounts, "Old", dt.date(2024, 1, 1))
        self._post(service, accounts, "New", dt.date(2024, 3, 1))

        entries = service.list_entries(newest_first=False)

        assert [e.description for e in entries] == ["Old", "New"]

    def test_filter_by_date_range(self, db_session, accounts):
        service = EntryService(db_session)
        self._post(service, accounts, "January", dt.date(2024, 1, 15))
        self._post(service, accounts, "February", dt.date(2024, 2, 15))
        self._post(service, accounts, "March", dt.date(2024, 3, 15))

        entries = service.list_entries(
            date_from=dt.date(2024, 2, 1), date_to=dt.date(2024, 2, 29)
        )

        assert [e.description for e in entries] == ["February"]

    def test_filter_by_account(self, db_session, accounts):
        service = EntryService(db_session)
        self._post(service, accounts, "Sale", dt.date(2024, 1, 1))
        service.create_entry(entry_request(
            "Rent",
            debits=[(accounts["expense"], "500")],
            credits=[(accounts["payable"], "500")],
            date=dt.date(2024, 1, 2),
        ))

        entries = service.list_entries(account_id=accounts["expense"].id)

        assert [e.description for e in entries] == ["Rent"]
        assert entries[0].debit_accounts[0].name == "Rent Expense"

    def test_filter_by_target(self, db_session, accounts):
        service = EntryService(db_session)
        service.create_entry(entry_request(
            "Invoice 1",
            debits=[(accounts["receivable"], "10")],
            credits=[(accounts["revenue"], "10")],
            target=DocumentRefSchema(kind="Invoice", id="1"),
        ))
        self._post(service, accounts, "Unrelated", dt.date(2024, 1, 1))

        entries = service.list_entries(target=DocumentRef("Invoice", "1"))

        assert [e.description for e in entries] == ["Invoice 1"]

    def test_get_missing_entry(self, db_session):
        with pytest.raises(NotFoundError):
            EntryService(db_session).get_entry(12345)


# --- Tenancy Tests ---

class TestTenancy:

    def _tenant_accounts(self, db_session, tenant_id):
        service = AccountService(db_session, tenant_id)
        cash = service.create_account(
            AccountCreate(name="Cash", account_type=AccountType.ASSET)
        )
        revenue = service.create_account(
            AccountCreate(name="Revenue", account_type=AccountType.REVENUE)
        )
        db_session.commit()
        return cash, revenue

    def test_entries_are_stamped_and_scoped(self, db_session):
        cash_a, revenue_a = self._tenant_accounts(db_session, "tenant-a")
        self._tenant_accounts(db_session, "tenant-b")

        service_a = EntryService(db_session, tenant_id="tenant-a")
        entry = service_a.create_entry(entry_request(
            "Tenant A sale",
            debits=[(cash_a, "10")],
            credits=[(revenue_a, "10")],
        ))

        assert entry.tenant_id == "tenant-a"
        assert len(service_a.list_entries()) == 1
        assert EntryService(db_session, tenant_id="tenant-b").list_entries() == []
        with pytest.raises(NotFoundError):
            EntryService(db_session, tenant_id="tenant-b").get_entry(entry.id)

    def test_cannot_post_to_another_tenants_account(self, db_session):
        cash_a, revenue_a = self._tenant_accounts(db_session, "tenant-a")

        with pytest.raises(NotFoundError):
            EntryService(db_session, tenant_id="tenant-b").create_entry(
                entry_request(
                    "Cross-tenant",
                    debits=[(cash_a, "10")],
                    credits=[(revenue_a, "10")],
                )
            )

    def test_unscoped_post_takes_the_accounts_tenant(self, db_session, tracker):
        cash_a, revenue_a = self._tenant_accounts(db_session, "tenant-a")
        ledger = LedgerService(db_session, "tenant-a", tracker=tracker)
        ledger.tracked_balance(cash_a)

        entry = EntryService(db_session, tracker=tracker).create_entry(entry_request(
            "Posted without a tenant",
            debits=[(cash_a, "10")],
            credits=[(revenue_a, "10")],
        ))

        assert entry.tenant_id == "tenant-a"
        assert ledger.balance(cash_a) == Decimal("10")
        assert ledger.reconcile(cash_a).agrees

    def test_accounts_of_different_tenants_are_rejected(self, db_session):
        cash_a, _ = self._tenant_accounts(db_session, "tenant-a")
        _, revenue_b = self._tenant_accounts(db_session, "tenant-b")

        with pytest.raises(InvalidArgument, match="different tenants"):
            EntryService(db_session).create_entry(entry_request(
                "Cross-tenant",
                debits=[(cash_a, "10")],
                credits=[(revenue_b, "10")],
            ))

        assert count_rows(db_session, Entry) == 0

    def test_scoped_service_rejects_foreign_built_entry(self, db_session):
        cash_a, revenue_a = self._tenant_accounts(db_session, "tenant-a")
        entry = Entry(description="Built by hand")
        entry.add_debit(cash_a, Decimal("3"))
        entry.add_credit(revenue_a, Decimal("3"))

        with pytest.raises(InvalidArgument):
            EntryService(db_session, tenant_id="tenant-b").commit(entry)

        assert count_rows(db_session, Entry) == 0
