"""
Ledger error kinds.

Domain errors subclass ValueError so callers that only know
"bad input" can still catch them. PersistenceFailure is not a
domain error: it means the database write did not complete,
and always carries the original exception as __cause__.
"""


class DomainError(ValueError):
    """Base class for ledger domain errors.

    ``code`` is a stable, machine-readable identifier. Messages
    are for humans and may change.
    """

    code: str = "domain_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class MissingField(DomainError):
    """A required attribute is absent or blank."""

    def __init__(self, field: str):
        super().__init__(f"{field} can't be blank", code=field)
        self.field = field


class ValidationError(DomainError):
    """A domain invariant is violated (missing side, unbalanced amounts)."""

    MESSAGES = {
        "at_least_one_debit_amount": "Entry must have at least one debit amount",
        "at_least_one_credit_amount": "Entry must have at least one credit amount",
        "amounts_are_not_equal": "The credit and debit amounts are not equal",
    }

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or self.MESSAGES.get(code, code), code=code)


class InvalidArgument(DomainError):
    """A malformed value, e.g. a negative or non-finite amount."""

    code = "invalid_argument"


class InvalidState(DomainError):
    """An illegal mutation, e.g. retyping a referenced account."""

    code = "invalid_state"


class NotFoundError(DomainError):
    """Requested record does not exist (or is outside the tenant)."""

    code = "not_found"


class EntryRejected(DomainError):
    """Commit refused. ``errors`` holds every violated invariant."""

    code = "entry_rejected"

    def __init__(self, errors: list[DomainError]):
        self.errors = list(errors)
        super().__init__(
            "Entry rejected: " + "; ".join(e.message for e in self.errors)
        )

    @property
    def codes(self) -> list[str]:
        return [e.code for e in self.errors]


class PersistenceFailure(RuntimeError):
    """The repository's atomic write did not complete."""


def account_not_found(account_id: int) -> str:
    return f"Account {account_id} not found"


def entry_not_found(entry_id: int) -> str:
    return f"Entry {entry_id} not found"
