"""
Ledger Errors

Domain error taxonomy for the posting engine. Each error carries a stable
error code and the HTTP status it maps to at the API boundary.
"""

from typing import Any, Dict, List, Optional


class LedgerError(Exception):
    """Base exception for all ledger failures"""

    error_code = "ERR_LEDGER"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(LedgerError, ValueError):
    """
    Malformed or missing input fields.
    Carries per-field messages so the caller can re-render its form.
    """

    error_code = "ERR_VALIDATION"
    status_code = 422

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        self.errors = errors or {}
        super().__init__(message, details={"errors": self.errors})

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors={field: [message]})


class InvalidAmount(ValidationError):
    """Amount is not a positive two-decimal value"""

    error_code = "ERR_INVALID_AMOUNT"

    def __init__(self, message: str, field: str = "amount"):
        super().__init__(message, errors={field: [message]})


class UnknownAccount(ValidationError):
    """A referenced account id does not exist in the chart of accounts"""

    error_code = "ERR_UNKNOWN_ACCOUNT"

    def __init__(self, account_id: Any, field: str = "account_id"):
        self.account_id = account_id
        self.field = field
        message = f"Account {account_id} does not exist"
        super().__init__(message, errors={field: [message]})


class InvalidAccountClassification(LedgerError):
    """A resolved account does not satisfy the type or naming rule of its role"""

    error_code = "ERR_ACCOUNT_CLASSIFICATION"
    status_code = 422

    def __init__(self, message: str, account_id: Any = None, role: Optional[str] = None):
        self.account_id = account_id
        self.role = role
        super().__init__(message, details={"account_id": account_id, "role": role})


class MissingCanonicalAccount(LedgerError):
    """A required singleton account (e.g. Cash) is absent from the chart"""

    error_code = "ERR_MISSING_CANONICAL_ACCOUNT"
    status_code = 500

    def __init__(self, account_name: str):
        self.account_name = account_name
        super().__init__(
            f"{account_name} account not found. Please ensure it exists in "
            f"the chart of accounts with type Asset.",
            details={"account_name": account_name},
        )


class ExhaustedRetries(LedgerError):
    """Document number allocation could not find a free number"""

    error_code = "ERR_NUMBERING_EXHAUSTED"
    status_code = 503

    def __init__(self, prefix: str, attempts: int):
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a {prefix} number after {attempts} attempts",
            details={"prefix": prefix, "attempts": attempts},
        )


class RecordNotFound(LedgerError):
    """Requested record does not exist"""

    error_code = "ERR_NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, record_id: Any):
        self.resource = resource
        self.record_id = record_id
        super().__init__(
            f"{resource} with ID {record_id} not found",
            details={"resource": resource, "id": record_id},
        )


class AccountInUse(LedgerError):
    """Account type cannot change once postings reference the account"""

    error_code = "ERR_ACCOUNT_IN_USE"
    status_code = 409

    def __init__(self, account_id: int, posting_count: int):
        self.account_id = account_id
        self.posting_count = posting_count
        super().__init__(
            f"Account {account_id} is referenced by {posting_count} postings "
            f"and cannot be reclassified",
            details={"account_id": account_id, "posting_count": posting_count},
        )
