"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


def account_not_found(account: int | str) -> str:
    """Return message for missing account."""
    if isinstance(account, int):
        return f"Account {account} not found"
    return f"Account '{account}' not found"


def account_name_taken(name: str) -> str:
    """Return message for duplicate account names."""
    return f"Account with name '{name}' already exists"


def preset_not_found(preset_id: str) -> str:
    """Return message for unknown format presets."""
    return f"Format preset '{preset_id}' not found"


def invalid_date(raw: str) -> str:
    """Return row error message for an unparseable date."""
    return f'Invalid date: "{raw}"'


def invalid_amount(raw: str) -> str:
    """Return row error message for an unparseable amount."""
    return f'Invalid amount: "{raw}"'


NO_AMOUNT_FOUND = "No amount found"
NO_VENDOR_OR_DESCRIPTION = "No vendor or description found"


def missing_mappings(fields: list[str]) -> str:
    """Return message when a mapping set cannot produce transactions."""
    return f"Column mapping is missing required fields: {', '.join(fields)}"
