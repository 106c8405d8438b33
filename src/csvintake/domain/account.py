"""Account domain service."""

from typing import Optional
from csvintake.database.base import Database
from csvintake.domain import errors
from csvintake.domain.entities import Account as AccountEntity


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(self, name: str) -> int:
        """Create a new account.

        Args:
            name: Account name

        Returns:
            Account ID

        Raises:
            ValidationError: If name is blank
            ConflictError: If account name already exists
        """
        name = name.strip()
        if not name:
            raise errors.ValidationError("Account name cannot be empty")
        if self.db.get_account_by_name(name) is not None:
            raise errors.ConflictError(errors.account_name_taken(name))

        return self.db.create_account(name=name)

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_name(self, name: str) -> Optional[AccountEntity]:
        """Get account by name.

        Args:
            name: Account name

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account_by_name(name)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def resolve_account(self, account: str | int) -> AccountEntity:
        """Resolve an account name or ID.

        Args:
            account: Account name, ID, or string representation of an ID

        Returns:
            Account entity

        Raises:
            NotFoundError: If no account matches
        """
        if isinstance(account, int):
            found = self.db.get_account(account)
            if found is None:
                raise errors.NotFoundError(errors.account_not_found(account))
            return found

        # Names take precedence over numeric IDs
        found = self.db.get_account_by_name(account)
        if found is not None:
            return found

        try:
            account_id = int(account)
        except (ValueError, TypeError):
            raise errors.NotFoundError(errors.account_not_found(account)) from None

        found = self.db.get_account(account_id)
        if found is None:
            raise errors.NotFoundError(errors.account_not_found(account_id))
        return found
