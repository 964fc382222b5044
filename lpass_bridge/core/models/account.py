"""
Account models — the typed values that flow through LastPass recipes.

Requests are built by the caller and consumed once by a pipeline.
Accounts are snapshots produced by a listing; they are not kept in
sync with the vault after they are returned.
"""

from __future__ import annotations

from pydantic import BaseModel

# Sync id LastPass reports for records that never reached the server.
UNSYNCED_ID = "0"


class AccountIdentifier(BaseModel):
    """Opaque id of one stored record (LastPass's ``%ai`` field)."""

    model_config = {"frozen": True}

    value: str

    @property
    def synced(self) -> bool:
        return self.value != UNSYNCED_ID

    def __str__(self) -> str:
        return self.value


class Account(BaseModel):
    """One entry of an account listing."""

    model_config = {"frozen": True}

    identifier: AccountIdentifier
    user_name: str
    account_name: str

    @property
    def display_string(self) -> str:
        if not self.user_name:
            return self.account_name
        return f"{self.account_name} ({self.user_name})"

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match on account or user name.

        An empty filter matches everything.
        """
        if not text:
            return True
        needle = text.casefold()
        return any(needle in field.casefold() for field in (self.account_name, self.user_name))


class AddRequest(BaseModel):
    """Credentials for a new record."""

    model_config = {"frozen": True}

    user_name: str
    account_name: str
    password: str

    def __repr__(self) -> str:
        return f"AddRequest(user_name={self.user_name!r}, account_name={self.account_name!r})"


class SetPasswordRequest(BaseModel):
    """Replacement password for an existing record."""

    model_config = {"frozen": True}

    account_identifier: AccountIdentifier
    new_password: str

    def __repr__(self) -> str:
        return f"SetPasswordRequest(account_identifier={self.account_identifier.value!r})"
