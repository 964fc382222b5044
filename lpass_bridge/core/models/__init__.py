"""
Domain models — Pydantic types for lpass-bridge.

All models are re-exported here for convenient access:

    from lpass_bridge.core.models import Account, AddRequest, ProcessOutput
"""

from lpass_bridge.core.models.account import (
    UNSYNCED_ID,
    Account,
    AccountIdentifier,
    AddRequest,
    SetPasswordRequest,
)
from lpass_bridge.core.models.output import ProcessOutput

__all__ = [
    # account.py
    "Account",
    "AccountIdentifier",
    "AddRequest",
    "SetPasswordRequest",
    "UNSYNCED_ID",
    # output.py
    "ProcessOutput",
]
