"""In-memory state repositories."""

from sova.storage.credential_store import CredentialStore
from sova.storage.signal_ledger import DEFAULT_CAPACITY, SignalCallback, SignalLedger
from sova.storage.subscription_registry import SubscriptionRegistry
from sova.storage.session_manager import DEFAULT_MAX_DEVICES, SessionManager

__all__ = [
    "CredentialStore",
    "SignalLedger",
    "SignalCallback",
    "DEFAULT_CAPACITY",
    "SubscriptionRegistry",
    "SessionManager",
    "DEFAULT_MAX_DEVICES",
]
