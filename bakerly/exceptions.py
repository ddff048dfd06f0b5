"""Exception hierarchy for Bakerly."""

from __future__ import annotations


class BakerlyError(Exception):
    """Base exception for all Bakerly errors."""


class EntitlementDenied(BakerlyError):
    """Raised when a create/edit/delete is not covered by the tenant's plan.

    Distinct from store failures so callers can show an upgrade prompt
    instead of a retry prompt.
    """

    def __init__(self, resource_type: str, reason: str, record_id: str | None = None) -> None:
        self.resource_type = resource_type
        self.reason = reason
        self.record_id = record_id
        super().__init__(f"Upgrade required: {reason}")


class SubscriptionDataUnavailable(BakerlyError):
    """Raised when a tenant's subscription record cannot be fetched."""


class BonusLedgerMissing(BakerlyError):
    """Raised when the bonus ledger row can be neither read nor created."""


class StoreIOError(BakerlyError):
    """Raised when the backing store fails a read or write."""


class RecordNotFound(BakerlyError):
    """Raised when a record id is not part of the tenant's collection."""

    def __init__(self, resource_type: str, record_id: str) -> None:
        self.resource_type = resource_type
        self.record_id = record_id
        super().__init__(f"{resource_type} record {record_id!r} not found")


class ConfigError(BakerlyError):
    """Raised when configuration is invalid."""
