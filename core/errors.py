"""
Purpose: Error taxonomy shared by every package.
What it does:
Every failure the dispatch core can raise maps to exactly one of these kinds,
so a transport layer can translate them 1:1 (400 / 404 / 409 / 503).

- ValidationError: malformed or missing input. Client fault, never retried.
- NotFound: referenced courier or order does not exist.
- Conflict: claim race lost, or a status move the order can no longer make.
- TransientStoreError: backing store unreachable or timed out. Safe to retry verbatim.

Rule: no imports from other packages here.
"""

from typing import Optional


class DispatchError(Exception):
    """Base class for all dispatch core failures."""
    pass


class ValidationError(DispatchError):
    """Raised when request input is malformed or missing."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}" if field else message)


class NotFound(DispatchError):
    """Raised when a referenced courier or order does not exist."""

    def __init__(self, kind: str, identifier: Optional[str], message: Optional[str] = None):
        self.kind = kind
        self.identifier = identifier
        super().__init__(message or f"{kind} {identifier} not found")


class Conflict(DispatchError):
    """
    Raised when an order cannot make the requested move because another
    writer got there first (e.g. a lost claim race), or because there is no
    such order to claim.
    Expected under normal load; clients should drop the order from their list.
    """

    def __init__(self, message: str, order_id: Optional[str] = None, current_status: Optional[str] = None):
        self.order_id = order_id
        self.current_status = current_status
        super().__init__(message)


class TransientStoreError(DispatchError):
    """Raised when the backing store is unreachable or an operation timed out."""
    pass
