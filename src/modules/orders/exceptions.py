"""Order domain exceptions.

Expected business outcomes (invalid transition, fulfillment mismatch,
missing note, unknown order) are returned as result values by the
service layer.  Only the truly exceptional paths raise.
"""

from __future__ import annotations


class AuditLogImmutable(Exception):
    """An existing audit log entry was about to be modified or deleted."""


class PaymentDeclined(Exception):
    """The payment gateway refused the charge; no order was created."""
