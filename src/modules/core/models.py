"""Base abstract model and transactional outbox for the order service.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``OutboxEvent``: domain events waiting to be published after commit.

UUIDv7 keys are time-ordered, so rows created later sort after earlier
ones even when two rows share the same ``created_at`` value.
"""

from __future__ import annotations

from typing import Optional

import uuid6
from django.db import models
from django.utils import timezone

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Outbox
# ---------------------------------------------------------------------------


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxEventQuerySet(models.QuerySet):
    def pending(self) -> OutboxEventQuerySet:
        """Events not yet handed to the event bus, oldest first."""
        return self.filter(status=EventStatus.PENDING).order_by("created_at", "id")


class OutboxEvent(BaseModel):
    """A domain event stored next to the order change that raised it.

    The order repository writes these rows inside the command's
    transaction, so an event exists if and only if its change committed.
    ``core.publish_outbox_events`` claims ``PENDING`` rows as ``PROCESSING``
    and then moves each one to ``PUBLISHED`` or ``FAILED``.  Nothing
    retries failed rows; they stay in the table with their error for an
    operator to inspect.
    """

    topic = models.CharField(max_length=100)
    event_type = models.CharField(max_length=100)
    aggregate_id = models.CharField(max_length=255)
    payload = models.JSONField()

    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    attempts = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(
                fields=["status", "created_at"],
                name="outbox_status_created_idx",
            ),
        ]

    def _finish(self, status: str, error: Optional[str] = None) -> None:
        self.status = status
        self.error_message = error
        self.processed_at = timezone.now()
        self.attempts += 1
        self.save(
            update_fields=["status", "error_message", "processed_at", "attempts"]
        )

    def mark_as_published(self) -> None:
        self._finish(EventStatus.PUBLISHED)

    def mark_as_failed(self, error: str) -> None:
        """Record a delivery failure; the event is not picked up again."""
        self._finish(EventStatus.FAILED, error)

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"
