"""Asynchronous tasks of the core module."""

from __future__ import annotations

from typing import Dict, List
from uuid import UUID

import structlog
from celery import shared_task
from django.db import transaction
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

PUBLISH_BATCH_SIZE = 100


def claim_pending_events(batch_size: int) -> List[UUID]:
    """Move up to *batch_size* pending events to ``PROCESSING``.

    The row locks are released as soon as the claim commits, so no lock
    is held while handlers talk to the mail server.
    """
    with transaction.atomic():
        ids = list(
            OutboxEvent.objects.pending()
            .select_for_update(skip_locked=True)
            .values_list("id", flat=True)[:batch_size]
        )
        OutboxEvent.objects.filter(id__in=ids).update(
            status=EventStatus.PROCESSING, updated_at=timezone.now()
        )
    return ids


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = PUBLISH_BATCH_SIZE) -> Dict[str, int]:
    """Hand pending outbox events to the in-process event bus.

    Each event is published and marked independently: a failing handler
    marks its event ``FAILED`` with the error message and the batch moves
    on.  Failed events are not retried here.
    """
    published = failed = skipped = 0

    claimed = OutboxEvent.objects.filter(id__in=claim_pending_events(batch_size))
    for event in claimed.order_by("created_at", "id"):
        log = logger.bind(
            outbox_event_id=str(event.id),
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
        )
        event_class = event_bus.resolve(event.event_type)
        if event_class is None:
            log.warning("outbox.event_unroutable")
            event.mark_as_failed(f"No handler registered for {event.event_type}.")
            skipped += 1
            continue

        try:
            event_bus.publish(event_class.from_payload(event.payload))
        except Exception as exc:
            log.exception("outbox.event_failed")
            event.mark_as_failed(str(exc) or exc.__class__.__name__)
            failed += 1
            continue

        event.mark_as_published()
        published += 1

    logger.info(
        "outbox.batch_published",
        published=published,
        failed=failed,
        skipped=skipped,
    )
    return {"published": published, "failed": failed, "skipped": skipped}
