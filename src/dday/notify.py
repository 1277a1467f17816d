"""Best-effort webhook delivery of milestone status changes."""

from __future__ import annotations

import logging

import httpx

from dday.models import MilestoneStatus
from dday.scheduler import TransitionEvent

logger = logging.getLogger(__name__)

EVENT_PATHS = {
    MilestoneStatus.COMPLETED: "task-completed",
    MilestoneStatus.DELAYED: "task-delayed",
}


class WebhookNotifier:
    """Posts transition events to ``{webhook_url}/{event-path}``.

    Failures are logged and reported in the result dict, never raised: a
    status change stands whether or not anyone hears about it.
    """

    def __init__(self, webhook_url: str | None, dry_run: bool = False, timeout: float = 10.0):
        self.webhook_url = webhook_url.rstrip("/") if webhook_url else None
        self.dry_run = dry_run
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def url_for(self, event: TransitionEvent) -> str:
        return f"{self.webhook_url}/{EVENT_PATHS[event.new_status]}"

    def send(self, event: TransitionEvent, reason: str | None = None) -> dict:
        if not self.enabled:
            return {"status": "disabled", "success": False}
        if event.new_status not in EVENT_PATHS:
            # reopening has no endpoint
            return {"status": "skipped", "success": False}

        payload = event.to_payload()
        if reason:
            payload["reason"] = reason
        url = self.url_for(event)

        if self.dry_run:
            logger.info("DRY RUN: webhook %s payload: %s", url, payload)
            return {"status": "dry_run", "success": True, "payload": payload}

        try:
            response = httpx.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Webhook HTTP error for milestone %s: %s", event.milestone_id, e)
            return {"status": "error", "success": False, "error": str(e)}
        except httpx.RequestError as e:
            logger.error("Webhook request error for milestone %s: %s", event.milestone_id, e)
            return {"status": "error", "success": False, "error": str(e)}

        logger.info("Notified %s for milestone %s", url, event.milestone_id)
        return {"status": "sent", "success": True, "status_code": response.status_code}
