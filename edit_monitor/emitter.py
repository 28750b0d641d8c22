# Edit Monitor — batch uploader
#
# Each tick, per category: drain the queue, build the payload, split it into
# chunks of batch_size, POST the chunks in order. The first failed chunk
# aborts the rest. Drained events are not requeued after a failure: a
# partial send would otherwise be submitted twice.

import json
import logging
from typing import Dict, List, Optional

import requests

from .config import Settings
from .events import STATS_SENT, StatsEventBus
from .mutations import batch_mutation_query, build_flat_payload, build_mutations, chunked
from .normalizer import CodingEvent, EventType
from .state import EventState

logger = logging.getLogger(__name__)


class BatchUploader:
    """Drains EventState queues and posts them to the telemetry backend."""

    def __init__(self, settings: Settings, state: EventState,
                 bus: Optional[StatsEventBus] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings
        self.state = state
        self.bus = bus
        self.session = session or requests.Session()

    def category(self, event_type: EventType) -> str:
        if event_type is EventType.AUTO_COMPLETION:
            return self.settings.auto_completion_category
        return self.settings.hand_written_category

    @property
    def uses_webhook(self) -> bool:
        return bool(self.settings.webhook)

    def tick(self) -> Dict[EventType, bool]:
        """One upload round. Returns per-category success."""
        if not self.settings.api_key:
            logger.warning("No API key configured, skipping upload")
            return {}
        return {event_type: self.flush(event_type) for event_type in EventType}

    def flush(self, event_type: EventType) -> bool:
        events = self.state.drain(event_type)
        if not events:
            return True

        category = self.category(event_type)
        logger.info(f"Sending {len(events)} {event_type.value} events")
        if self.uses_webhook:
            ok = self._send_flat(events, category)
        else:
            ok = self._send_graphql(events, category)

        if ok:
            if self.bus:
                self.bus.emit(STATS_SENT, event_type=event_type, count=len(events))
        else:
            logger.warning(f"Dropped {len(events)} {event_type.value} events after failed upload")
        return ok

    # ── GraphQL variant ─────────────────────────────────────

    def _send_graphql(self, events: List[CodingEvent], category: str) -> bool:
        mutations = build_mutations(events, category, self.settings)
        batches = list(chunked(mutations, self.settings.batch_size))
        logger.info(f"Sending {len(mutations)} mutations in {len(batches)} batches")

        headers = {
            "Content-Type": "application/json",
            "Authorization": self.settings.api_key,
        }
        for index, batch in enumerate(batches, start=1):
            body = json.dumps({"query": batch_mutation_query(batch)})
            if not self._post(self.settings.graphql_endpoint, body, headers):
                logger.error(f"Failed to send batch {index} of {len(batches)}")
                return False
        return True

    # ── Flat JSON variant ───────────────────────────────────

    def _send_flat(self, events: List[CodingEvent], category: str) -> bool:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.settings.api_key,
        }
        batches = list(chunked(events, self.settings.batch_size))
        for index, batch in enumerate(batches, start=1):
            body = json.dumps(build_flat_payload(batch, category, self.settings))
            if not self._post(self.settings.webhook, body, headers):
                logger.error(f"Failed to send batch {index} of {len(batches)}")
                return False
        return True

    def _post(self, url: str, body: str, headers: Dict[str, str]) -> bool:
        try:
            r = self.session.post(
                url,
                data=body,
                headers=headers,
                timeout=self.settings.http_timeout_secs,
            )
        except requests.RequestException as e:
            logger.warning(f"Upload to {url} failed: {e}")
            return False
        if 200 <= r.status_code < 300:
            return True
        logger.warning(f"Upload to {url} rejected: HTTP {r.status_code}: {r.text[:500]}")
        return False

    def close(self) -> None:
        self.session.close()
