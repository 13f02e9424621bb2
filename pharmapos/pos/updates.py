import json
import time
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

import httpx
from loguru import logger

from pharmapos.pos.client import DEFAULT_BASE_URL


UPDATES_PATH = "/api/products/updates"
MAX_RETRIES = 5
BACKOFF_SECONDS = 1.0


class UpdatesUnavailable(Exception):
    """Raised once the update stream could not be re-established."""


def parse_event_stream(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Turn ``text/event-stream`` lines into decoded ``data`` payloads."""
    data = []
    for line in lines:
        if line == "":
            if data:
                yield json.loads("\n".join(data))
                data = []
            continue
        if line.startswith(":"):
            continue
        if line.startswith("data:"):
            value = line[5:]
            data.append(value[1:] if value.startswith(" ") else value)

    if data:
        yield json.loads("\n".join(data))


class ProductUpdates:
    """
    Follows the product update stream and hands each event to a callback.

    A dropped connection is retried after ``backoff * attempt`` seconds;
    after ``max_retries`` failed attempts in a row ``listen`` gives up with
    ``UpdatesUnavailable``. A successful connect resets the count.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        client: Optional[httpx.Client] = None,
        max_retries: int = MAX_RETRIES,
        backoff: float = BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._http = client or httpx.Client(
            base_url=base_url, timeout=httpx.Timeout(5.0, read=None)
        )
        self._owns_client = client is None
        self.max_retries = max_retries
        self.backoff = backoff
        self._sleep = sleep
        self._closed = False
        self._listening = False

    def close(self):
        """Stop listening; the connection is released once ``listen`` returns."""
        self._closed = True
        if not self._listening:
            self._release()

    def _release(self):
        if self._owns_client:
            self._http.close()

    def listen(self, handler: Callable[[Dict[str, Any]], None]):
        self._listening = True
        try:
            self._follow(handler)
        finally:
            self._listening = False
            if self._closed:
                self._release()

    def _follow(self, handler: Callable[[Dict[str, Any]], None]):
        retries = 0
        while not self._closed:
            try:
                with self._http.stream("GET", UPDATES_PATH) as response:
                    response.raise_for_status()
                    retries = 0
                    logger.info("Connected to product update stream")
                    for event in parse_event_stream(response.iter_lines()):
                        handler(event)
                        if self._closed:
                            return
                logger.warning("Product update stream ended")
            except (httpx.HTTPError, json.JSONDecodeError) as e:
                logger.warning(f"Product update stream error: {e}")

            if self._closed:
                return
            if retries >= self.max_retries:
                logger.error(f"Giving up on product updates after {retries} retries")
                raise UpdatesUnavailable(
                    f"Product update stream unavailable after {retries} retries"
                )

            retries += 1
            delay = self.backoff * retries
            logger.info(f"Reconnecting to product updates in {delay:.1f}s (attempt {retries})")
            self._sleep(delay)
