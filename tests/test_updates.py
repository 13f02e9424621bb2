# Product update consumer tests
#
# Tests for:
# - Parsing text/event-stream frames
# - Reconnect with linear backoff and the retry cap
# - Retry counter reset after a successful connection

import json

import httpx
import pytest

from pharmapos.pos.updates import ProductUpdates, UpdatesUnavailable, parse_event_stream


def _frame(event):
    return f"data: {json.dumps(event)}\n\n"


DELETED = {"type": "product_deleted", "data": {"id": 3}}
UPDATED = {"type": "product_update", "data": {"product": {"id": 1, "stock": 90}}}


class ScriptedServer:
    """Answers each connection attempt with the next scripted outcome."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.attempts = 0

    def __call__(self, request):
        self.attempts += 1
        outcome = self.outcomes.pop(0)
        if outcome is None:
            raise httpx.ConnectError("Connection refused", request=request)
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=outcome.encode(),
        )


def _updates(server, **kwargs):
    sleeps = []
    http = httpx.Client(transport=httpx.MockTransport(server), base_url="http://pos")
    updates = ProductUpdates(client=http, sleep=sleeps.append, **kwargs)
    return updates, sleeps


class TestParseEventStream:

    def test_frames_and_comments(self):
        lines = [": connected", "", "data: " + json.dumps(DELETED), "", ": keep-alive", ""]
        assert list(parse_event_stream(lines)) == [DELETED]

    def test_multiline_data(self):
        lines = ['data: {"type": "data_reset",', 'data: "data": {}}', ""]
        assert list(parse_event_stream(lines)) == [{"type": "data_reset", "data": {}}]

    def test_unterminated_frame_at_end(self):
        lines = ["data: " + json.dumps(UPDATED)]
        assert list(parse_event_stream(lines)) == [UPDATED]


class TestProductUpdates:

    def test_reconnects_with_linear_backoff(self):
        """
        SCENARIO: Server is down for two attempts, then streams an event
        EXPECTED: Waits 1s then 2s, delivers the event
        """
        server = ScriptedServer(None, None, ": connected\n\n" + _frame(DELETED))
        updates, sleeps = _updates(server)
        received = []

        def handler(event):
            received.append(event)
            updates.close()

        updates.listen(handler)

        assert received == [DELETED]
        assert sleeps == [1.0, 2.0]
        assert server.attempts == 3

    def test_gives_up_after_max_retries(self):
        server = ScriptedServer(*[None] * 6)
        updates, sleeps = _updates(server)

        with pytest.raises(UpdatesUnavailable):
            updates.listen(lambda event: None)

        assert sleeps == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert server.attempts == 6

    def test_error_status_counts_as_failure(self):
        server = ScriptedServer(503, 503)
        updates, sleeps = _updates(server, max_retries=1)

        with pytest.raises(UpdatesUnavailable):
            updates.listen(lambda event: None)

        assert sleeps == [1.0]

    def test_successful_connection_resets_retries(self):
        """
        SCENARIO: Stream drops after one event and the first reconnect fails
        EXPECTED: Backoff restarts from 1s after the successful connection
        """
        server = ScriptedServer(
            None,
            _frame(UPDATED),
            None,
            _frame(DELETED),
        )
        updates, sleeps = _updates(server)
        received = []

        def handler(event):
            received.append(event)
            if event == DELETED:
                updates.close()

        updates.listen(handler)

        assert received == [UPDATED, DELETED]
        assert sleeps == [1.0, 1.0, 2.0]

    def test_close_releases_own_client(self):
        updates = ProductUpdates(base_url="http://pos")

        updates.close()

        assert updates._http.is_closed

    def test_close_leaves_injected_client_open(self):
        server = ScriptedServer(_frame(DELETED))
        updates, _ = _updates(server)

        updates.listen(lambda event: updates.close())

        assert not updates._http.is_closed
