import asyncio
import json
import unittest

from stump_mediaserver.auth import StumpApiKeyAuthProvider
from stump_mediaserver.events import BookEvent
from stump_mediaserver.notifier.backoff import CircuitBreaker, ExponentialBackoff
from stump_mediaserver.notifier.changes import LibraryChangeDetector
from stump_mediaserver.notifier.subscription import (
    SubscriptionEventNotifier,
    parse_created_media,
    subscription_url,
)
from tests.fakes import (
    FailingListener,
    FakeConnect,
    FakeStumpClient,
    FakeWebSocket,
    RecordingListener,
    wait_until,
)

ACK = {"type": "connection_ack"}


def created_media(media_id="42", series_id="7", library_id="1", typename="CreatedMedia"):
    read_event = {"__typename": typename}
    if media_id is not None:
        read_event["id"] = media_id
    if series_id is not None:
        read_event["seriesId"] = series_id
    if library_id is not None:
        read_event["libraryId"] = library_id
    return {"type": "data", "id": "1", "payload": {"data": {"readEvents": read_event}}}


def quick_backoff(max_attempts=None):
    return ExponentialBackoff(initial=0.001, maximum=0.001, jitter=0, max_attempts=max_attempts)


class TestSubscriptionUrl(unittest.TestCase):
    def test_http_becomes_ws(self):
        self.assertEqual(subscription_url("http://localhost:10801"), "ws://localhost:10801/api/graphql")

    def test_https_keeps_port_and_prefix(self):
        self.assertEqual(
            subscription_url("https://stump.example.com:8443/stump/"),
            "wss://stump.example.com:8443/stump/api/graphql",
        )


class TestParseCreatedMedia(unittest.TestCase):
    def test_complete_event(self):
        event = parse_created_media({"__typename": "CreatedMedia", "id": "42", "seriesId": "7", "libraryId": "1"})
        self.assertEqual(event, BookEvent(library_id="1", series_id="7", book_id="42"))

    def test_partial_event_is_dropped(self):
        self.assertIsNone(parse_created_media({"__typename": "CreatedMedia", "id": "42", "libraryId": "1"}))
        self.assertIsNone(parse_created_media({"__typename": "CreatedMedia", "id": "42", "seriesId": "7"}))
        self.assertIsNone(
            parse_created_media({"__typename": "CreatedMedia", "id": "42", "seriesId": "7", "libraryId": None})
        )

    def test_other_typename_is_ignored(self):
        self.assertIsNone(parse_created_media({"__typename": "CreatedLibrary", "id": "1"}))


class TestHandleMessage(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.first = RecordingListener()
        self.failing = FailingListener()
        self.last = RecordingListener()
        self.notifier = SubscriptionEventNotifier(
            "http://stump.local",
            StumpApiKeyAuthProvider("secret"),
            [self.first, self.failing, self.last],
            backoff=quick_backoff(),
        )

    async def test_created_media_reaches_every_listener(self):
        self.assertTrue(await self.notifier.handle_message(json.dumps(ACK)))
        self.assertTrue(await self.notifier.handle_message(json.dumps(created_media())))

        expected = [[BookEvent(library_id="1", series_id="7", book_id="42")]]
        self.assertEqual(self.first.books_added, expected)
        self.assertEqual(self.last.books_added, expected)
        self.assertEqual(self.failing.calls, 1)

    async def test_other_event_types_emit_nothing(self):
        await self.notifier.handle_message(json.dumps(created_media(typename="SomeOtherEvent")))
        self.assertEqual(self.first.books_added, [])

    async def test_partial_created_media_emits_nothing(self):
        await self.notifier.handle_message(json.dumps(created_media(series_id=None)))
        await self.notifier.handle_message(json.dumps(created_media(library_id=None)))
        self.assertEqual(self.first.books_added, [])

    async def test_listener_failure_does_not_stop_later_messages(self):
        await self.notifier.handle_message(json.dumps(created_media(media_id="1")))
        await self.notifier.handle_message(json.dumps(created_media(media_id="2")))
        self.assertEqual([batch[0].book_id for batch in self.last.books_added], ["1", "2"])
        self.assertEqual(self.failing.calls, 2)

    async def test_malformed_messages_are_skipped(self):
        for message in ["not json", "[1, 2]", json.dumps({"type": "data", "payload": "oops"})]:
            self.assertTrue(await self.notifier.handle_message(message))
        self.assertEqual(self.first.books_added, [])

    async def test_non_data_envelopes(self):
        self.assertTrue(await self.notifier.handle_message(json.dumps({"type": "ka"})))
        self.assertTrue(await self.notifier.handle_message(json.dumps({"type": "error", "payload": [{"message": "x"}]})))
        self.assertFalse(await self.notifier.handle_message(json.dumps({"type": "complete", "id": "1"})))
        self.assertFalse(await self.notifier.handle_message(json.dumps({"type": "connection_error"})))

    async def test_ack_resets_backoff_and_circuit(self):
        self.notifier.backoff.next_delay()
        self.notifier.backoff.next_delay()
        self.notifier.circuit.record_failure()

        await self.notifier.handle_message(json.dumps(ACK))

        self.assertEqual(self.notifier.backoff.attempt, 0)
        self.assertEqual(self.notifier.circuit.get_status()["failure_count"], 0)
        self.assertEqual(self.notifier.status, "connected")


class TestSubscriptionLifecycle(unittest.IsolatedAsyncioTestCase):
    def make_notifier(self, connect, listeners, **kwargs):
        kwargs.setdefault("backoff", quick_backoff())
        return SubscriptionEventNotifier(
            "http://stump.local",
            StumpApiKeyAuthProvider("secret"),
            listeners,
            receive_timeout=0.01,
            connect=connect,
            **kwargs,
        )

    async def asyncTearDown(self):
        notifier = getattr(self, "notifier", None)
        if notifier is not None:
            notifier.stop()
            await asyncio.wait_for(notifier.join(), timeout=2)

    async def test_handshake_then_event(self):
        ws = FakeWebSocket([ACK, created_media()], hold_open=True)
        connect = FakeConnect([ws])
        listener = RecordingListener()
        self.notifier = self.make_notifier(connect, [listener])

        self.notifier.start()
        await asyncio.wait_for(listener.received.wait(), timeout=2)

        url, headers = connect.calls[0]
        self.assertEqual(url, "ws://stump.local/api/graphql")
        self.assertEqual(headers, {"Authorization": "Bearer secret"})
        self.assertEqual(ws.sent[0], {"type": "connection_init"})
        self.assertEqual(ws.sent[1]["id"], "1")
        self.assertEqual(ws.sent[1]["type"], "start")
        self.assertIn("readEvents", ws.sent[1]["payload"]["query"])
        self.assertEqual(listener.books_added, [[BookEvent(library_id="1", series_id="7", book_id="42")]])

    async def test_reconnects_after_connection_failure(self):
        ws = FakeWebSocket([ACK, created_media()], hold_open=True)
        connect = FakeConnect([OSError("connection refused"), ws])
        listener = RecordingListener()
        self.notifier = self.make_notifier(connect, [listener])

        self.notifier.start()
        await asyncio.wait_for(listener.received.wait(), timeout=2)

        self.assertEqual(len(connect.calls), 2)
        self.assertEqual(ws.sent[0], {"type": "connection_init"})

    async def test_reconnects_after_server_closes(self):
        first = FakeWebSocket([ACK])
        second = FakeWebSocket([ACK, created_media()], hold_open=True)
        connect = FakeConnect([first, second])
        listener = RecordingListener()
        self.notifier = self.make_notifier(connect, [listener])

        self.notifier.start()
        await asyncio.wait_for(listener.received.wait(), timeout=2)

        self.assertEqual(len(connect.calls), 2)
        self.assertEqual(second.sent[0], {"type": "connection_init"})

    async def test_start_twice_runs_one_session(self):
        connect = FakeConnect()
        self.notifier = self.make_notifier(connect, [])

        self.notifier.start()
        self.notifier.start()
        await wait_until(lambda: len(connect.calls) >= 1)
        await asyncio.sleep(0.05)

        self.assertEqual(len(connect.calls), 1)

    async def test_no_new_session_after_stop(self):
        connect = FakeConnect(default=lambda: OSError("connection refused"))
        self.notifier = self.make_notifier(connect, [], backoff=ExponentialBackoff(0.01, 0.01, jitter=0))

        self.notifier.start()
        await wait_until(lambda: len(connect.calls) >= 2)
        self.notifier.stop()
        self.notifier.stop()
        await asyncio.wait_for(self.notifier.join(), timeout=2)
        calls = len(connect.calls)
        await asyncio.sleep(0.05)

        self.assertEqual(len(connect.calls), calls)
        self.assertFalse(self.notifier.is_active)
        self.assertEqual(self.notifier.status, "stopped")

    async def test_gives_up_after_max_attempts(self):
        connect = FakeConnect(default=lambda: OSError("connection refused"))
        self.notifier = self.make_notifier(connect, [], backoff=quick_backoff(max_attempts=2))

        self.notifier.start()
        await asyncio.wait_for(self.notifier.join(), timeout=2)

        self.assertEqual(len(connect.calls), 3)
        self.assertFalse(self.notifier.is_active)
        self.assertEqual(self.notifier.status, "failed")

    async def test_circuit_opens_after_consecutive_failures(self):
        connect = FakeConnect(default=lambda: OSError("connection refused"))
        circuit = CircuitBreaker("test", failure_threshold=3, cooldown_seconds=3600)
        self.notifier = self.make_notifier(connect, [], circuit_breaker=circuit)

        self.notifier.start()
        await wait_until(lambda: len(connect.calls) >= 4)

        health = self.notifier.health()
        self.assertEqual(health["mode"], "subscription")
        self.assertEqual(health["circuit"]["state"], "open")

    async def test_falls_back_to_polling_when_circuit_opens(self):
        client = FakeStumpClient({"lib": {"s1": ["m1"]}})
        listener = RecordingListener()
        connect = FakeConnect(default=lambda: OSError("connection refused"))
        self.notifier = self.make_notifier(
            connect,
            [listener],
            circuit_breaker=CircuitBreaker("test", failure_threshold=1, cooldown_seconds=3600),
            fallback=LibraryChangeDetector(client),
            poll_interval=0.01,
        )

        self.notifier.start()
        await wait_until(lambda: client.library_calls >= 1)
        client.libraries["lib"]["s1"].append("m2")
        await asyncio.wait_for(listener.received.wait(), timeout=2)

        self.assertEqual(listener.books_added[0], [BookEvent(library_id="lib", series_id="s1", book_id="m2")])
        self.assertEqual(self.notifier.health()["status"], "degraded")
        self.assertEqual(self.notifier.mode, "auto")
        self.assertEqual(len(connect.calls), 1)

    async def test_media_added_before_first_fallback_poll_is_reported(self):
        client = FakeStumpClient({"lib": {"s1": ["m1"]}})
        listener = RecordingListener()

        def refused_after_upload():
            # The book lands after the startup baseline but before any fallback poll
            client.libraries["lib"]["s1"].append("m2")
            return OSError("connection refused")

        self.notifier = self.make_notifier(
            FakeConnect(default=refused_after_upload),
            [listener],
            circuit_breaker=CircuitBreaker("test", failure_threshold=1, cooldown_seconds=3600),
            fallback=LibraryChangeDetector(client),
            poll_interval=0.01,
        )

        self.notifier.start()
        await asyncio.wait_for(listener.received.wait(), timeout=2)

        self.assertEqual(listener.books_added, [[BookEvent(library_id="lib", series_id="s1", book_id="m2")]])


class TestSubscriptionCatchUp(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = FakeStumpClient({"lib": {"s1": ["m1"]}})
        self.listener = RecordingListener()
        self.notifier = SubscriptionEventNotifier(
            "http://stump.local",
            StumpApiKeyAuthProvider("secret"),
            [self.listener],
            backoff=quick_backoff(),
            fallback=LibraryChangeDetector(self.client),
        )

    async def test_first_ack_records_a_baseline(self):
        await self.notifier.handle_message(json.dumps(ACK))

        self.assertEqual(self.client.library_calls, 1)
        self.assertEqual(self.listener.books_added, [])

    async def test_ack_after_outage_reports_missed_media(self):
        await self.notifier.handle_message(json.dumps(ACK))
        self.client.libraries["lib"]["s1"].append("m2")

        await self.notifier.handle_message(json.dumps(ACK))

        self.assertEqual(self.listener.books_added, [[BookEvent(library_id="lib", series_id="s1", book_id="m2")]])
        self.assertEqual(self.notifier.status, "connected")

    async def test_reconnect_after_cooldown_reports_missed_media(self):
        clock = [0.0]
        circuit = CircuitBreaker("test", failure_threshold=1, cooldown_seconds=60, clock=lambda: clock[0])
        connect = FakeConnect([OSError("connection refused"), FakeWebSocket([ACK], hold_open=True)])
        self.notifier = SubscriptionEventNotifier(
            "http://stump.local",
            StumpApiKeyAuthProvider("secret"),
            [self.listener],
            backoff=quick_backoff(),
            circuit_breaker=circuit,
            fallback=LibraryChangeDetector(self.client),
            poll_interval=0.01,
            receive_timeout=0.01,
            connect=connect,
        )

        self.notifier.start()
        await wait_until(lambda: self.notifier.status == "degraded")
        self.client.libraries["lib"]["s1"].append("m2")
        clock[0] = 120.0
        await asyncio.wait_for(self.listener.received.wait(), timeout=2)

        self.assertEqual(self.listener.books_added[0], [BookEvent(library_id="lib", series_id="s1", book_id="m2")])
        self.assertEqual(len(connect.calls), 2)
        self.assertEqual(self.notifier.status, "connected")
        self.notifier.stop()
        await asyncio.wait_for(self.notifier.join(), timeout=2)


if __name__ == '__main__':
    unittest.main()
