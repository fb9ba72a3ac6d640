from __future__ import annotations

import json
import unittest

import httpx

from notifications import AnalyticsTracker, Notifier


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000

    def __call__(self) -> int:
        return self.now


class TestNotifier(unittest.TestCase):
    def test_push_and_expire(self) -> None:
        clock = _Clock()
        notifier = Notifier(clock=clock)
        first = notifier.success("Verstuurd")
        assert first is not None
        self.assertEqual(first.kind, "success")
        self.assertTrue(first.dismissible)

        clock.now += 4_999
        self.assertEqual(len(notifier.active()), 1)
        clock.now += 1
        self.assertEqual(notifier.active(), [])

    def test_dismiss_removes_only_that_item(self) -> None:
        notifier = Notifier(clock=_Clock())
        a = notifier.error("Fout")
        b = notifier.info("Let op")
        assert a is not None and b is not None
        self.assertNotEqual(a.id, b.id)
        notifier.dismiss(a.id)
        self.assertEqual([n.id for n in notifier.active()], [b.id])
        notifier.dismiss(999)
        self.assertEqual(len(notifier.active()), 1)

    def test_empty_message_is_ignored(self) -> None:
        notifier = Notifier(clock=_Clock())
        self.assertIsNone(notifier.push("info", "   "))
        self.assertEqual(notifier.active(), [])


class TestAnalyticsTracker(unittest.TestCase):
    def test_posts_event_payload(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        tracker = AnalyticsTracker("http://api.test", client=client)
        self.assertTrue(tracker.track("quote_step_completed", {"step": 2}))
        self.assertEqual(str(seen[0].url), "http://api.test/api/analytics/event")
        self.assertEqual(
            json.loads(seen[0].content),
            {"eventType": "quote_step_completed", "eventData": {"step": 2}},
        )

    def test_disabled_sends_nothing(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        tracker = AnalyticsTracker("http://api.test", enabled=False, client=client)
        self.assertFalse(tracker.track("quote_modal_opened"))
        self.assertEqual(seen, [])

    def test_failures_are_swallowed(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        tracker = AnalyticsTracker("http://api.test", client=httpx.Client(transport=httpx.MockTransport(boom)))
        with self.assertLogs("notifications", level="WARNING"):
            self.assertFalse(tracker.track("quote_submitted", {}))

        rejecting = AnalyticsTracker(
            "http://api.test",
            client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500))),
        )
        with self.assertLogs("notifications", level="WARNING"):
            self.assertFalse(rejecting.track("quote_submitted", {}))


if __name__ == "__main__":
    unittest.main()
