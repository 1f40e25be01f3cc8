import asyncio

import pytest

from services.uploader.application.poll_status import StatusPoller
from services.uploader.application.schemas import parse_status_response
from services.uploader.domain.cancellation import CancellationToken
from services.uploader.domain.errors import NetworkFailureError

COMPLETED = {
    "recordingId": "r1",
    "status": "COMPLETED",
    "steps": [
        {
            "index": 0,
            "startSec": 0,
            "endSec": 6,
            "title": "Open the panel",
            "description": "Remove the four screws.",
        }
    ],
}


def _status(status: str) -> dict:
    return {"recordingId": "r1", "status": status}


class ScriptedApi:
    """Replays one entry per poll; exceptions in the script are raised."""

    def __init__(self, script) -> None:
        self.script = list(script)
        self.calls = 0

    async def fetch_recording_status(self, recording_id):
        self.calls += 1
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        return parse_status_response(entry)


async def _poll(api, **kwargs):
    updates = []
    poller = StatusPoller(api=api, interval_ms=1, **kwargs)
    subscription = poller.poll("r1", updates.append)
    final = await subscription.wait()
    return final, updates


def test_polls_until_completed_and_delivers_every_update():
    api = ScriptedApi(
        [
            _status("CREATED"),
            _status("PROCESSING"),
            _status("PROCESSING"),
            COMPLETED,
            _status("PROCESSING"),
        ]
    )

    final, updates = asyncio.run(_poll(api))

    assert [u.status for u in updates] == ["CREATED", "PROCESSING", "PROCESSING", "COMPLETED"]
    assert final.status == "COMPLETED"
    assert api.calls == 4


def test_failed_status_is_terminal():
    api = ScriptedApi([_status("UPLOADED"), {**_status("FAILED"), "error": "bad codec"}])

    final, updates = asyncio.run(_poll(api))

    assert final.error == "bad codec"
    assert len(updates) == 2
    assert api.calls == 2


def test_transient_failure_does_not_stop_polling():
    api = ScriptedApi(
        [
            _status("PROCESSING"),
            NetworkFailureError("connection reset"),
            _status("PROCESSING"),
            COMPLETED,
        ]
    )

    final, updates = asyncio.run(_poll(api))

    assert final.status == "COMPLETED"
    assert [u.status for u in updates] == ["PROCESSING", "PROCESSING", "COMPLETED"]
    assert api.calls == 4


def test_failure_cap_ends_subscription():
    api = ScriptedApi(
        [
            NetworkFailureError("down"),
            _status("PROCESSING"),
            NetworkFailureError("down"),
            NetworkFailureError("down"),
            COMPLETED,
        ]
    )
    errors = []

    async def scenario():
        poller = StatusPoller(api=api, interval_ms=1, max_consecutive_failures=2)
        subscription = poller.poll("r1", lambda status: None, on_error=errors.append)
        return await subscription.wait()

    final = asyncio.run(scenario())

    assert final is None
    assert api.calls == 4
    assert len(errors) == 1


def test_cancellation_discards_in_flight_result():
    updates = []

    class SlowApi:
        def __init__(self) -> None:
            self.started = None
            self.release = None
            self.calls = 0

        async def fetch_recording_status(self, recording_id):
            self.calls += 1
            self.started.set()
            await self.release.wait()
            return parse_status_response(COMPLETED)

    async def scenario():
        api = SlowApi()
        api.started, api.release = asyncio.Event(), asyncio.Event()
        subscription = StatusPoller(api=api, interval_ms=1).poll("r1", updates.append)
        await api.started.wait()
        subscription.cancel()
        api.release.set()
        final = await subscription.wait()
        return api, subscription, final

    api, subscription, final = asyncio.run(scenario())

    assert final is None
    assert updates == []
    assert subscription.cancelled
    assert subscription.done
    assert api.calls == 1


def test_cancellation_stops_future_ticks():
    api = ScriptedApi([_status("PROCESSING")] * 50)
    updates = []

    async def scenario():
        poller = StatusPoller(api=api, interval_ms=60_000)
        subscription = poller.poll("r1", updates.append)
        while not updates:
            await asyncio.sleep(0)
        subscription.cancel()
        return await asyncio.wait_for(subscription.wait(), timeout=1)

    final = asyncio.run(scenario())

    assert final is None
    assert api.calls == 1
    assert len(updates) == 1


def test_caller_token_cancels_subscription():
    api = ScriptedApi([_status("PROCESSING")] * 50)
    token = CancellationToken()

    async def scenario():
        poller = StatusPoller(api=api, interval_ms=60_000)
        subscription = poller.poll("r1", lambda status: token.cancel(), cancel_token=token)
        return subscription, await asyncio.wait_for(subscription.wait(), timeout=1)

    subscription, final = asyncio.run(scenario())

    assert final is None
    assert subscription.cancelled
    assert api.calls == 1


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        StatusPoller(api=ScriptedApi([]), interval_ms=0)


@pytest.mark.parametrize("status", ["FAILED", "COMPLETED"])
def test_bare_terminal_status_stops_polling(status):
    api = ScriptedApi([_status(status), _status("PROCESSING")])

    final, updates = asyncio.run(_poll(api))

    assert final.status == status
    assert len(updates) == 1
    assert api.calls == 1


@pytest.mark.parametrize("interval_ms", [0, -5])
def test_per_call_interval_must_be_positive(interval_ms):
    poller = StatusPoller(api=ScriptedApi([]), interval_ms=1)

    async def start():
        poller.poll("r1", lambda status: None, interval_ms=interval_ms)

    with pytest.raises(ValueError):
        asyncio.run(start())


def test_subscription_wait_returns_the_loop_result():
    api = ScriptedApi([COMPLETED])

    async def run():
        subscription = StatusPoller(api=api, interval_ms=1).poll("r1", lambda status: None)
        assert not subscription.done
        final = await subscription.wait()
        return subscription, final

    subscription, final = asyncio.run(run())

    assert subscription.done
    assert final.status == "COMPLETED"
