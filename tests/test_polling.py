import asyncio

from chat_gateway.polling import ERROR, MISSING, poll_until_terminal

TERMINAL = {"completed", "failed", "cancelled", "expired"}


def _is_terminal(status):
    return status in TERMINAL


def _fetcher(statuses):
    seen = []

    async def fetch():
        value = statuses[len(seen)] if len(seen) < len(statuses) else statuses[-1]
        seen.append(value)
        if isinstance(value, Exception):
            raise value
        return value

    return fetch, seen


def _poll(fetch, initial="queued", max_attempts=30):
    return asyncio.run(poll_until_terminal(fetch, _is_terminal, initial, max_attempts=max_attempts, interval=0))


def test_stops_on_completion():
    fetch, seen = _fetcher(["in_progress", "in_progress", "completed"])
    result = _poll(fetch)
    assert result.completed
    assert result.attempts == 3
    assert len(seen) == 3


def test_already_terminal_does_not_fetch():
    fetch, seen = _fetcher(["completed"])
    result = _poll(fetch, initial="failed")
    assert result.status == "failed"
    assert result.attempts == 0
    assert seen == []


def test_ceiling_reports_timeout():
    fetch, seen = _fetcher(["in_progress"])
    result = _poll(fetch, initial="in_progress", max_attempts=5)
    assert result.timed_out
    assert not result.completed
    assert result.status == "in_progress"
    assert len(seen) == 5


def test_missing_job_ends_early():
    fetch, seen = _fetcher(["in_progress", None])
    result = _poll(fetch)
    assert result.status == MISSING
    assert result.attempts == 2
    assert not result.timed_out


def test_fetch_error_ends_without_retry():
    fetch, seen = _fetcher([ConnectionError("reset by peer"), "completed"])
    result = _poll(fetch)
    assert result.status == ERROR
    assert result.error == "reset by peer"
    assert len(seen) == 1


def test_unsuccessful_terminal_status():
    fetch, _ = _fetcher(["expired"])
    result = _poll(fetch)
    assert result.status == "expired"
    assert not result.completed
    assert not result.timed_out
