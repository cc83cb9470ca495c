import asyncio

from config.config import StatusConfig
from lifecycle.status_tracker import TransactionStatusTracker, TxStatus


def make_tracker():
    return TransactionStatusTracker(StatusConfig(success_display_seconds=0.05,
                                                 error_display_seconds=0.1))


def test_success_hides_after_window():
    async def scenario():
        tracker = make_tracker()
        tracker.success("Vote created successfully!")
        shown = tracker.current
        await asyncio.sleep(0.08)
        return shown, tracker.current

    shown, after = asyncio.run(scenario())
    assert shown.visible and shown.status == TxStatus.SUCCESS
    assert not after.visible


def test_error_window_is_longer_than_success():
    async def scenario():
        tracker = make_tracker()
        tracker.error("Submission failed: boom")
        await asyncio.sleep(0.07)
        mid = tracker.current
        await asyncio.sleep(0.06)
        return mid, tracker.current

    mid, after = asyncio.run(scenario())
    assert mid.visible and mid.status == TxStatus.ERROR
    assert not after.visible


def test_pending_stays_until_replaced():
    async def scenario():
        tracker = make_tracker()
        tracker.pending("Waiting for transaction confirmation...")
        await asyncio.sleep(0.15)
        return tracker.current

    current = asyncio.run(scenario())
    assert current.visible
    assert current.status == TxStatus.PENDING


def test_newer_status_is_not_hidden_by_older_timer():
    async def scenario():
        tracker = make_tracker()
        tracker.success("first")
        await asyncio.sleep(0.03)
        tracker.pending("second")
        await asyncio.sleep(0.05)
        return tracker.current

    current = asyncio.run(scenario())
    assert current.visible
    assert current.message == "second"


def test_subscribers_see_every_transition():
    async def scenario():
        tracker = make_tracker()
        seen = []
        unsubscribe = tracker.subscribe(seen.append)
        tracker.pending("a")
        tracker.success("b")
        await asyncio.sleep(0.08)
        unsubscribe()
        tracker.error("c")
        return seen

    seen = asyncio.run(scenario())
    assert [(s.visible, s.message) for s in seen] == [(True, "a"), (True, "b"), (False, "")]


def test_clear_hides_immediately():
    async def scenario():
        tracker = make_tracker()
        tracker.error("x")
        tracker.clear()
        return tracker.current

    assert not asyncio.run(scenario()).visible


def test_raising_subscriber_does_not_block_others():
    def broken(status):
        raise RuntimeError("view crashed")

    async def scenario():
        tracker = make_tracker()
        seen = []
        tracker.subscribe(broken)
        tracker.subscribe(seen.append)
        tracker.success("done")
        shown = tracker.current
        await asyncio.sleep(0.08)
        return shown, tracker.current, seen

    shown, after, seen = asyncio.run(scenario())
    assert shown.message == "done"
    assert not after.visible
    assert [s.message for s in seen] == ["done", ""]
