import asyncio
from datetime import date, datetime, timedelta

from conftest import ALICE, BOB
from ledger.ledger_gateway import VoteRecord
from lifecycle.vote_repository import VoteRepository


def record(vote_id, title, creator, timestamp, verified=False):
    return VoteRecord(
        id=vote_id, title=title, option1="A", option2="B", option3="C",
        creator=creator, timestamp=timestamp, public_value1=0, public_value2=0,
        encrypted_handle="0x" + vote_id.encode().hex(), is_verified=verified,
        decrypted_value=1 if verified else None)


class StubGateway:
    """Returns the next batch of records on each listing"""

    def __init__(self, *batches):
        self.batches = list(batches)

    async def list_records(self):
        return self.batches.pop(0)


def test_refresh_replaces_whole_snapshot():
    now = int(datetime.now().timestamp())
    first = [record("vote-1", "Lunch", ALICE, now), record("vote-2", "Dinner", BOB, now)]
    second = [record("vote-2", "Dinner", BOB, now, verified=True)]

    async def scenario():
        repository = VoteRepository(StubGateway(first, second))
        snapshots = []
        repository.subscribe(snapshots.append)
        await repository.refresh()
        await repository.refresh()
        return repository, snapshots

    repository, snapshots = asyncio.run(scenario())
    assert [r.id for r in snapshots[0]] == ["vote-1", "vote-2"]
    assert repository.votes == tuple(second)
    assert repository.get("vote-1") is None
    assert repository.get("vote-2").is_verified
    assert repository.refreshed_at is not None


def test_stats_and_search():
    today = date(2026, 3, 14)
    midday = int(datetime(2026, 3, 14, 12).timestamp())
    yesterday = int((datetime(2026, 3, 14, 12) - timedelta(days=1)).timestamp())
    records = [
        record("vote-1", "Team lunch", ALICE, midday, verified=True),
        record("vote-2", "Offsite venue", BOB, yesterday),
        record("vote-3", "Lunch budget", BOB, midday),
    ]

    async def scenario():
        repository = VoteRepository(StubGateway(records))
        await repository.refresh()
        return repository

    repository = asyncio.run(scenario())
    stats = repository.stats(today=today)
    assert (stats.total_votes, stats.verified_votes, stats.today_votes) == (3, 1, 2)

    assert [r.id for r in repository.search("LUNCH")] == ["vote-1", "vote-3"]
    assert [r.id for r in repository.search(BOB.lower()[:10])] == ["vote-2", "vote-3"]
    assert len(repository.search("  ")) == 3


def test_raising_subscriber_keeps_snapshot():
    now = int(datetime.now().timestamp())
    records = [record("vote-1", "Lunch", ALICE, now)]

    def broken(snapshot):
        raise RuntimeError("view crashed")

    async def scenario():
        repository = VoteRepository(StubGateway(records))
        seen = []
        repository.subscribe(broken)
        repository.subscribe(seen.append)
        await repository.refresh()
        return repository, seen

    repository, seen = asyncio.run(scenario())
    assert repository.votes == tuple(records)
    assert seen == [tuple(records)]
