from core.scoring.cache import ScoreCache
from shared.games.models import GameScores, GameStat
from shared.utils.hashing import stable_hash_for_records

TTL = 60.0


def _scores(team=7, opponent=4):
    return GameScores.from_quarters({1: (team, opponent)}, source="stats")


def _stats(goals_for=5):
    return [
        GameStat(id=1, game_id=1, quarter=1, position="GS", goals_for=goals_for, goals_against=3),
        GameStat(id=2, game_id=1, quarter=1, position="GA", goals_for=2, goals_against=1),
    ]


def test_hit_with_identical_stats(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores(), _stats(), "completed")

    assert cache.get(1, _stats(), "completed") == _scores()


def test_changed_goals_is_a_miss(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores(), _stats(goals_for=5), "completed")

    assert cache.get(1, _stats(goals_for=6), "completed") is None


def test_status_is_part_of_the_key(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores(), _stats(), "in-progress")

    assert cache.get(1, _stats(), "completed") is None
    assert cache.get(1, _stats(), "in-progress") is not None


def test_entry_expires_at_ttl(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores(), _stats())

    clock.advance(TTL - 0.001)
    assert cache.get(1, _stats()) is not None

    clock.advance(0.002)
    assert cache.get(1, _stats()) is None
    assert len(cache) == 0


def test_invalidate_drops_every_entry_for_the_game(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores(), _stats(5), "completed")
    cache.set(1, _scores(), _stats(6), "completed")
    cache.set(11, _scores(), _stats(5), "completed")

    assert cache.invalidate(1) == 2
    assert cache.get(1, _stats(5), "completed") is None
    assert cache.get(11, _stats(5), "completed") is not None


def test_purge_and_stats(clock):
    cache = ScoreCache(ttl_seconds=TTL, clock=clock)
    cache.set(1, _scores())
    clock.advance(TTL + 1)
    cache.set(2, _scores())

    assert cache.stats()["size"] == 2
    assert cache.purge_expired() == 1
    assert [e["key"] for e in cache.stats()["entries"]] == ["game-2-empty-unknown"]


def test_fingerprint_ignores_row_order():
    stats = _stats()
    assert stable_hash_for_records(stats) == stable_hash_for_records(list(reversed(stats)))


def test_fingerprint_reads_camel_case_payloads():
    rows = [row.to_document() for row in _stats()]
    assert stable_hash_for_records(rows) == stable_hash_for_records(_stats())


def test_fingerprint_of_nothing_is_empty():
    assert stable_hash_for_records(None) == "empty"
    assert stable_hash_for_records([]) == "empty"
