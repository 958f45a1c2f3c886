import asyncio

import pytest

from core.invalidation import CacheInvalidationCoordinator
from core.query_cache import QueryCache, batch_key, club_games_key, game_key, games_key, team_key
from core.scoring.cache import ScoreCache
from shared.games.models import GameScores


def _scores():
    return GameScores.from_quarters({1: (3, 1)}, source="stats")


@pytest.fixture
def caches(clock):
    queries = QueryCache(clock=clock)
    for key in (
        game_key(1),
        game_key(1, "stats"),
        game_key(1, "rosters"),
        game_key(1, "scores"),
        game_key(2, "scores"),
        batch_key("scores", 7, None, [1, 2]),
        batch_key("stats", 7, None, [1, 2]),
        batch_key("scores", 7, None, [2, 3]),
        club_games_key(7),
        club_games_key(8),
        games_key(),
        team_key(70, "players"),
        team_key(70, "rosters"),
        team_key(71, "players"),
    ):
        queries.set(key, ["cached"])

    scores = ScoreCache(clock=clock)
    scores.set(1, _scores())
    scores.set(2, _scores())
    return queries, scores


def test_score_update_is_narrow(caches):
    queries, scores = caches
    coordinator = CacheInvalidationCoordinator(queries, scores)

    coordinator.after_score_update(1, club_id=7)

    assert game_key(1, "scores") not in queries
    assert batch_key("scores", 7, None, [1, 2]) not in queries
    assert club_games_key(7) not in queries
    assert scores.get(1) is None

    for kept in (
        game_key(1),
        game_key(1, "stats"),
        batch_key("stats", 7, None, [1, 2]),
        batch_key("scores", 7, None, [2, 3]),
        club_games_key(8),
        games_key(),
    ):
        assert kept in queries
    assert scores.get(2) is not None


def test_game_update_drops_everything_for_the_game(caches):
    queries, scores = caches
    coordinator = CacheInvalidationCoordinator(queries, scores)

    coordinator.after_game_update(1)

    for dropped in (
        game_key(1),
        game_key(1, "stats"),
        game_key(1, "rosters"),
        game_key(1, "scores"),
        batch_key("scores", 7, None, [1, 2]),
        batch_key("stats", 7, None, [1, 2]),
        games_key(),
    ):
        assert dropped not in queries

    assert game_key(2, "scores") in queries
    assert batch_key("scores", 7, None, [2, 3]) in queries
    assert club_games_key(7) in queries
    assert scores.get(1) is None
    assert scores.get(2) is not None


def test_team_update_only_touches_team_keys(caches):
    queries, scores = caches
    before = len(queries)

    CacheInvalidationCoordinator(queries, scores).after_team_update(70)

    assert team_key(70, "players") not in queries
    assert team_key(70, "rosters") not in queries
    assert team_key(71, "players") in queries
    assert len(queries) == before - 2
    assert len(scores) == 2


def test_successful_mutation_invalidates(caches):
    queries, scores = caches
    coordinator = CacheInvalidationCoordinator(queries, scores)

    async def save():
        return {"id": 1, "score": 4}

    result = asyncio.run(coordinator.run_mutation("score", save, game_id=1, club_id=7))

    assert result == {"id": 1, "score": 4}
    assert game_key(1, "scores") not in queries


def test_failed_mutation_leaves_caches_alone(caches):
    queries, scores = caches
    coordinator = CacheInvalidationCoordinator(queries, scores)
    before = queries.keys()

    async def save():
        raise RuntimeError("write rejected")

    with pytest.raises(RuntimeError, match="write rejected"):
        asyncio.run(coordinator.run_mutation("game", save, game_id=1))

    assert queries.keys() == before
    assert scores.get(1) is not None


def test_mutation_requires_a_target(caches):
    coordinator = CacheInvalidationCoordinator(*caches)

    async def save():
        return None

    with pytest.raises(ValueError):
        asyncio.run(coordinator.run_mutation("team", save))
    with pytest.raises(ValueError):
        asyncio.run(coordinator.run_mutation("roster", save, game_id=1))
