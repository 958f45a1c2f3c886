import asyncio

import httpx
import pytest

from core.app import build_runtime
from shared.config.client import ClientConfig
from shared.games.models import Game, OfficialScore, parse_stats

CLUB = 1
HOME = 10
AWAY = 20

CLUBS = [{"clubId": CLUB, "clubName": "Riverside", "role": "admin", "permissions": {}}]


def _stat(stat_id, game_id, quarter, team_id, goals_for, goals_against):
    return {
        "id": stat_id,
        "gameId": game_id,
        "quarter": quarter,
        "teamId": team_id,
        "position": "GS",
        "goalsFor": goals_for,
        "goalsAgainst": goals_against,
    }


@pytest.fixture
def runtime(tmp_path, handler, clock):
    handler.routes[("GET", "/user/clubs")] = {"success": True, "data": CLUBS}
    config = ClientConfig(
        api_base_url="http://testserver/api",
        state_dir=str(tmp_path / "state"),
        team_debounce_seconds=0.0,
    )
    return build_runtime(config, transport=httpx.MockTransport(handler), clock=clock)


def test_scores_are_cached_until_a_score_mutation(runtime, handler):
    game = Game(id=5, home_team_id=HOME, away_team_id=AWAY, status_name="completed", status_is_completed=True)
    handler.routes[("GET", "/games/5/stats")] = [_stat(1, 5, 1, HOME, 6, 2)]
    handler.routes[("GET", "/games/5/scores")] = []
    handler.routes[("POST", "/games/5/scores")] = {"success": True, "data": {"id": 9}}

    async def scenario():
        await runtime.tenant.bootstrap()
        first = await runtime.scores.get_game_scores(game)
        second = await runtime.scores.get_game_scores(game)

        # Official entry supersedes stats once caches are invalidated
        handler.routes[("GET", "/games/5/scores")] = [
            {"gameId": 5, "teamId": HOME, "quarter": 1, "score": 1},
            {"gameId": 5, "teamId": AWAY, "quarter": 1, "score": 8},
        ]
        await runtime.invalidation.run_mutation(
            "score",
            lambda: runtime.api.post("/games/5/scores", {"quarter": 1}),
            game_id=5,
            club_id=CLUB,
        )
        third = await runtime.scores.get_game_scores(game)
        await runtime.aclose()
        return first, second, third

    first, second, third = asyncio.run(scenario())

    assert (first.total_team_score, first.total_opponent_score, first.source) == (6, 2, "stats")
    assert second is first
    assert len(handler.calls("GET", "/games/5/stats")) == 1
    assert (third.total_team_score, third.total_opponent_score, third.result) == (1, 8, "loss")
    assert third.source == "official"


def test_official_scores_arriving_later_replace_a_cached_stats_result(runtime):
    game = Game(id=8, home_team_id=HOME, away_team_id=AWAY, status_is_completed=True)
    stats = parse_stats([_stat(1, 8, 1, HOME, 1, 4)])
    official = [
        OfficialScore(game_id=8, team_id=HOME, quarter=1, score=10, id=1),
        OfficialScore(game_id=8, team_id=AWAY, quarter=1, score=5, id=2),
    ]

    async def scenario():
        await runtime.tenant.bootstrap()
        runtime.tenant.set_current_team_id(HOME)
        runtime.tenant.flush_pending()
        before = runtime.scores.compute(game, stats, [])
        after = runtime.scores.compute(game, stats, official)
        again = runtime.scores.compute(game, stats, list(reversed(official)))
        await runtime.aclose()
        return before, after, again

    before, after, again = asyncio.run(scenario())

    assert (before.total_team_score, before.total_opponent_score, before.source) == (1, 4, "stats")
    assert (after.total_team_score, after.total_opponent_score, after.source) == (10, 5, "official")
    assert again is after


def test_perspective_is_part_of_the_cache_key(runtime):
    game = Game(id=6, home_team_id=HOME, away_team_id=AWAY, status_team_goals=12, status_opponent_goals=3)

    async def scenario():
        await runtime.tenant.bootstrap()
        as_home = runtime.scores.compute(game, [])
        runtime.tenant.set_current_team_id(AWAY)
        runtime.tenant.flush_pending()
        as_away = runtime.scores.compute(game, [])
        await runtime.aclose()
        return as_home, as_away

    as_home, as_away = asyncio.run(scenario())

    assert as_home.result == "win"
    assert as_away.result == "loss"


def test_inter_club_mismatch_reaches_notifications(runtime):
    game = Game(id=7, home_team_id=HOME, away_team_id=AWAY, is_inter_club=True)
    stats_payload = [
        _stat(1, 7, 1, HOME, 10, 8),
        _stat(2, 7, 1, AWAY, 8, 9),
    ]

    async def scenario():
        await runtime.tenant.bootstrap()
        runtime.tenant.set_current_team_id(HOME)
        runtime.tenant.flush_pending()
        scores = runtime.scores.compute(game, parse_stats(stats_payload))
        await runtime.aclose()
        return scores

    scores = asyncio.run(scenario())

    assert (scores.total_team_score, scores.total_opponent_score) == (10, 8)
    [note] = runtime.notifications.drain()
    assert note.level == "warning"


def test_batch_scores_and_win_rate(runtime, handler):
    games = [
        Game(id=1, home_team_id=HOME, away_team_id=30, status_is_completed=True),
        Game(id=2, home_team_id=40, away_team_id=HOME, status_is_completed=True),
        Game(id=3, home_team_id=HOME, away_team_id=50, status_is_completed=True, is_bye=True),
    ]
    handler.routes[("POST", f"/clubs/{CLUB}/games/stats/batch")] = {
        "1": [_stat(1, 1, 1, HOME, 9, 4)],
        "2": [_stat(2, 2, 2, HOME, 3, 5)],
    }
    handler.routes[("POST", f"/clubs/{CLUB}/games/scores/batch")] = {}

    async def scenario():
        await runtime.tenant.bootstrap()
        runtime.tenant.set_current_team_id(HOME)
        runtime.tenant.flush_pending()
        record = await runtime.scores.win_rate(games)
        await runtime.aclose()
        return record

    record = asyncio.run(scenario())

    assert (record.wins, record.losses, record.draws) == (1, 1, 0)
    assert record.win_rate == 50.0
    [request] = handler.calls("POST", "/games/stats/batch")
    assert request.headers["x-current-team-id"] == str(HOME)
    assert handler.calls("POST", "/games/rosters/batch") == []
