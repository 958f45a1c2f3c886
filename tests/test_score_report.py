import json

from scripts.score_report import build_report, main

DOCUMENT = {
    "games": [
        {"id": 1, "homeTeamId": 10, "awayTeamId": 20, "statusName": "completed", "statusIsCompleted": True},
        {"id": 2, "homeTeamId": 30, "awayTeamId": 10, "statusName": "forfeit-loss", "statusIsCompleted": True},
        {"id": 3, "homeTeamId": 10, "awayTeamId": 40, "statusName": "scheduled"},
    ],
    "stats": {
        "1": [
            {"id": 1, "gameId": 1, "quarter": 1, "teamId": 10, "goalsFor": 5, "goalsAgainst": 3},
            {"id": 2, "gameId": 1, "quarter": 2, "teamId": 10, "goalsFor": 4, "goalsAgainst": 4},
        ]
    },
    "officialScores": {},
}


def test_report_lines():
    lines = build_report(DOCUMENT, team_id=10, quarters=True)

    assert lines[0] == "Game 1: 9-7 Win [stats]  (Q1 5-3 | Q2 4-4 | Q3 0-0 | Q4 0-0)"
    assert lines[1].startswith("Game 2: 0-10 Loss [forfeit]")
    assert lines[-1] == "Record: 1W 1L 0D (50.0% of 2 completed)"


def test_main_reads_file(tmp_path, capsys):
    path = tmp_path / "games.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")

    assert main([str(path), "--team", "10"]) == 0
    assert "Record: 1W 1L 0D" in capsys.readouterr().out


def test_main_rejects_bad_input(tmp_path, capsys):
    path = tmp_path / "games.json"
    path.write_text("[]", encoding="utf-8")

    assert main([str(path)]) == 1
    assert "REPORT ERROR" in capsys.readouterr().err


def test_non_numeric_game_keys_are_skipped(capsys):
    document = dict(DOCUMENT, stats={"abc": [], **DOCUMENT["stats"]})

    lines = build_report(document, team_id=10)

    assert lines[0].startswith("Game 1: 9-7 Win [stats]")
    assert "non-numeric game id 'abc'" in capsys.readouterr().err
