"""
Test suite for Match routes
Tests routes defined in routes/match_routes.py
"""

import pytest

from app import db
from conftest import bowl, bowl_many, legal
from database.models import BallRecord, Match, SuperOver


def play_first_innings(client, match_id):
    """Six singles, then a wicket and five dots: 6/1 off 2.0 overs."""
    bowl_many(client, match_id, [legal(1)] * 6)
    return bowl_many(client, match_id, [legal(0, is_wicket=True)] + [legal(0)] * 5)


def play_tied_match(client, match_id):
    play_first_innings(client, match_id)
    return bowl_many(client, match_id, [legal(1)] * 6 + [legal(0)] * 6)


class TestMatchCreationRoute:
    """Tests for POST /matches."""

    def _payload(self, test_tournament, test_team, test_team_2, **overrides):
        payload = {
            "tournamentId": test_tournament.id,
            "stage": "League",
            "team1Id": test_team.id,
            "team2Id": test_team_2.id,
            "overs": 6,
            "matchDate": "2026-01-12T14:00:00",
        }
        payload.update(overrides)
        return payload

    def test_create_match_success(self, client, test_tournament, test_team, test_team_2):
        response = client.post("/matches", json=self._payload(test_tournament, test_team, test_team_2))
        assert response.status_code == 201

        data = response.get_json()
        assert data["status"] == "scheduled"
        assert data["result"] is None
        assert data["currentInnings"] == 1
        assert data["currentBattingTeamId"] == test_team.id
        assert data["team1Overs"] == "0.0"
        assert data["team2Overs"] == "0.0"
        assert data["ballByBallData"] == []
        assert db.session.get(Match, data["id"]) is not None

    def test_batting_first_sets_current_batting_team(self, client, test_tournament, test_team, test_team_2):
        response = client.post(
            "/matches",
            json=self._payload(test_tournament, test_team, test_team_2, battingFirstId=test_team_2.id),
        )
        assert response.status_code == 201
        assert response.get_json()["currentBattingTeamId"] == test_team_2.id

    @pytest.mark.parametrize("overrides", [
        {"overs": 4},
        {"overs": 11},
        {"stage": "Quarter Final"},
        {"matchDate": "not-a-date"},
        {"tournamentId": 9999},
        {"battingFirstId": 9999},
    ])
    def test_create_match_invalid(self, client, test_tournament, test_team, test_team_2, overrides):
        response = client.post(
            "/matches",
            json=self._payload(test_tournament, test_team, test_team_2, **overrides),
        )
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_create_match_same_team(self, client, test_tournament, test_team, test_team_2):
        response = client.post(
            "/matches",
            json=self._payload(test_tournament, test_team, test_team_2, team2Id=test_team.id),
        )
        assert response.status_code == 400

    def test_create_match_missing_json_body(self, client):
        response = client.post("/matches", data={})
        assert response.status_code == 400

    def test_create_match_non_object_body(self, client):
        response = client.post("/matches", json=[1, 2])
        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid or missing JSON body"}
        assert Match.query.count() == 0

    def test_rejected_creation_log_names_no_match_id(self, client, caplog):
        with caplog.at_level("INFO", logger="CricketAdmin"):
            client.post("/matches", json={"overs": 6})
        messages = [r.getMessage() for r in caplog.records if "[MatchSetup]" in r.getMessage()]
        assert messages
        assert all("None" not in message for message in messages)


class TestMatchReadRoutes:

    def test_get_match(self, client, test_match):
        response = client.get(f"/matches/{test_match.id}")
        assert response.status_code == 200
        assert response.get_json()["id"] == test_match.id

    def test_get_match_nonexistent(self, client):
        response = client.get("/matches/9999")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Match not found"}

    def test_list_matches(self, client, make_match):
        make_match()
        make_match()
        response = client.get("/matches")
        assert response.status_code == 200
        assert len(response.get_json()) == 2


class TestScoreRoute:
    """Tests for POST /matches/<id>/score."""

    def test_first_ball_starts_match(self, client, test_match):
        response = bowl(client, test_match.id, runs=4)
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "in_progress"
        assert data["team1Score"] == 4
        assert data["team1Overs"] == "0.1"
        assert data["ballByBallData"][0]["runs"] == 4

    def test_worked_example(self, client, test_match, test_team, test_team_2):
        data = bowl_many(client, test_match.id, [legal(1)] * 6)
        assert data["team1Score"] == 6
        assert data["team1Overs"] == "1.0"

        data = bowl_many(client, test_match.id, [legal(0, is_wicket=True)] + [legal(0)] * 5)
        assert data["team1Overs"] == "2.0"
        assert data["team1Wickets"] == 1
        assert data["currentInnings"] == 2
        assert data["currentBattingTeamId"] == test_team_2.id
        assert data["team2Score"] == 0
        assert data["team2Overs"] == "0.0"

        data = bowl_many(client, test_match.id, [legal(1)] * 5 + [legal(2)] + [legal(0)] * 6)
        assert data["team2Score"] == 7
        assert data["status"] == "completed"
        assert data["result"] == "team2_win"
        assert data["winnerId"] == test_team_2.id

    def test_wide_does_not_advance_over(self, client, test_match):
        data = bowl_many(client, test_match.id, [(1, "wide", False), (1, "no-ball", False)])
        assert data["team1Score"] == 2
        assert data["team1Overs"] == "0.0"

    def test_bye_advances_over(self, client, test_match):
        data = bowl_many(client, test_match.id, [(1, "bye", False), (1, "leg-bye", False)])
        assert data["team1Overs"] == "0.2"

    @pytest.mark.parametrize("payload", [
        {},
        {"runs": None},
        {"isWicket": True},
        {"runs": -1},
        {"runs": "two"},
        {"runs": 1, "extras": "dead-ball"},
        {"runs": 1, "isWicket": "true"},
    ])
    def test_invalid_event_leaves_match_untouched(self, client, test_match, payload):
        response = client.post(f"/matches/{test_match.id}/score", json=payload)
        assert response.status_code == 400

        data = client.get(f"/matches/{test_match.id}").get_json()
        assert data["status"] == "scheduled"
        assert data["team1Score"] == 0
        assert data["ballByBallData"] == []

    def test_missing_body_rejected(self, client, test_match):
        response = client.post(f"/matches/{test_match.id}/score", data="not json")
        assert response.status_code == 400

    def test_score_nonexistent_match(self, client):
        response = client.post("/matches/9999/score", json={"runs": 1})
        assert response.status_code == 404

    def test_completed_match_rejects_balls(self, client, test_match):
        play_tied_match(client, test_match.id)
        response = bowl(client, test_match.id, runs=1)
        assert response.status_code == 409

        data = client.get(f"/matches/{test_match.id}").get_json()
        assert data["team2Score"] == 6
        assert len(data["ballByBallData"]) == 24

    def test_ball_log_records_innings_and_batting_team(self, client, test_match, test_team, test_team_2):
        play_first_innings(client, test_match.id)
        bowl(client, test_match.id, runs=3)

        records = BallRecord.query.filter_by(match_id=test_match.id).order_by(BallRecord.sequence).all()
        assert [r.sequence for r in records] == list(range(1, 14))
        assert records[0].batting_team_id == test_team.id
        assert records[-1].batting_team_id == test_team_2.id
        assert records[-1].innings == 2


class TestUndoRoute:
    """Tests for POST /matches/<id>/undo."""

    def test_undo_without_balls_returns_match_unchanged(self, client, test_match):
        response = client.post(f"/matches/{test_match.id}/undo")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "scheduled"
        assert data["team1Score"] == 0

    def test_undo_restores_previous_totals(self, client, test_match):
        bowl_many(client, test_match.id, [legal(1), legal(4), (1, "wide", False)])
        data = client.post(f"/matches/{test_match.id}/undo").get_json()
        assert data["team1Score"] == 5
        assert data["team1Overs"] == "0.2"

        data = client.post(f"/matches/{test_match.id}/undo").get_json()
        assert data["team1Score"] == 1
        assert data["team1Overs"] == "0.1"
        assert len(data["ballByBallData"]) == 1

    def test_undo_keeps_started_match_in_progress(self, client, test_match):
        bowl(client, test_match.id, runs=2)
        data = client.post(f"/matches/{test_match.id}/undo").get_json()
        assert data["status"] == "in_progress"
        assert data["team1Score"] == 0
        assert data["team1Overs"] == "0.0"

    def test_undo_reverses_innings_change(self, client, test_match, test_team):
        data = play_first_innings(client, test_match.id)
        assert data["currentInnings"] == 2

        data = client.post(f"/matches/{test_match.id}/undo").get_json()
        assert data["currentInnings"] == 1
        assert data["currentBattingTeamId"] == test_team.id
        assert data["team1Overs"] == "1.5"
        assert data["team1Wickets"] == 1

    def test_undo_rejected_on_completed_match(self, client, test_match):
        play_tied_match(client, test_match.id)
        response = client.post(f"/matches/{test_match.id}/undo")
        assert response.status_code == 409
        assert client.get(f"/matches/{test_match.id}").get_json()["result"] == "tie"

    def test_undo_nonexistent_match(self, client):
        response = client.post("/matches/9999/undo")
        assert response.status_code == 404


class TestSuperOverRoute:
    """Tests for POST /matches/<id>/super-over."""

    SUPER_OVER = {"team1Runs": 10, "team1Wickets": 1, "team2Runs": 8, "team2Wickets": 2}

    def test_tie_resolved_by_super_over(self, client, test_match, test_team):
        data = play_tied_match(client, test_match.id)
        assert data["result"] == "tie"
        assert data["winnerId"] is None

        response = client.post(f"/matches/{test_match.id}/super-over", json=self.SUPER_OVER)
        assert response.status_code == 200
        super_over = response.get_json()
        assert super_over["matchId"] == test_match.id
        assert super_over["winnerId"] == test_team.id

        match = client.get(f"/matches/{test_match.id}").get_json()
        assert match["result"] == "team1_win"
        assert match["winnerId"] == test_team.id
        assert match["status"] == "completed"

    def test_super_over_can_tie_again(self, client, test_match):
        play_tied_match(client, test_match.id)
        response = client.post(
            f"/matches/{test_match.id}/super-over",
            json={"team1Runs": 7, "team1Wickets": 0, "team2Runs": 7, "team2Wickets": 1},
        )
        assert response.status_code == 200
        assert response.get_json()["winnerId"] is None

        match = client.get(f"/matches/{test_match.id}").get_json()
        assert match["result"] == "tie"
        assert match["winnerId"] is None

    def test_second_call_creates_no_second_record(self, client, test_match, test_team):
        play_tied_match(client, test_match.id)
        first = client.post(f"/matches/{test_match.id}/super-over", json=self.SUPER_OVER).get_json()
        second = client.post(
            f"/matches/{test_match.id}/super-over",
            json={"team1Runs": 2, "team1Wickets": 2, "team2Runs": 12, "team2Wickets": 0},
        )
        assert second.status_code == 200
        assert second.get_json()["id"] == first["id"]
        assert SuperOver.query.filter_by(match_id=test_match.id).count() == 1
        assert client.get(f"/matches/{test_match.id}").get_json()["winnerId"] == test_team.id

    def test_super_over_requires_tied_match(self, client, test_match):
        response = client.post(f"/matches/{test_match.id}/super-over", json=self.SUPER_OVER)
        assert response.status_code == 409
        assert SuperOver.query.count() == 0

    def test_super_over_invalid_input(self, client, test_match):
        play_tied_match(client, test_match.id)
        response = client.post(
            f"/matches/{test_match.id}/super-over",
            json={"team1Runs": 10, "team1Wickets": 3, "team2Runs": 8, "team2Wickets": 0},
        )
        assert response.status_code == 400
        assert client.get(f"/matches/{test_match.id}").get_json()["result"] == "tie"

    def test_super_over_nonexistent_match(self, client):
        response = client.post("/matches/9999/super-over", json=self.SUPER_OVER)
        assert response.status_code == 404


class TestAbandonRoute:

    def test_abandon_match(self, client, test_match):
        bowl(client, test_match.id, runs=1)
        response = client.post(f"/matches/{test_match.id}/abandon")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "abandoned"
        assert data["result"] == "abandoned"
        assert data["winnerId"] is None

    def test_abandoned_match_rejects_scoring(self, client, test_match):
        client.post(f"/matches/{test_match.id}/abandon")
        assert bowl(client, test_match.id, runs=1).status_code == 409
        assert client.post(f"/matches/{test_match.id}/undo").status_code == 409

    def test_cannot_abandon_completed_match(self, client, test_match):
        play_tied_match(client, test_match.id)
        response = client.post(f"/matches/{test_match.id}/abandon")
        assert response.status_code == 409
