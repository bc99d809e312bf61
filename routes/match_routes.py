"""Match route registration (creation, live scoring, undo, Super Over)."""

from datetime import datetime

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from engine.scoring import (
    InvalidInput,
    MatchConflict,
    MatchNotFound,
    MatchStateError,
)

VALID_STAGES = {"League", "Semi Final", "Final"}
MIN_OVERS = 5
MAX_OVERS = 10


def _parse_datetime(value, field):
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} is required")
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInput(f"{field} must be an ISO-8601 date/time") from None


def _require_int(data, field, required=True):
    value = data.get(field)
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{field} must be an integer")
    return value


def register_match_routes(
    app,
    *,
    db,
    scoring_engine,
    Match,
    Team,
    Tournament,
):
    def _json_body():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidInput("Invalid or missing JSON body")
        return data

    def _run(tag, match_id, operation):
        """Map engine failures onto HTTP responses."""
        subject = f"match {match_id}" if match_id is not None else "new match"
        try:
            return operation()
        except MatchNotFound:
            return jsonify({"error": "Match not found"}), 404
        except InvalidInput as e:
            app.logger.info(f"[{tag}] Rejected input for {subject}: {e}")
            return jsonify({"error": str(e)}), 400
        except (MatchStateError, MatchConflict) as e:
            app.logger.warning(f"[{tag}] {subject}: {e}")
            return jsonify({"error": str(e)}), 409
        except SQLAlchemyError as e:
            app.logger.error(f"[{tag}] Database error for {subject}: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500
        except Exception as e:
            app.logger.error(f"[{tag}] Unexpected error for {subject}: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/matches", methods=["GET"])
    def list_matches():
        query = Match.query
        tournament_id = request.args.get("tournamentId", type=int)
        if tournament_id is not None:
            query = query.filter_by(tournament_id=tournament_id)
        matches = query.order_by(Match.match_date.desc(), Match.id.desc()).all()
        return jsonify([m.to_dict() for m in matches])

    @app.route("/matches/<int:match_id>", methods=["GET"])
    def get_match(match_id):
        match = db.session.get(Match, match_id)
        if not match:
            return jsonify({"error": "Match not found"}), 404
        return jsonify(match.to_dict())

    @app.route("/matches", methods=["POST"])
    def create_match():
        def _create():
            data = _json_body()

            tournament_id = _require_int(data, "tournamentId")
            team1_id = _require_int(data, "team1Id")
            team2_id = _require_int(data, "team2Id")
            overs = _require_int(data, "overs")
            batting_first_id = _require_int(data, "battingFirstId", required=False)
            toss_winner_id = _require_int(data, "tossWinnerId", required=False)

            stage = data.get("stage")
            if stage not in VALID_STAGES:
                raise InvalidInput(f"stage must be one of: {', '.join(sorted(VALID_STAGES))}")
            if not MIN_OVERS <= overs <= MAX_OVERS:
                raise InvalidInput(f"overs must be between {MIN_OVERS} and {MAX_OVERS}")
            if team1_id == team2_id:
                raise InvalidInput("Please select two different teams")
            for field, value in (("battingFirstId", batting_first_id), ("tossWinnerId", toss_winner_id)):
                if value is not None and value not in (team1_id, team2_id):
                    raise InvalidInput(f"{field} must be one of the two playing teams")
            match_date = _parse_datetime(data.get("matchDate"), "matchDate")

            if not db.session.get(Tournament, tournament_id):
                raise InvalidInput("Invalid tournament")
            if not db.session.get(Team, team1_id) or not db.session.get(Team, team2_id):
                raise InvalidInput("Invalid team selection")

            match = Match(
                tournament_id=tournament_id,
                stage=stage,
                team1_id=team1_id,
                team2_id=team2_id,
                toss_winner_id=toss_winner_id,
                batting_first_id=batting_first_id,
                overs=overs,
                match_date=match_date,
                status="scheduled",
                current_innings=1,
                current_batting_team_id=batting_first_id or team1_id,
            )
            try:
                db.session.add(match)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise
            app.logger.info(f"[MatchSetup] Match {match.id} created: team {team1_id} vs team {team2_id}, {overs} overs")
            return jsonify(match.to_dict()), 201

        return _run("MatchSetup", None, _create)

    @app.route("/matches/<int:match_id>/score", methods=["POST"])
    def score_ball(match_id):
        def _score():
            match = scoring_engine.record_ball(match_id, _json_body())
            return jsonify(match.to_dict())

        return _run("Score", match_id, _score)

    @app.route("/matches/<int:match_id>/undo", methods=["POST"])
    def undo_ball(match_id):
        def _undo():
            match = scoring_engine.undo_last_ball(match_id)
            return jsonify(match.to_dict())

        return _run("Undo", match_id, _undo)

    @app.route("/matches/<int:match_id>/super-over", methods=["POST"])
    def super_over(match_id):
        def _super_over():
            result = scoring_engine.resolve_super_over(match_id, _json_body())
            return jsonify(result.to_dict())

        return _run("SuperOver", match_id, _super_over)

    @app.route("/matches/<int:match_id>/abandon", methods=["POST"])
    def abandon_match(match_id):
        def _abandon():
            match = scoring_engine.abandon(match_id)
            return jsonify(match.to_dict())

        return _run("Abandon", match_id, _abandon)
