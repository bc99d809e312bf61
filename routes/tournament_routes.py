"""Tournament, group, team and standings route registration."""

from datetime import date

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

MIN_OVERS = 5
MAX_OVERS = 10


class ValidationError(ValueError):
    pass


def _required_text(data, field, label):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _parse_date(data, field):
    value = data.get(field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date") from None


def register_tournament_routes(
    app,
    *,
    db,
    standings_engine,
    Tournament,
    Group,
    Team,
):
    def _create(tag, build):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid or missing JSON body"}), 400
        try:
            record = build(data)
            db.session.add(record)
            db.session.commit()
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error(f"[{tag}] Failed to create record: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500
        app.logger.info(f"[{tag}] Created {record.__tablename__} #{record.id}")
        return jsonify(record.to_dict()), 201

    # ───── Tournaments ─────

    @app.route("/tournaments", methods=["GET"])
    def list_tournaments():
        tournaments = Tournament.query.order_by(Tournament.created_at.desc()).all()
        return jsonify([t.to_dict() for t in tournaments])

    @app.route("/tournaments/<int:tournament_id>", methods=["GET"])
    def get_tournament(tournament_id):
        tournament = db.session.get(Tournament, tournament_id)
        if not tournament:
            return jsonify({"error": "Tournament not found"}), 404
        return jsonify(tournament.to_dict())

    @app.route("/tournaments", methods=["POST"])
    def create_tournament():
        def build(data):
            name = _required_text(data, "name", "Tournament name")
            start_date = _parse_date(data, "startDate")
            end_date = _parse_date(data, "endDate")
            if end_date < start_date:
                raise ValidationError("endDate cannot be before startDate")

            overs = data.get("oversPerMatch", 10)
            if isinstance(overs, bool) or not isinstance(overs, int) or not MIN_OVERS <= overs <= MAX_OVERS:
                raise ValidationError(f"oversPerMatch must be between {MIN_OVERS} and {MAX_OVERS}")

            return Tournament(
                name=name,
                start_date=start_date,
                end_date=end_date,
                overs_per_match=overs,
            )

        return _create("Tournament", build)

    # ───── Groups ─────

    @app.route("/groups", methods=["GET"])
    def list_groups():
        query = Group.query
        tournament_id = request.args.get("tournamentId", type=int)
        if tournament_id is not None:
            query = query.filter_by(tournament_id=tournament_id)
        return jsonify([g.to_dict() for g in query.order_by(Group.id).all()])

    @app.route("/groups", methods=["POST"])
    def create_group():
        def build(data):
            name = _required_text(data, "name", "Group name")
            tournament_id = data.get("tournamentId")
            if isinstance(tournament_id, bool) or not isinstance(tournament_id, int):
                raise ValidationError("tournamentId must be an integer")
            if not db.session.get(Tournament, tournament_id):
                raise ValidationError("Invalid tournament")
            return Group(name=name, tournament_id=tournament_id)

        return _create("Group", build)

    # ───── Teams ─────

    @app.route("/teams", methods=["GET"])
    def list_teams():
        return jsonify([t.to_dict() for t in Team.query.order_by(Team.id).all()])

    @app.route("/teams/<int:team_id>", methods=["GET"])
    def get_team(team_id):
        team = db.session.get(Team, team_id)
        if not team:
            return jsonify({"error": "Team not found"}), 404
        return jsonify(team.to_dict())

    @app.route("/teams", methods=["POST"])
    def create_team():
        def build(data):
            name = _required_text(data, "name", "Team name")
            captain = _required_text(data, "captain", "Captain name")
            contact_number = _required_text(data, "contactNumber", "Contact number")
            group_id = data.get("groupId")
            if group_id is not None:
                if isinstance(group_id, bool) or not isinstance(group_id, int):
                    raise ValidationError("groupId must be an integer")
                if not db.session.get(Group, group_id):
                    raise ValidationError("Invalid group")
            return Team(
                name=name,
                captain=captain,
                contact_number=contact_number,
                group_id=group_id,
            )

        return _create("Team", build)

    # ───── Standings ─────

    @app.route("/standings", methods=["GET"])
    def standings():
        tournament_id = request.args.get("tournamentId", type=int)
        try:
            return jsonify(standings_engine.group_standings(tournament_id))
        except SQLAlchemyError as e:
            app.logger.error(f"[Standings] Failed to build standings: {e}", exc_info=True)
            return jsonify({"error": "Internal server error"}), 500
