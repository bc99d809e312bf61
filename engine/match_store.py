from contextlib import contextmanager
import logging

from database import db
from database.models import BallRecord, Match, SuperOver
from engine.scoring import (
    BallEvent,
    Extras,
    InningsTally,
    MatchResult,
    MatchState,
    MatchStatus,
    parse_overs,
)

logger = logging.getLogger(__name__)


class MatchStore:
    """
    Read/write access to match records for the scoring engine.

    Writes are staged on ``db.session``; callers wrap a unit of work in
    ``transaction()`` so a scoring event either lands completely or not at all.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ───── Matches ─────

    def get_match(self, match_id):
        return self.session.get(Match, match_id)

    def update_match(self, match, fields):
        for name, value in fields.items():
            setattr(match, name, value)
        self.session.flush()
        return match

    def load_state(self, match) -> MatchState:
        """Build the engine's view of a stored match row."""
        return MatchState(
            team1_id=match.team1_id,
            team2_id=match.team2_id,
            overs_limit=match.overs,
            status=MatchStatus(match.status),
            innings=match.current_innings or 1,
            batting_team_id=match.current_batting_team_id or match.batting_first_id or match.team1_id,
            team1=InningsTally(
                score=match.team1_score or 0,
                wickets=match.team1_wickets or 0,
                balls=parse_overs(match.team1_overs),
            ),
            team2=InningsTally(
                score=match.team2_score or 0,
                wickets=match.team2_wickets or 0,
                balls=parse_overs(match.team2_overs),
            ),
            result=MatchResult.from_column(match.result),
            winner_id=match.winner_id,
        )

    def opening_state(self, match) -> MatchState:
        return MatchState.opening(
            match.team1_id, match.team2_id, match.overs, match.batting_first_id
        )

    def save_state(self, match, state: MatchState):
        return self.update_match(match, {
            "status": state.status.value,
            "current_innings": state.innings,
            "current_batting_team_id": state.batting_team_id,
            "team1_score": state.team1.score,
            "team1_wickets": state.team1.wickets,
            "team1_overs": state.team1.overs,
            "team2_score": state.team2.score,
            "team2_wickets": state.team2.wickets,
            "team2_overs": state.team2.overs,
            "result": state.result.to_column(),
            "winner_id": state.winner_id,
        })

    # ───── Ball log ─────

    def ball_events(self, match):
        return [
            BallEvent(
                runs=record.runs,
                extras=Extras(record.extras) if record.extras else None,
                is_wicket=record.is_wicket,
            )
            for record in self._ball_records(match)
        ]

    def append_ball(self, match, event: BallEvent, innings, batting_team_id):
        records = self._ball_records(match)
        record = BallRecord(
            match_id=match.id,
            sequence=(records[-1].sequence + 1) if records else 1,
            innings=innings,
            batting_team_id=batting_team_id,
            runs=event.runs,
            extras=event.extras.value if event.extras else None,
            is_wicket=event.is_wicket,
        )
        match.balls.append(record)
        self.session.flush()
        return record

    def remove_last_ball(self, match):
        records = self._ball_records(match)
        if not records:
            return None
        last = records[-1]
        match.balls.remove(last)
        self.session.flush()
        return last

    def _ball_records(self, match):
        return sorted(match.balls, key=lambda record: record.sequence)

    # ───── Super Overs ─────

    def get_super_over(self, match_id):
        return SuperOver.query.filter_by(match_id=match_id).first()

    def create_super_over(self, fields):
        super_over = SuperOver(**fields)
        self.session.add(super_over)
        self.session.flush()
        logger.debug(f"Super Over staged for match {super_over.match_id}")
        return super_over
