from contextlib import contextmanager
from dataclasses import replace
import logging
import threading

from sqlalchemy.orm.exc import StaleDataError

from engine.match_store import MatchStore
from engine.scoring import (
    BallEvent,
    MatchConflict,
    MatchNotFound,
    MatchResult,
    MatchStateError,
    MatchStatus,
    SuperOverScore,
    abandon as abandon_state,
    apply_ball,
    decide_winner,
    replay,
)

logger = logging.getLogger(__name__)


class MatchScoringEngine:
    """
    Applies scoring events to stored matches.

    Every public operation is a read-modify-write on one match, executed
    under that match's lock and inside a single database transaction. The
    ball log is the source of truth; the score columns on the match row are
    rewritten from it.
    """

    def __init__(self, store=None):
        self.store = store or MatchStore()
        # match_id -> [lock, callers holding or waiting]
        self._locks = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _match_lock(self, match_id):
        """Serialise callers on one match; the entry is dropped once unused."""
        with self._locks_guard:
            entry = self._locks.get(match_id)
            if entry is None:
                entry = self._locks[match_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[match_id]

    @contextmanager
    def _unit_of_work(self, match_id):
        with self._match_lock(match_id):
            try:
                with self.store.transaction():
                    match = self.store.get_match(match_id)
                    if match is None:
                        raise MatchNotFound(match_id)
                    yield match
            except StaleDataError as e:
                logger.warning(f"[Scoring] Concurrent update rejected for match {match_id}: {e}")
                raise MatchConflict(
                    f"Match {match_id} was updated by another request; reload and retry"
                ) from e

    # ───── Operations ─────

    def record_ball(self, match_id, payload):
        event = payload if isinstance(payload, BallEvent) else BallEvent.from_payload(payload)

        with self._unit_of_work(match_id) as match:
            before = self.store.load_state(match)
            after = apply_ball(before, event)

            self.store.append_ball(match, event, before.innings, before.batting_team_id)
            self.store.save_state(match, after)
            self._log_transition(match_id, before, after)
        return match

    def undo_last_ball(self, match_id):
        with self._unit_of_work(match_id) as match:
            current = self.store.load_state(match)
            if current.is_finished:
                raise MatchStateError(
                    f"Cannot undo a ball on a {current.status.value} match"
                )

            removed = self.store.remove_last_ball(match)
            if removed is None:
                logger.info(f"[Scoring] Undo on match {match_id}: no balls recorded")
                return match

            state = replay(self.store.opening_state(match), self.store.ball_events(match))
            if state.status is MatchStatus.SCHEDULED and current.status is MatchStatus.IN_PROGRESS:
                state = replace(state, status=MatchStatus.IN_PROGRESS)
            self.store.save_state(match, state)

            logger.info(
                f"[Scoring] Undo on match {match_id}: removed ball #{removed.sequence} "
                f"(innings {removed.innings}), now innings {state.innings}"
            )
        return match

    def resolve_super_over(self, match_id, payload):
        score = payload if isinstance(payload, SuperOverScore) else SuperOverScore.from_payload(payload)

        with self._unit_of_work(match_id) as match:
            existing = self.store.get_super_over(match_id)
            if existing is not None:
                logger.info(f"[Scoring] Super Over for match {match_id} already recorded")
                return existing

            state = self.store.load_state(match)
            if state.status is not MatchStatus.COMPLETED or state.result is not MatchResult.TIE:
                raise MatchStateError("A Super Over can only be played after a tied match")

            result, winner_id = decide_winner(
                match.team1_id, match.team2_id, score.team1_runs, score.team2_runs
            )
            super_over = self.store.create_super_over({
                "match_id": match.id,
                "team1_runs": score.team1_runs,
                "team1_wickets": score.team1_wickets,
                "team2_runs": score.team2_runs,
                "team2_wickets": score.team2_wickets,
                "winner_id": winner_id,
            })
            self.store.update_match(match, {
                "result": result.to_column(),
                "winner_id": winner_id,
            })
            logger.info(
                f"[Scoring] Super Over decided match {match_id}: {result.value} "
                f"({score.team1_runs}/{score.team1_wickets} vs {score.team2_runs}/{score.team2_wickets})"
            )
        return super_over

    def abandon(self, match_id):
        with self._unit_of_work(match_id) as match:
            state = abandon_state(self.store.load_state(match))
            self.store.save_state(match, state)
            logger.info(f"[Scoring] Match {match_id} abandoned")
        return match

    def _log_transition(self, match_id, before, after):
        closed = after.team1 if before.team1_batting else after.team2
        if after.innings != before.innings:
            logger.info(
                f"[Scoring] Match {match_id}: innings 1 closed at "
                f"{closed.score}/{closed.wickets} ({closed.overs} ov), "
                f"team {after.batting_team_id} to bat"
            )
        elif after.status is MatchStatus.COMPLETED:
            logger.info(
                f"[Scoring] Match {match_id} completed: {after.result.value} "
                f"({after.team1.score} vs {after.team2.score})"
            )
        else:
            logger.debug(
                f"[Scoring] Match {match_id}: {closed.score}/{closed.wickets} ({closed.overs} ov)"
            )
