"""
Live match scoring state machine.

Everything in this module is pure: ``apply_ball`` takes a ``MatchState`` and a
``BallEvent`` and returns the next ``MatchState`` without touching storage.
The storage-writing side lives in ``engine.match_engine``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

BALLS_PER_OVER = 6
MAX_WICKETS = 10
SUPER_OVER_MAX_WICKETS = 2


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

class ScoringError(Exception):
    """Base class for every failure the scoring engine reports."""


class MatchNotFound(ScoringError):
    def __init__(self, match_id):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class InvalidInput(ScoringError, ValueError):
    """Malformed scoring payload; raised before any state is touched."""


class MatchStateError(ScoringError):
    """The requested transition is not legal for the match's current state."""


class MatchConflict(ScoringError):
    """Another writer updated the match between our read and our write."""


# ----------------------------------------------------------------------
# Closed variants
# ----------------------------------------------------------------------

class Extras(str, Enum):
    WIDE = "wide"
    NO_BALL = "no-ball"
    BYE = "bye"
    LEG_BYE = "leg-bye"

    @property
    def is_legal_delivery(self) -> bool:
        # Wides and no-balls are re-bowled
        return self not in (Extras.WIDE, Extras.NO_BALL)


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class MatchResult(str, Enum):
    UNDECIDED = "undecided"
    TEAM1_WIN = "team1_win"
    TEAM2_WIN = "team2_win"
    TIE = "tie"
    ABANDONED = "abandoned"

    @classmethod
    def from_column(cls, value: Optional[str]) -> "MatchResult":
        return cls(value) if value else cls.UNDECIDED

    def to_column(self) -> Optional[str]:
        return None if self is MatchResult.UNDECIDED else self.value


# ----------------------------------------------------------------------
# Overs <-> balls
# ----------------------------------------------------------------------

def format_overs(balls: int) -> str:
    """119 legal balls -> "19.5"."""
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def parse_overs(text) -> int:
    """
    Convert a stored overs value ("19.5", "3", None) back to legal balls.

    Works on the string digits so no float rounding is involved.
    """
    if text is None or str(text).strip() == "":
        return 0
    whole, _, part = str(text).strip().partition(".")
    completed = int(whole or 0)
    balls = int(part[:1] or 0)
    if completed < 0 or not 0 <= balls < BALLS_PER_OVER:
        raise ValueError(f"Invalid overs value: {text!r}")
    return completed * BALLS_PER_OVER + balls


# ----------------------------------------------------------------------
# Value types
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class BallEvent:
    runs: int = 0
    extras: Optional[Extras] = None
    is_wicket: bool = False

    @property
    def is_legal_delivery(self) -> bool:
        return self.extras is None or self.extras.is_legal_delivery

    @classmethod
    def from_payload(cls, payload) -> "BallEvent":
        """Validate a ``{runs, extras?, isWicket?}`` body."""
        if not isinstance(payload, dict):
            raise InvalidInput("Scoring event must be a JSON object")

        runs = payload.get("runs")
        if isinstance(runs, bool) or not isinstance(runs, int) or runs < 0:
            raise InvalidInput("runs must be a non-negative integer")

        raw_extras = payload.get("extras")
        extras = None
        if raw_extras not in (None, ""):
            try:
                extras = Extras(raw_extras)
            except ValueError:
                allowed = ", ".join(e.value for e in Extras)
                raise InvalidInput(f"extras must be one of: {allowed}") from None

        is_wicket = payload.get("isWicket", False)
        if is_wicket is None:
            is_wicket = False
        if not isinstance(is_wicket, bool):
            raise InvalidInput("isWicket must be a boolean")

        return cls(runs=runs, extras=extras, is_wicket=is_wicket)


@dataclass(frozen=True)
class InningsTally:
    score: int = 0
    wickets: int = 0
    balls: int = 0  # legal deliveries only

    @property
    def completed_overs(self) -> int:
        return self.balls // BALLS_PER_OVER

    @property
    def overs(self) -> str:
        return format_overs(self.balls)


@dataclass(frozen=True)
class MatchState:
    team1_id: int
    team2_id: int
    overs_limit: int
    status: MatchStatus = MatchStatus.SCHEDULED
    innings: int = 1
    batting_team_id: Optional[int] = None
    team1: InningsTally = InningsTally()
    team2: InningsTally = InningsTally()
    result: MatchResult = MatchResult.UNDECIDED
    winner_id: Optional[int] = None

    @classmethod
    def opening(cls, team1_id, team2_id, overs_limit, batting_first_id=None) -> "MatchState":
        """State of a freshly created match, before the first ball."""
        return cls(
            team1_id=team1_id,
            team2_id=team2_id,
            overs_limit=overs_limit,
            batting_team_id=batting_first_id or team1_id,
        )

    @property
    def is_finished(self) -> bool:
        return self.status in (MatchStatus.COMPLETED, MatchStatus.ABANDONED)

    @property
    def team1_batting(self) -> bool:
        return self.batting_team_id == self.team1_id

    @property
    def batting_tally(self) -> InningsTally:
        return self.team1 if self.team1_batting else self.team2

    def other_team(self, team_id) -> int:
        return self.team2_id if team_id == self.team1_id else self.team1_id

    def innings_complete(self, tally: InningsTally) -> bool:
        return tally.wickets >= MAX_WICKETS or tally.completed_overs >= self.overs_limit


# ----------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------

def decide_winner(team1_id, team2_id, team1_runs, team2_runs) -> Tuple[MatchResult, Optional[int]]:
    if team1_runs > team2_runs:
        return MatchResult.TEAM1_WIN, team1_id
    if team2_runs > team1_runs:
        return MatchResult.TEAM2_WIN, team2_id
    return MatchResult.TIE, None


def apply_ball(state: MatchState, event: BallEvent) -> MatchState:
    """Advance ``state`` by one delivery and return the new state."""
    if state.is_finished:
        raise MatchStateError(f"Cannot record a ball on a {state.status.value} match")

    status = state.status
    if status is MatchStatus.SCHEDULED:
        status = MatchStatus.IN_PROGRESS

    tally = state.batting_tally
    tally = InningsTally(
        score=tally.score + event.runs,
        wickets=min(MAX_WICKETS, tally.wickets + (1 if event.is_wicket else 0)),
        balls=tally.balls + (1 if event.is_legal_delivery else 0),
    )

    if state.team1_batting:
        nxt = replace(state, status=status, team1=tally)
    else:
        nxt = replace(state, status=status, team2=tally)

    if not state.innings_complete(tally):
        return nxt

    if state.innings == 1:
        return replace(
            nxt,
            innings=2,
            batting_team_id=state.other_team(state.batting_team_id),
        )

    result, winner_id = decide_winner(
        nxt.team1_id, nxt.team2_id, nxt.team1.score, nxt.team2.score
    )
    return replace(nxt, status=MatchStatus.COMPLETED, result=result, winner_id=winner_id)


def replay(opening: MatchState, events: Iterable[BallEvent]) -> MatchState:
    """Fold a ball log over the opening state."""
    state = opening
    for event in events:
        state = apply_ball(state, event)
    return state


def abandon(state: MatchState) -> MatchState:
    if state.is_finished:
        raise MatchStateError(f"Cannot abandon a {state.status.value} match")
    return replace(
        state,
        status=MatchStatus.ABANDONED,
        result=MatchResult.ABANDONED,
        winner_id=None,
    )


@dataclass(frozen=True)
class SuperOverScore:
    team1_runs: int
    team1_wickets: int
    team2_runs: int
    team2_wickets: int

    @classmethod
    def from_payload(cls, payload) -> "SuperOverScore":
        if not isinstance(payload, dict):
            raise InvalidInput("Super Over result must be a JSON object")

        values = {}
        for key, attr in (
            ("team1Runs", "team1_runs"),
            ("team1Wickets", "team1_wickets"),
            ("team2Runs", "team2_runs"),
            ("team2Wickets", "team2_wickets"),
        ):
            value = payload.get(key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidInput(f"{key} must be a non-negative integer")
            if attr.endswith("wickets") and value > SUPER_OVER_MAX_WICKETS:
                raise InvalidInput(f"{key} cannot exceed {SUPER_OVER_MAX_WICKETS}")
            values[attr] = value
        return cls(**values)
