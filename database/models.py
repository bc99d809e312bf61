from datetime import datetime
from sqlalchemy.orm import relationship
from database import db


class Tournament(db.Model):
    """Tournament / League Container"""
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    overs_per_match = db.Column(db.Integer, default=10, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    groups = relationship('Group', backref='tournament', cascade="all, delete-orphan")
    matches = relationship('Match', backref='tournament', cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "oversPerMatch": self.overs_per_match,
            "createdAt": _iso(self.created_at),
        }


class Group(db.Model):
    """Pool of teams inside a tournament"""
    __tablename__ = 'groups'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    tournament_id = db.Column(
        db.Integer,
        db.ForeignKey('tournaments.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    teams = relationship('Team', backref='group')

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "tournamentId": self.tournament_id,
            "createdAt": _iso(self.created_at),
        }


class Team(db.Model):
    """Cricket Team"""
    __tablename__ = 'teams'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    captain = db.Column(db.String(100), nullable=False)
    contact_number = db.Column(db.String(30), nullable=False)
    group_id = db.Column(
        db.Integer,
        db.ForeignKey('groups.id', ondelete='SET NULL'),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "captain": self.captain,
            "contactNumber": self.contact_number,
            "groupId": self.group_id,
            "createdAt": _iso(self.created_at),
        }


class Match(db.Model):
    """Live and completed match record.

    The score columns are a cache of the ball log in ``ball_events``; they are
    rewritten from a fold of that log on every scoring call. ``version_id``
    makes concurrent writers fail with StaleDataError instead of losing an
    update.
    """
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer,
        db.ForeignKey('tournaments.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    stage = db.Column(db.String(20), nullable=False)  # League, Semi Final, Final

    team1_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=False, index=True)
    team2_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=False, index=True)
    toss_winner_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)
    batting_first_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)

    overs = db.Column(db.Integer, nullable=False)
    match_date = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), default='scheduled', nullable=False)
    result = db.Column(db.String(20), nullable=True)  # team1_win, team2_win, tie, abandoned
    winner_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)

    # Scores
    team1_score = db.Column(db.Integer, default=0, nullable=False)
    team1_wickets = db.Column(db.Integer, default=0, nullable=False)
    team1_overs = db.Column(db.String(10), default='0.0', nullable=False)

    team2_score = db.Column(db.Integer, default=0, nullable=False)
    team2_wickets = db.Column(db.Integer, default=0, nullable=False)
    team2_overs = db.Column(db.String(10), default='0.0', nullable=False)

    current_innings = db.Column(db.Integer, default=1, nullable=False)
    current_batting_team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)

    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    team1 = relationship('Team', foreign_keys=[team1_id])
    team2 = relationship('Team', foreign_keys=[team2_id])
    winner = relationship('Team', foreign_keys=[winner_id])
    balls = relationship(
        'BallRecord',
        backref='match',
        cascade="all, delete-orphan",
        order_by='BallRecord.sequence',
    )
    super_over = relationship(
        'SuperOver',
        backref='match',
        uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tournamentId": self.tournament_id,
            "stage": self.stage,
            "team1Id": self.team1_id,
            "team2Id": self.team2_id,
            "tossWinnerId": self.toss_winner_id,
            "battingFirstId": self.batting_first_id,
            "overs": self.overs,
            "matchDate": _iso(self.match_date),
            "status": self.status,
            "result": self.result,
            "winnerId": self.winner_id,
            "team1Score": self.team1_score,
            "team1Wickets": self.team1_wickets,
            "team1Overs": self.team1_overs,
            "team2Score": self.team2_score,
            "team2Wickets": self.team2_wickets,
            "team2Overs": self.team2_overs,
            "currentInnings": self.current_innings,
            "currentBattingTeamId": self.current_batting_team_id,
            "ballByBallData": [ball.to_dict() for ball in self.balls],
            "createdAt": _iso(self.created_at),
        }


class BallRecord(db.Model):
    """One delivery in a match's append-only ball log"""
    __tablename__ = 'ball_events'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(
        db.Integer,
        db.ForeignKey('matches.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    sequence = db.Column(db.Integer, nullable=False)
    innings = db.Column(db.Integer, nullable=False)
    batting_team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=False)
    runs = db.Column(db.Integer, default=0, nullable=False)
    extras = db.Column(db.String(10), nullable=True)  # wide, no-ball, bye, leg-bye
    is_wicket = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('match_id', 'sequence', name='uq_ball_match_sequence'),
    )

    def to_dict(self):
        return {
            "sequence": self.sequence,
            "innings": self.innings,
            "battingTeamId": self.batting_team_id,
            "runs": self.runs,
            "extras": self.extras,
            "isWicket": self.is_wicket,
        }


class SuperOver(db.Model):
    """One-over decider for a tied match (at most one per match)"""
    __tablename__ = 'super_overs'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(
        db.Integer,
        db.ForeignKey('matches.id', ondelete='CASCADE'),
        nullable=False,
        unique=True,
    )
    team1_runs = db.Column(db.Integer, default=0, nullable=False)
    team1_wickets = db.Column(db.Integer, default=0, nullable=False)
    team2_runs = db.Column(db.Integer, default=0, nullable=False)
    team2_wickets = db.Column(db.Integer, default=0, nullable=False)
    winner_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "matchId": self.match_id,
            "team1Runs": self.team1_runs,
            "team1Wickets": self.team1_wickets,
            "team2Runs": self.team2_runs,
            "team2Wickets": self.team2_wickets,
            "winnerId": self.winner_id,
            "createdAt": _iso(self.created_at),
        }


def _iso(value):
    return value.isoformat() if value else None
