from database.models import Group, Match, Team
from engine.scoring import BALLS_PER_OVER, MatchResult, MatchStatus, parse_overs
import logging

logger = logging.getLogger(__name__)


class StandingsEngine:
    """
    Builds group points tables from completed and abandoned matches.

    Standings are derived on every request rather than stored, so a Super
    Over that rewrites a tied result is reflected immediately.
    """

    # Points system configuration
    POINTS_WIN = 2
    POINTS_TIE = 1
    POINTS_NO_RESULT = 1
    POINTS_LOSS = 0

    QUALIFYING_PLACES = 4

    def group_standings(self, tournament_id=None):
        """
        Returns one entry per group:
        ``{"groupId", "groupName", "tournamentId", "standings": [...]}``
        """
        query = Group.query
        if tournament_id is not None:
            query = query.filter_by(tournament_id=tournament_id)
        groups = query.order_by(Group.id).all()

        return [self._standings_for_group(group) for group in groups]

    def _standings_for_group(self, group):
        teams = Team.query.filter_by(group_id=group.id).order_by(Team.id).all()
        team_ids = [team.id for team in teams]

        matches = []
        if team_ids:
            matches = (
                Match.query.filter(
                    Match.tournament_id == group.tournament_id,
                    Match.status.in_([MatchStatus.COMPLETED.value, MatchStatus.ABANDONED.value]),
                    (Match.team1_id.in_(team_ids)) | (Match.team2_id.in_(team_ids)),
                )
                .all()
            )

        rows = [self._row_for_team(team, matches) for team in teams]
        rows.sort(key=lambda row: (row["points"], row["netRunRate"]), reverse=True)

        for index, row in enumerate(rows):
            row["qualified"] = index < self.QUALIFYING_PLACES

        return {
            "groupId": group.id,
            "groupName": group.name,
            "tournamentId": group.tournament_id,
            "standings": rows,
        }

    def _row_for_team(self, team, matches):
        row = {
            "teamId": team.id,
            "teamName": team.name,
            "played": 0,
            "won": 0,
            "lost": 0,
            "tied": 0,
            "noResult": 0,
            "points": 0,
            "netRunRate": 0.0,
            "qualified": False,
        }
        runs_scored = runs_conceded = balls_faced = balls_bowled = 0

        for match in matches:
            if team.id not in (match.team1_id, match.team2_id):
                continue
            row["played"] += 1
            result = MatchResult.from_column(match.result)

            if result is MatchResult.ABANDONED:
                row["noResult"] += 1
                row["points"] += self.POINTS_NO_RESULT
                continue

            if result is MatchResult.TIE:
                row["tied"] += 1
                row["points"] += self.POINTS_TIE
            elif match.winner_id == team.id:
                row["won"] += 1
                row["points"] += self.POINTS_WIN
            else:
                row["lost"] += 1
                row["points"] += self.POINTS_LOSS

            is_team1 = match.team1_id == team.id
            own = (match.team1_score, match.team1_overs) if is_team1 else (match.team2_score, match.team2_overs)
            opp = (match.team2_score, match.team2_overs) if is_team1 else (match.team1_score, match.team1_overs)

            runs_scored += own[0] or 0
            balls_faced += self._nrr_balls(own[1], team.id, match)
            runs_conceded += opp[0] or 0
            balls_bowled += self._nrr_balls(opp[1], team.id, match, opponent=True)

        row["netRunRate"] = self.net_run_rate(runs_scored, balls_faced, runs_conceded, balls_bowled)
        return row

    def _nrr_balls(self, overs, team_id, match, opponent=False):
        """
        Balls counted for NRR. A side bowled out counts as having faced its
        full allocation of overs.
        """
        side_is_team1 = (match.team1_id == team_id) != opponent
        wickets = match.team1_wickets if side_is_team1 else match.team2_wickets
        if (wickets or 0) >= 10:
            return match.overs * BALLS_PER_OVER
        try:
            return parse_overs(overs)
        except ValueError:
            logger.warning(f"Invalid overs value {overs!r} on match {match.id}")
            return 0

    @staticmethod
    def net_run_rate(runs_scored, balls_faced, runs_conceded, balls_bowled) -> float:
        """
        NRR = (Runs Scored / Overs Faced) - (Runs Conceded / Overs Bowled)

        All rates are calculated per over (6 balls).
        """
        run_rate_for = runs_scored / (balls_faced / BALLS_PER_OVER) if balls_faced > 0 else 0.0
        run_rate_against = runs_conceded / (balls_bowled / BALLS_PER_OVER) if balls_bowled > 0 else 0.0
        return round(run_rate_for - run_rate_against, 3)
