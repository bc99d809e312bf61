"""
Pytest fixtures for the cricket tournament admin API.
Provides reusable test fixtures for database, app, clients, and test data.
"""

import os
import sys
from datetime import date, datetime

import pytest
import yaml

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app import create_app, db
from database.models import Group, Match, Team, Tournament


# ==================== Application Fixtures ====================

@pytest.fixture(scope="function")
def test_config(tmp_path):
    """Create a temporary config file for testing."""
    config_path = tmp_path / "config.yaml"
    config_data = {
        "app": {
            "secret_key": "test-secret-key-for-testing-only-12345",
        },
        "database": {
            "uri": "sqlite:///:memory:",
        },
        "logging": {
            "level": "DEBUG",
            "dir": str(tmp_path / "logs"),
        },
    }

    config_path.write_text(yaml.safe_dump(config_data, sort_keys=False), encoding="utf-8")
    return config_path


@pytest.fixture(scope="function")
def app(test_config, tmp_path, monkeypatch):
    """Create and configure a test Flask application instance."""
    monkeypatch.setenv("CRICKADMIN_CONFIG_PATH", str(test_config))
    test_db_file = tmp_path / "pytest_app.db"
    monkeypatch.setenv("CRICKADMIN_DB_URI", f"sqlite:///{test_db_file.as_posix()}")

    app = create_app()
    app.config.update({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
    })

    # Create application context
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture(scope="function")
def scoring_engine(app):
    """The scoring engine instance the routes use."""
    return app.extensions["scoring_engine"]


# ==================== Tournament Fixtures ====================

@pytest.fixture(scope="function")
def test_tournament(app):
    tournament = Tournament(
        name="Test Cup",
        start_date=date(2026, 1, 10),
        end_date=date(2026, 1, 20),
        overs_per_match=5,
    )
    db.session.add(tournament)
    db.session.commit()
    return tournament


@pytest.fixture(scope="function")
def test_group(app, test_tournament):
    group = Group(name="Group A", tournament_id=test_tournament.id)
    db.session.add(group)
    db.session.commit()
    return group


@pytest.fixture(scope="function")
def test_team(app, test_group):
    team = Team(
        name="Test Warriors",
        captain="Bob Keeper",
        contact_number="555-0100",
        group_id=test_group.id,
    )
    db.session.add(team)
    db.session.commit()
    return team


@pytest.fixture(scope="function")
def test_team_2(app, test_group):
    team = Team(
        name="Test Champions",
        captain="Champ Captain",
        contact_number="555-0200",
        group_id=test_group.id,
    )
    db.session.add(team)
    db.session.commit()
    return team


# ==================== Match Fixtures ====================

@pytest.fixture(scope="function")
def make_match(app, test_tournament, test_team, test_team_2):
    """Factory for matches between the two test teams (bypasses route validation)."""
    def _make(overs=2, batting_first_id=None):
        match = Match(
            tournament_id=test_tournament.id,
            stage="League",
            team1_id=test_team.id,
            team2_id=test_team_2.id,
            batting_first_id=batting_first_id,
            overs=overs,
            match_date=datetime(2026, 1, 12, 14, 0),
            status="scheduled",
            current_innings=1,
            current_batting_team_id=batting_first_id or test_team.id,
        )
        db.session.add(match)
        db.session.commit()
        return match

    return _make


@pytest.fixture(scope="function")
def test_match(make_match):
    """A scheduled two-over match, team 1 batting first."""
    return make_match(overs=2)


# ==================== Utility Functions ====================

def bowl(client, match_id, runs=0, extras=None, is_wicket=False):
    """Post one delivery and return the response."""
    payload = {"runs": runs}
    if extras is not None:
        payload["extras"] = extras
    if is_wicket:
        payload["isWicket"] = True
    return client.post(f"/matches/{match_id}/score", json=payload)


def bowl_many(client, match_id, deliveries):
    """Post a list of (runs, extras, is_wicket) tuples; return the last JSON body."""
    response = None
    for runs, extras, is_wicket in deliveries:
        response = bowl(client, match_id, runs, extras, is_wicket)
        assert response.status_code == 200, response.get_json()
    return response.get_json()


def legal(runs=0, is_wicket=False):
    return (runs, None, is_wicket)


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
