"""
Shared pytest fixtures for playoff predictor tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Keep the app from persisting a generated key into the repo data directory
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

from playoffs.template import BracketTemplate, Matchup


@pytest.fixture
def four_team_matchups():
    """Matchups for a 2-round, 4-team bracket: M1 and M2 feed the final F."""
    return [
        Matchup('M1', 1, 'AAA', 'BBB', 'F', 'A'),
        Matchup('M2', 1, 'CCC', 'DDD', 'F', 'B'),
        Matchup('F', 2),
    ]


@pytest.fixture
def four_team_template(four_team_matchups):
    """A validated 4-team template."""
    return BracketTemplate(four_team_matchups)


@pytest.fixture
def full_predictions():
    """A complete, consistent set of picks for the default NBA bracket."""
    return {
        'E1': 'BOS', 'E2': 'ORL', 'E3': 'MIL', 'E4': 'NYK',
        'W1': 'OKC', 'W2': 'DAL', 'W3': 'MIN', 'W4': 'DEN',
        'E5': 'BOS', 'E6': 'NYK', 'W5': 'OKC', 'W6': 'DEN',
        'E7': 'BOS', 'W7': 'OKC',
        'F1': 'OKC',
    }


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the prediction store at a temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()

    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'PARTICIPANTS_FILE', str(data_dir / "participants.yaml"))
    monkeypatch.setattr(app_module, 'PREDICTIONS_FILE', str(data_dir / "predictions.yaml"))

    return str(data_dir)
