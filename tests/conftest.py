"""
Shared pytest fixtures for RankTiers tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
import tempfile
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Keep the import-time data directory out of the repo
os.environ.setdefault('RANKTIERS_DATA_DIR', tempfile.mkdtemp(prefix='ranktiers-'))

from core.models import Participant


def write_table(data_dir, table, rows):
    """Write rows to a table file the way the app does."""
    with open(os.path.join(str(data_dir), f'{table}.yaml'), 'w', encoding='utf-8') as f:
        yaml.dump({table: rows}, f, default_flow_style=False)


def read_table(data_dir, table):
    path = os.path.join(str(data_dir), f'{table}.yaml')
    if not os.path.exists(path):
        return []
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return data.get(table, [])


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app's YAML store and lock at a temporary directory."""
    import app as app_module
    from filelock import FileLock

    upload_dir = tmp_path / 'uploads'
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'UPLOAD_DIR', str(upload_dir))
    monkeypatch.setattr(app_module, '_data_lock', FileLock(str(tmp_path / '.lock'), timeout=10))
    monkeypatch.setattr(app_module, 'DISCORD_WEBHOOK_URL', None)
    monkeypatch.setattr(app_module, 'ADMIN_USER', 'admin')
    monkeypatch.setattr(app_module, 'ADMIN_PASS', 'hunter2')
    return tmp_path


@pytest.fixture
def client(temp_data_dir):
    """Create an unauthenticated test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def admin_client(temp_data_dir):
    """Create a test client with an admin session."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess['admin'] = {'username': 'admin'}
        yield client


@pytest.fixture
def make_players():
    """Build participants P1..Pn."""
    def _make(n):
        return [Participant(id=i, username=f'P{i}') for i in range(1, n + 1)]
    return _make


@pytest.fixture
def seeded_store(temp_data_dir):
    """Four Minecraft sword players across two tiers, one axe player."""
    write_table(temp_data_dir, 'games', [{'id': 1, 'name': 'Minecraft'}])
    write_table(temp_data_dir, 'players', [
        {'id': 1, 'username': 'Steve'},
        {'id': 2, 'username': 'Alex'},
        {'id': 3, 'username': 'Notch'},
        {'id': 4, 'username': 'Herobrine'},
        {'id': 5, 'username': 'Jeb'},
    ])
    write_table(temp_data_dir, 'player_stats', [
        {'id': 1, 'player_id': 1, 'game': 'Minecraft', 'kit': 'Sword', 'tier': 'HT1', 'points': 60},
        {'id': 2, 'player_id': 2, 'game': 'Minecraft', 'kit': 'Sword', 'tier': 'LT3', 'points': 10},
        {'id': 3, 'player_id': 3, 'game': 'Minecraft', 'kit': 'Sword', 'tier': 'HT1', 'points': 45},
        {'id': 4, 'player_id': 4, 'game': 'Minecraft', 'kit': 'Sword', 'tier': 'LT3', 'points': 12},
        {'id': 5, 'player_id': 5, 'game': 'Minecraft', 'kit': 'Axe', 'tier': 'HT2', 'points': 30},
    ])
    return temp_data_dir
