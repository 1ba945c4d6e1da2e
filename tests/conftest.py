from pathlib import Path

import pytest

from newsdesk.adapters.sqlite.migrator import SQLiteMigrator
from newsdesk.rules.loader import load_rules
from newsdesk.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Temporary SQLite database migrated from migrations/."""
    path = str(tmp_path / "newsdesk.db")
    SQLiteMigrator(path, str(PROJECT_ROOT / "migrations")).run_migrations()
    return path


@pytest.fixture
def rules() -> Rules:
    """The project's real rules.yaml."""
    return load_rules(PROJECT_ROOT / "rules.yaml")
