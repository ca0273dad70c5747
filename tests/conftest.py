import os
import tempfile
import shutil
from datetime import datetime, timedelta, timezone

import pytest

import dupmark.config
import dupmark.db
from dupmark.entities import BookmarkSnapshot


BASE_DATE = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch):
    """Each test starts without cached config/database and without DUPMARK_* env vars."""
    for key in list(os.environ):
        if key.startswith("DUPMARK_"):
            monkeypatch.delenv(key, raising=False)
    dupmark.config._config = None
    dupmark.db._db = None
    yield
    dupmark.config._config = None
    dupmark.db._db = None


@pytest.fixture
def make_snapshot():
    """Factory for snapshots; ``day`` offsets date_added from a fixed base date."""
    def _make(id, url="https://example.com", title="Example", day=0, **kwargs):
        date_added = kwargs.pop("date_added", BASE_DATE + timedelta(days=day))
        date_modified = kwargs.pop("date_modified", date_added)
        return BookmarkSnapshot(
            id=str(id),
            url=url,
            title=title,
            date_added=date_added,
            date_modified=date_modified,
            **kwargs
        )
    return _make


@pytest.fixture
def sample_snapshots(make_snapshot):
    """A small collection with one exact, one normalized and one title group."""
    return [
        make_snapshot(1, "https://docs.python.org/3/", "Python Documentation", day=0,
                      tags=["python", "docs"], visits=5, category="Programming"),
        make_snapshot(2, "https://github.com", "GitHub", day=1,
                      tags=["git"], visits=10, is_favorite=True),
        make_snapshot(3, "https://docs.python.org/3/", "Python 3 Docs", day=2,
                      tags=["python"], visits=2),
        make_snapshot(4, "http://www.github.com/", "GitHub: Where the world builds software", day=3,
                      visits=1),
        make_snapshot(5, "https://realpython.com/tutorials", "Real Python Tutorials", day=4),
        make_snapshot(6, "https://realpython.org/learn", "Real Python Tutorial", day=5),
        make_snapshot(7, "https://news.ycombinator.com", "Hacker News", day=6),
    ]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    path = tempfile.mkdtemp(prefix="dupmark_test_")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def db_path(temp_dir):
    return os.path.join(temp_dir, "test.db")
