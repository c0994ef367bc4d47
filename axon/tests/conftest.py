"""
Shared fixtures for the Axon test suite.

Database tests run against a fresh SQLite file per test.
"""

import json
import random
from pathlib import Path
from typing import Dict, List

import pytest
import pytest_asyncio

from axon.common.tasks import FollowUpTaskQueue
from axon.config import Settings
from axon.content.catalog import TIER_FILES, WordCatalog
from axon.content.exclusion import ExclusionTracker
from axon.content.selector import ContentSelector
from axon.database.init_db import close_database, create_schema, get_session_factory, initialize_database

TEST_USER_ID = "test-user-1"

SAMPLE_WORDS = {
    "easy": [
        ("cat", "animals"), ("dog", "animals"), ("horse", "animals"), ("tiger", "animals"),
        ("apple", "food"), ("bread", "food"), ("banana", "food"), ("cheese", "food"),
        ("tree", "nature"), ("river", "nature"), ("forest", "nature"), ("flower", "nature"),
    ],
    "medium": [
        ("badger", "animals"), ("falcon", "animals"), ("penguin", "animals"),
        ("avocado", "food"), ("noodle", "food"), ("pumpkin", "food"),
        ("canyon", "nature"), ("glacier", "nature"), ("meadow", "nature"), ("volcano", "nature"),
    ],
    "hard": [
        ("pangolin", "animals"), ("axolotl", "animals"), ("narwhal", "animals"),
        ("saffron", "food"), ("artichoke", "food"), ("fjord", "nature"),
    ],
    "normal": [
        ("rabbit", "animals"), ("carrot", "food"), ("island", "nature"),
    ],
}


def word_entries(pairs) -> List[Dict]:
    return [{"word": word, "category": category, "length": len(word)} for word, category in pairs]


def write_tier(directory: Path, filename: str, entries) -> Path:
    path = directory / filename
    path.write_text(json.dumps(entries), encoding="utf-8")
    return path


@pytest.fixture
def word_dir(tmp_path) -> Path:
    """Directory holding a small corpus for every tier."""
    directory = tmp_path / "words"
    directory.mkdir()
    for tier, filename in TIER_FILES.items():
        write_tier(directory, filename, word_entries(SAMPLE_WORDS[tier]))
    return directory


@pytest.fixture
def catalog(word_dir) -> WordCatalog:
    return WordCatalog(word_dir)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'axon-test.db'}"


@pytest.fixture
def test_settings(database_url, word_dir) -> Settings:
    return Settings(
        DATABASE_URL=database_url,
        ENV="testing",
        WORD_DATA_DIR=str(word_dir),
        FOLLOWUP_MAX_RETRIES=1,
        FOLLOWUP_RETRY_DELAY=0.01,
    )


@pytest_asyncio.fixture
async def session_factory(database_url):
    """Session factory bound to a freshly created schema."""
    engine = await initialize_database(database_url)
    await create_schema(engine)
    yield get_session_factory()
    await close_database()


@pytest.fixture
def task_queue() -> FollowUpTaskQueue:
    return FollowUpTaskQueue(max_retries=1, retry_delay=0.01)


@pytest.fixture
def tracker(session_factory) -> ExclusionTracker:
    return ExclusionTracker(session_factory, session_window=3, retention=10)


@pytest.fixture
def selector(catalog, tracker, task_queue) -> ContentSelector:
    return ContentSelector(catalog, tracker, task_queue, rng=random.Random(42))
