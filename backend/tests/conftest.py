"""
Shared fixtures for talkrender tests.
"""

import asyncio

import pytest

from support import DEFAULT_DOCUMENT, SCHEDULE_URL, json_transport, make_executable
from talkrender.persistence import UploadStore
from talkrender.schedule import ScheduleCache


@pytest.fixture
def store(tmp_path):
    store = UploadStore(db_path=tmp_path / "db.sqlite")
    store.bootstrap()
    return store


@pytest.fixture
def schedule_cache(tmp_path):
    """Schedule cache already refreshed with DEFAULT_DOCUMENT."""
    cache = ScheduleCache(
        url=SCHEDULE_URL,
        cache_dir=tmp_path / "cache",
        transport=json_transport(DEFAULT_DOCUMENT),
    )
    asyncio.run(cache.refresh())
    return cache


@pytest.fixture
def renderer_repo(tmp_path):
    """
    Minimal renderer repository that passes every setup check.

    env/bin/python and create_video.sh are no-op shell scripts.
    """
    repo = tmp_path / "r3voc"
    make_executable(repo / "scripts" / "create_video.sh", "exit 0")
    make_executable(repo / "intro-outro-generator" / "env" / "bin" / "python", "exit 0")
    (repo / "intro-outro-generator" / "r3talks").mkdir(parents=True)
    (repo / "output").mkdir()
    return repo
