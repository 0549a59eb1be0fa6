"""Shared fixtures for hub tests"""
import pytest

from pulse_hub.db import SQLiteDatabase
from pulse_hub.models import MemoryUsage, Sample, StorageUsage
from pulse_hub.store import SampleStore

NOW = 1_700_000_000
HOUR = 60 * 60


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / 'monitoring.db')


@pytest.fixture
def database(db_path):
    database = SQLiteDatabase(db_path)
    database.init_schema()
    return database


@pytest.fixture
def store(database):
    return SampleStore(database, clock=lambda: NOW)


@pytest.fixture
def make_sample():
    """Factory for samples with sensible defaults"""
    def _make(server_name='web-1', timestamp=NOW, cpu=12.5, **overrides):
        values = dict(
            server_name=server_name,
            timestamp=timestamp,
            temperature=42.0,
            memory=MemoryUsage(used=512, total=1024, percentage=50),
            storage=StorageUsage(used='10G', total='20G', percentage=50),
            cpu=cpu,
        )
        values.update(overrides)
        return Sample(**values)
    return _make


def count_rows(database, server_name=None):
    with database.transaction() as cur:
        if server_name is None:
            cur.execute("SELECT COUNT(*) AS n FROM metrics")
        else:
            cur.execute("SELECT COUNT(*) AS n FROM metrics WHERE server_name = %s", (server_name,))
        return cur.fetchone()['n']
