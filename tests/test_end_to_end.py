"""End-to-end: agent snapshot -> transport -> hub API -> storage"""
import time
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from pulse_agent.agent import MonitoringAgent
from pulse_agent.collectors import MemoryReading, Snapshot, StorageReading
from pulse_agent.transport import HttpSender, TransportError
from pulse_hub.api import app, get_config, get_store
from pulse_hub.config import HubConfig
from pulse_hub.store import SampleStore


@pytest.fixture
def hub(database):
    store = SampleStore(database)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_config] = lambda: HubConfig()
    yield TestClient(app), store
    app.dependency_overrides.clear()


def snapshot(server_name='a', timestamp=1000):
    return Snapshot(
        server_name=server_name,
        timestamp=timestamp,
        temperature=42.0,
        memory=MemoryReading(used=512, total=1024, percentage=50),
        storage=StorageReading(used='10G', total='20G', percentage=50),
        cpu=12.5,
    )


@pytest.mark.integration
def test_agent_cycle_reaches_hub(hub):
    client, store = hub
    collector = Mock()
    collector.collect.return_value = snapshot()

    agent = MonitoringAgent('a', collector, HttpSender('/metrics', session=client))
    agent.run_once()

    assert client.get('/api/servers').json() == [
        {'server_name': 'a', 'last_seen': 1000, 'total_metrics': 1}
    ]


@pytest.mark.integration
def test_second_day_sample_replaces_first(hub):
    client, store = hub
    sender = HttpSender('/metrics', session=client)

    sender.send(snapshot(timestamp=1000).to_payload())
    sender.send(snapshot(timestamp=87000).to_payload())

    [row] = client.get('/api/server/a').json()
    assert row['timestamp'] == 87000


@pytest.mark.integration
def test_rejected_snapshot_surfaces_as_transport_error(hub):
    client, store = hub
    sender = HttpSender('/metrics', session=client)
    payload = snapshot().to_payload()
    del payload['cpu']

    with pytest.raises(TransportError) as exc:
        sender.send(payload)

    assert exc.value.status_code == 400
    assert 'Champs manquants: cpu' in str(exc.value)
    assert store.host_list() == []


@pytest.mark.integration
def test_silent_host_stays_known(hub):
    client, store = hub
    now = int(time.time())
    sender = HttpSender('/metrics', session=client)

    sender.send(snapshot('retired', timestamp=now - 3 * 86400).to_payload())
    for i in range(3):
        sender.send(snapshot('busy', timestamp=now - i * 30).to_payload())

    servers = {entry['server_name']: entry for entry in client.get('/api/servers').json()}
    assert servers['retired']['total_metrics'] == 1
    assert servers['busy']['total_metrics'] == 3
