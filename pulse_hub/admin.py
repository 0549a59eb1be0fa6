"""
Administrative operations shared by the CLI and the dashboard.

These only read or delete through SampleStore; confirmation prompts belong
to the caller. Every delete is immediate and cannot be undone.
"""
import time
from typing import List, Optional, Sequence, Tuple

from pulse_hub.status import AgeStyle, HostView, describe, elapsed_since
from pulse_hub.store import SampleStore

SECONDS_PER_HOUR = 60 * 60


def list_hosts(
    store: SampleStore,
    now: Optional[float] = None,
    style: AgeStyle = AgeStyle.SHORT
) -> List[HostView]:
    """Every known host with its latest sample and status, newest first"""
    now = time.time() if now is None else now
    return [describe(sample, now, style) for sample in store.latest_per_host()]


def host_detail(store: SampleStore, server_name: str) -> Optional[dict]:
    return store.host_summary(server_name)


def remove_host(store: SampleStore, server_name: str) -> int:
    return store.delete_host(server_name)


def find_inactive(
    store: SampleStore,
    hours: int = 24,
    now: Optional[float] = None
) -> List[Tuple[str, int]]:
    """Hosts silent for longer than `hours`"""
    if hours < 0:
        raise ValueError("hours must not be negative")
    now = time.time() if now is None else now
    cutoff = int(now) - hours * SECONDS_PER_HOUR
    return store.list_inactive(cutoff)


def remove_hosts(store: SampleStore, server_names: Sequence[str]) -> int:
    return store.delete_hosts(server_names)


def database_stats(store: SampleStore) -> dict:
    """store.stats() plus size in MB and the covered time span in days"""
    stats = store.stats()
    stats['storage_size_mb'] = round(stats['storage_size_bytes'] / 1024.0 / 1024.0, 2)

    span = None
    if stats['min_timestamp'] is not None and stats['max_timestamp'] is not None:
        span = elapsed_since(stats['min_timestamp'], stats['max_timestamp'])
    stats['span_days'] = None if span is None else round(span / 86400.0, 1)

    return stats
