"""
Storage engine: the only way the hub reads or mutates samples.
"""
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from pulse_hub import queries
from pulse_hub.db import Database
from pulse_hub.models import Sample
from pulse_hub.retention import RetentionPolicy

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 24


class SampleStore:
    """
    Append-only table of samples with per-host queries.

    Rows are never cached; every call runs its own transaction. Deletions
    are immediate and irreversible, callers own any confirmation step.
    """

    def __init__(
        self,
        database: Database,
        retention: Optional[RetentionPolicy] = None,
        clock: Callable[[], float] = time.time
    ):
        self.database = database
        self.retention = retention or RetentionPolicy()
        self.clock = clock

    def append(self, sample: Sample, now: Optional[float] = None) -> int:
        """
        Store a sample, then run the retention sweep for its host.

        Insert and sweep share one write transaction so no other write can
        land between them. Returns the new row id.
        """
        now = self.clock() if now is None else now

        with self.database.transaction(write=True) as cur:
            sample_id = queries.insert_sample(
                cur, sample, returning=self.database.supports_returning
            )
            self.retention.sweep(cur, sample.server_name, now)

        logger.debug(
            "Sample stored",
            extra={'context': {'server_name': sample.server_name, 'id': sample_id}}
        )
        return sample_id

    def latest_per_host(self) -> List[Sample]:
        """Each host's sentinel sample, most recently seen first"""
        with self.database.transaction() as cur:
            rows = queries.get_latest_per_host(cur)
        return [Sample.from_row(row) for row in rows]

    def history(self, server_name: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[Sample]:
        """A host's most recent samples, newest first"""
        with self.database.transaction() as cur:
            rows = queries.get_history(cur, server_name, limit)
        return [Sample.from_row(row) for row in rows]

    def host_list(self) -> List[dict]:
        with self.database.transaction() as cur:
            return queries.get_host_list(cur)

    def host_summary(self, server_name: str) -> Optional[dict]:
        """Record count and first/last timestamps, or None for an unknown host"""
        with self.database.transaction() as cur:
            return queries.get_host_summary(cur, server_name)

    def delete_host(self, server_name: str) -> int:
        return self.delete_hosts([server_name])

    def delete_hosts(self, server_names: Sequence[str]) -> int:
        """Remove every sample of the given hosts. Returns rows deleted."""
        if not server_names:
            return 0

        with self.database.transaction(write=True) as cur:
            deleted = queries.delete_hosts(cur, list(server_names))

        logger.info(
            "Hosts deleted",
            extra={'context': {'server_names': list(server_names), 'deleted': deleted}}
        )
        return deleted

    def list_inactive(self, cutoff: int) -> List[Tuple[str, int]]:
        """(server_name, last_seen) of hosts whose latest sample is older than cutoff"""
        with self.database.transaction() as cur:
            rows = queries.get_inactive_hosts(cur, cutoff)
        return [(row['server_name'], row['last_seen']) for row in rows]

    def stats(self) -> dict:
        """
        Aggregate counts over the whole table.

        Returns total_records, distinct_hosts, min_timestamp, max_timestamp
        (None on an empty store) and storage_size_bytes.
        """
        with self.database.transaction() as cur:
            stats = dict(queries.get_stats(cur))

        stats['storage_size_bytes'] = self.database.size_bytes()
        return stats

    def close(self) -> None:
        self.database.close()
