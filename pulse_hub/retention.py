"""
Retention policy: bound each host's history to a trailing window while
keeping its most recent sample forever.
"""
import logging

from pulse_hub import queries

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 24 * 60 * 60


class RetentionPolicy:
    """
    Evicts samples older than the window for one host.

    The host's sentinel (its most recent sample) survives regardless of age,
    so a host that stops reporting stays known with its last state.
    """

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS):
        if window_seconds <= 0:
            raise ValueError("Retention window must be positive")
        self.window_seconds = window_seconds

    def cutoff(self, now: float) -> int:
        return int(now) - self.window_seconds

    def sweep(self, cur, server_name: str, now: float) -> int:
        """
        Delete the host's expired non-sentinel samples.

        Must run inside the write transaction that inserted the new sample.
        Other hosts are not touched. Returns the number of rows removed.
        """
        sentinel_id = queries.get_sentinel_id(cur, server_name)
        if sentinel_id is None:
            return 0

        deleted = queries.delete_expired(cur, server_name, self.cutoff(now), sentinel_id)

        if deleted > 0:
            logger.info(
                "Evicted expired samples",
                extra={'context': {
                    'server_name': server_name,
                    'deleted': deleted,
                    'window_seconds': self.window_seconds,
                }}
            )

        return deleted
