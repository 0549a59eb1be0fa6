"""
SQL queries for the pulse hub.

Every function takes an open cursor from Database.transaction() and uses
%s placeholders; rows come back as dicts.
"""
from typing import List, Optional, Sequence

from pulse_hub.models import COLUMNS, Sample


def insert_sample(cur, sample: Sample, returning: bool = False) -> int:
    """Insert one sample and return its surrogate id"""
    sql = """
        INSERT INTO metrics ({columns})
        VALUES ({placeholders})
    """.format(
        columns=', '.join(COLUMNS),
        placeholders=', '.join(['%s'] * len(COLUMNS))
    )

    if returning:
        cur.execute(sql + ' RETURNING id', sample.to_row_params())
        return cur.fetchone()['id']

    cur.execute(sql, sample.to_row_params())
    return cur.lastrowid


def get_sentinel_id(cur, server_name: str) -> Optional[int]:
    """
    Id of the most recent sample of a host (greatest timestamp, then
    greatest id)
    """
    cur.execute(
        """
        SELECT id FROM metrics
        WHERE server_name = %s
        ORDER BY timestamp DESC, id DESC
        LIMIT 1
        """,
        (server_name,)
    )
    row = cur.fetchone()
    return row['id'] if row else None


def delete_expired(cur, server_name: str, cutoff: int, sentinel_id: int) -> int:
    """Delete a host's samples older than cutoff, except the sentinel"""
    cur.execute(
        """
        DELETE FROM metrics
        WHERE server_name = %s
          AND timestamp < %s
          AND id != %s
        """,
        (server_name, cutoff, sentinel_id)
    )
    return cur.rowcount


def get_latest_per_host(cur) -> List[dict]:
    """
    One row per host, its most recent sample, newest hosts first

    Ties on timestamp resolve to the greater id so the result is stable.
    """
    cur.execute(
        """
        SELECT m.* FROM metrics m
        WHERE m.id = (
            SELECT m2.id FROM metrics m2
            WHERE m2.server_name = m.server_name
            ORDER BY m2.timestamp DESC, m2.id DESC
            LIMIT 1
        )
        ORDER BY m.timestamp DESC, m.id DESC
        """
    )
    return cur.fetchall()


def get_history(cur, server_name: str, limit: int) -> List[dict]:
    """Most recent samples of a host, newest first"""
    cur.execute(
        """
        SELECT * FROM metrics
        WHERE server_name = %s
        ORDER BY timestamp DESC, id DESC
        LIMIT %s
        """,
        (server_name, limit)
    )
    return cur.fetchall()


def get_host_list(cur) -> List[dict]:
    """server_name, last_seen and total_metrics per host, most recently seen first"""
    cur.execute(
        """
        SELECT
            server_name,
            MAX(timestamp) AS last_seen,
            COUNT(*) AS total_metrics
        FROM metrics
        GROUP BY server_name
        ORDER BY last_seen DESC, server_name ASC
        """
    )
    return cur.fetchall()


def get_host_summary(cur, server_name: str) -> Optional[dict]:
    cur.execute(
        """
        SELECT
            server_name,
            COUNT(*) AS records,
            MIN(timestamp) AS first_seen,
            MAX(timestamp) AS last_seen
        FROM metrics
        WHERE server_name = %s
        GROUP BY server_name
        """,
        (server_name,)
    )
    return cur.fetchone()


def delete_hosts(cur, server_names: Sequence[str]) -> int:
    """Delete every sample of the named hosts, sentinels included"""
    if not server_names:
        return 0

    placeholders = ', '.join(['%s'] * len(server_names))
    cur.execute(
        f"DELETE FROM metrics WHERE server_name IN ({placeholders})",
        tuple(server_names)
    )
    return cur.rowcount


def get_inactive_hosts(cur, cutoff: int) -> List[dict]:
    """Hosts whose latest sample is older than cutoff, stalest first"""
    cur.execute(
        """
        SELECT server_name, MAX(timestamp) AS last_seen
        FROM metrics
        GROUP BY server_name
        HAVING MAX(timestamp) < %s
        ORDER BY last_seen ASC, server_name ASC
        """,
        (cutoff,)
    )
    return cur.fetchall()


def get_stats(cur) -> dict:
    cur.execute(
        """
        SELECT
            COUNT(*) AS total_records,
            COUNT(DISTINCT server_name) AS distinct_hosts,
            MIN(timestamp) AS min_timestamp,
            MAX(timestamp) AS max_timestamp
        FROM metrics
        """
    )
    return cur.fetchone()
