"""
Database connection management for the pulse hub.

SQLite (a single monitoring.db file) is the default backend; PostgreSQL is
used when the URL says so. Both expose the same transaction() contract:
one transaction per call, dict rows, %s placeholders, a single logical
writer at a time and consistent snapshots for readers.
"""
import os
import sqlite3
import threading
from contextlib import contextmanager, nullcontext

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from pulse_hub.errors import StorageError

DEFAULT_DB_URL = 'sqlite:///monitoring.db'

SCHEMA = """
    CREATE TABLE IF NOT EXISTS metrics (
        id {id_column},
        server_name TEXT NOT NULL,
        timestamp BIGINT NOT NULL,
        temperature {float_type},
        memory_used {float_type},
        memory_total {float_type},
        memory_percentage {float_type},
        storage_used TEXT,
        storage_total TEXT,
        storage_percentage INTEGER,
        cpu_percentage {float_type},
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""

INDEX = "CREATE INDEX IF NOT EXISTS idx_server_timestamp ON metrics(server_name, timestamp)"


class Database:
    """Common interface of the storage backends"""

    id_column = ''
    float_type = ''
    supports_returning = False

    def transaction(self, write: bool = False):
        raise NotImplementedError

    def init_schema(self) -> None:
        raise NotImplementedError

    def size_bytes(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def schema_statements(self):
        return [
            SCHEMA.format(id_column=self.id_column, float_type=self.float_type),
            INDEX,
        ]


def _dict_factory(cursor, row):
    return {column[0]: row[idx] for idx, column in enumerate(cursor.description)}


class _QmarkCursor:
    """Wraps a sqlite3 cursor so queries can use psycopg2-style %s placeholders"""

    def __init__(self, cursor: sqlite3.Cursor):
        self._cursor = cursor

    def execute(self, sql: str, params=()):
        self._cursor.execute(sql.replace('%s', '?'), tuple(params))
        return self

    def __getattr__(self, name):
        return getattr(self._cursor, name)


class SQLiteDatabase(Database):
    """File-backed store shared by the web service and the admin CLI"""

    id_column = 'INTEGER PRIMARY KEY AUTOINCREMENT'
    float_type = 'REAL'

    def __init__(self, path: str, timeout: float = 30.0):
        self.path = path
        self.timeout = timeout
        # BEGIN IMMEDIATE serializes writers across processes; the lock keeps
        # threads of this process from queueing on the busy timeout.
        self._write_lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = _dict_factory
        return conn

    def init_schema(self) -> None:
        conn = self._connect()
        try:
            conn.execute('PRAGMA journal_mode=WAL')
            for statement in self.schema_statements():
                conn.execute(statement)
        except sqlite3.Error as e:
            raise StorageError(f"Could not initialise {self.path}: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self, write: bool = False):
        """
        Run one transaction on a fresh connection.

        Commits when the block exits cleanly, rolls back otherwise. sqlite3
        errors are re-raised as StorageError.
        """
        with self._write_lock if write else nullcontext():
            conn = self._connect()
            try:
                conn.execute('BEGIN IMMEDIATE' if write else 'BEGIN')
                yield _QmarkCursor(conn.cursor())
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(str(e)) from e
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def size_bytes(self) -> int:
        paths = (self.path, self.path + '-wal')
        return sum(os.path.getsize(p) for p in paths if os.path.exists(p))


class PostgreSQLDatabase(Database):
    """PostgreSQL store with connection pooling"""

    id_column = 'BIGSERIAL PRIMARY KEY'
    float_type = 'DOUBLE PRECISION'
    supports_returning = True

    def __init__(self, database_url: str, min_connections: int = 1, max_connections: int = 5):
        try:
            self.pool = ThreadedConnectionPool(
                min_connections,
                max_connections,
                database_url,
                cursor_factory=RealDictCursor
            )
        except psycopg2.Error as e:
            raise StorageError(f"Could not connect to PostgreSQL: {e}") from e

    @contextmanager
    def transaction(self, write: bool = False):
        """
        Run one transaction on a pooled connection.

        Writers take a self-exclusive table lock so inserts and sweeps never
        interleave; readers get a repeatable-read snapshot.
        """
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                if write:
                    cur.execute('LOCK TABLE metrics IN SHARE ROW EXCLUSIVE MODE')
                else:
                    cur.execute('SET TRANSACTION ISOLATION LEVEL REPEATABLE READ')
                yield cur
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def init_schema(self) -> None:
        with self.transaction(write=False) as cur:
            for statement in self.schema_statements():
                cur.execute(statement)

    def size_bytes(self) -> int:
        with self.transaction() as cur:
            cur.execute("SELECT pg_total_relation_size('metrics') AS size")
            return cur.fetchone()['size']

    def close(self) -> None:
        self.pool.closeall()


def connect(database_url: str) -> Database:
    """
    Open the backend named by a URL.

    Accepts postgresql://..., sqlite:///relative.db, sqlite:////abs/path.db
    or a bare file path.
    """
    if database_url.startswith(('postgresql://', 'postgres://')):
        return PostgreSQLDatabase(database_url)

    if database_url.startswith('sqlite:///'):
        return SQLiteDatabase(database_url[len('sqlite:///'):])

    if '://' in database_url:
        raise StorageError(f"Unsupported database URL: {database_url}")

    return SQLiteDatabase(database_url)


def get_database(database_url: str = None) -> Database:
    """
    Open the configured database and make sure the schema exists.

    The URL falls back to the PULSE_DB_URL environment variable and then to
    a monitoring.db file in the working directory.
    """
    database = connect(database_url or os.getenv('PULSE_DB_URL') or DEFAULT_DB_URL)
    database.init_schema()
    return database
