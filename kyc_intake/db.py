import threading
from contextlib import contextmanager

import psycopg2
from psycopg2 import pool

from .config import DB_PREFIX
from .logging_config import get_logger

log = get_logger(__name__)

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users(
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    document_bucket TEXT NOT NULL,
    document_key TEXT NOT NULL,
    kyc_status TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

INSERT_USER = """
INSERT INTO users(name, email, phone, document_bucket, document_key, kyc_status)
VALUES (%s, %s, %s, %s, %s, %s)
RETURNING id
"""


class DatabaseStartupError(Exception):
    """Raised when the database cannot be made ready at startup.

    ``event`` is the log event name the bootstrap reports it under.
    """

    def __init__(self, event, cause):
        super().__init__(f"{event}: {cause}")
        self.event = event
        self.cause = cause


class Database:
    def __init__(self, conn_pool, prefix=DB_PREFIX, instance_id="", max_connections=10):
        self._pool = conn_pool
        # getconn() raises PoolError when exhausted; callers queue here instead.
        self._slots = threading.BoundedSemaphore(max_connections)
        self.prefix = prefix
        self.instance_id = instance_id

    @classmethod
    def connect(cls, settings, prefix=DB_PREFIX, instance_id=""):
        try:
            conn_pool = pool.ThreadedConnectionPool(1, settings.db_pool_max, dsn=settings.dsn())
        except psycopg2.Error as exc:
            raise DatabaseStartupError("db_open_failed", exc) from exc

        db = cls(conn_pool, prefix=prefix, instance_id=instance_id, max_connections=settings.db_pool_max)
        try:
            db.ping()
        except psycopg2.Error as exc:
            db.close()
            raise DatabaseStartupError("db_ping_failed", exc) from exc

        log.info("db_connected", db=prefix, instance=instance_id)
        return db

    @contextmanager
    def connection(self):
        with self._slots:
            conn = self._pool.getconn()
            broken = False
            try:
                with conn:
                    yield conn
            except psycopg2.OperationalError:
                broken = True
                raise
            finally:
                self._pool.putconn(conn, close=broken or bool(conn.closed))

    def ping(self):
        with self.connection() as conn, conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()

    def ensure_schema(self):
        try:
            with self.connection() as conn, conn.cursor() as cur:
                cur.execute(CREATE_USERS_TABLE)
        except psycopg2.Error as exc:
            raise DatabaseStartupError("create_table_failed", exc) from exc
        log.info("table_ready", table="users", instance=self.instance_id)

    def insert_submission(self, name, email, phone, bucket, key, status):
        with self.connection() as conn, conn.cursor() as cur:
            cur.execute(INSERT_USER, (name, email, phone, bucket, key, status))
            return cur.fetchone()[0]

    def close(self):
        self._pool.closeall()
