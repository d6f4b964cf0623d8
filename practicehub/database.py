"""PostgreSQL access for PracticeHub.

One psycopg2 ThreadedConnectionPool per process. Checkouts are bounded by
a semaphore sized to the pool, so a request waits up to DB_POOL_TIMEOUT
seconds for a free connection instead of failing the moment the pool is
busy. Connections handed out are checked with `SELECT 1` and run in
autocommit until a caller opens a transaction().

Rows come back as dicts (RealDictCursor). dict_from_row() turns dates and
datetimes into ISO strings and leaves Decimal money values alone.

Environment:
    DATABASE_URL        required
    DB_POOL_MIN_CONN    default 2
    DB_POOL_MAX_CONN    default 8
    DB_POOL_TIMEOUT     seconds to wait for a free connection, default 10
    TESTING             skip schema bootstrap on import
"""
import os
import time
import logging
import threading
from contextlib import contextmanager

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger('practicehub.database')

DATABASE_URL = os.environ.get('DATABASE_URL')
if not DATABASE_URL:
    raise ValueError('DATABASE_URL environment variable is required (PostgreSQL connection string)')

POOL_MIN_CONN = int(os.environ.get('DB_POOL_MIN_CONN', '2'))
POOL_MAX_CONN = int(os.environ.get('DB_POOL_MAX_CONN', '8'))
POOL_TIMEOUT = float(os.environ.get('DB_POOL_TIMEOUT', '10'))

CHECKOUT_ATTEMPTS = 3
PING_TTL = 5

# Tables every tenant-scoped install has; their absence means a fresh database
SCHEMA_SENTINEL = 'tenants'

_pool = None
_pool_lock = threading.Lock()
_slots = threading.BoundedSemaphore(POOL_MAX_CONN)


def _get_pool():
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = pool.ThreadedConnectionPool(
                    POOL_MIN_CONN, POOL_MAX_CONN, dsn=DATABASE_URL,
                    connect_timeout=5,
                    keepalives=1, keepalives_idle=30, keepalives_interval=10, keepalives_count=5,
                )
                logger.info(f'PostgreSQL pool ready ({POOL_MIN_CONN}-{POOL_MAX_CONN} connections)')
    return _pool


def _discard(conn):
    try:
        _get_pool().putconn(conn, close=True)
    except Exception as e:
        logger.debug(f'Could not close connection: {e}')


def _is_alive(conn):
    try:
        with conn.cursor() as cur:
            cur.execute('SELECT 1')
        conn.rollback()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.DatabaseError) as e:
        logger.warning(f'Dropping dead pooled connection: {e}')
        return False


def get_db(timeout=None):
    """Check a live connection out of the pool (autocommit on).

    Raises psycopg2.OperationalError when no connection frees up within
    `timeout` seconds or when every attempt hands back a dead connection.
    Always pair with release_db().
    """
    timeout = POOL_TIMEOUT if timeout is None else timeout
    if not _slots.acquire(timeout=timeout):
        raise psycopg2.OperationalError(f'No database connection available after {timeout}s')

    try:
        for _ in range(CHECKOUT_ATTEMPTS):
            conn = _get_pool().getconn()
            if _is_alive(conn):
                conn.autocommit = True
                return conn
            _discard(conn)
    except Exception:
        _slots.release()
        raise
    _slots.release()
    raise psycopg2.OperationalError(f'No live database connection after {CHECKOUT_ATTEMPTS} attempts')


def release_db(conn):
    """Give a connection from get_db() back; broken ones are closed instead."""
    if conn is None or _pool is None:
        return
    try:
        if conn.closed:
            _pool.putconn(conn, close=True)
        else:
            conn.autocommit = False
            _pool.putconn(conn)
    except Exception as e:
        logger.warning(f'Closing connection returned in a bad state: {e}')
        _discard(conn)
    finally:
        _slots.release()


def get_cursor(conn):
    return conn.cursor(cursor_factory=RealDictCursor)


@contextmanager
def transaction():
    """Connection with autocommit off; commits on success, rolls back on error.

        with transaction() as conn:
            cursor = get_cursor(conn)
            cursor.execute('UPDATE users SET ...')
            cursor.execute('INSERT INTO user_events ...')
    """
    conn = get_db()
    try:
        conn.autocommit = False
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.warning(f'Transaction rolled back: {e}')
        raise
    finally:
        release_db(conn)


_last_ping = {'ok': False, 'at': 0.0}


def ping_db():
    """True when the database answers. A success is remembered for PING_TTL seconds."""
    now = time.time()
    if _last_ping['ok'] and now - _last_ping['at'] < PING_TTL:
        return True
    try:
        conn = get_db()
    except psycopg2.Error as e:
        logger.error(f'Database ping failed: {e}')
        _last_ping['ok'] = False
        return False
    release_db(conn)
    _last_ping.update(ok=True, at=now)
    return True


def ensure_schema():
    """Create tables, indexes and lookup seeds on a fresh database.

    Returns True when the schema was created, False when it already existed.
    """
    conn = get_db()
    try:
        cursor = get_cursor(conn)
        cursor.execute(
            "SELECT to_regclass(%s) IS NOT NULL AS present", (f'public.{SCHEMA_SENTINEL}',))
        if cursor.fetchone()['present']:
            logger.info('Schema present, nothing to bootstrap')
            return False

        from migrations.init_schema import create_schema
        conn.autocommit = False
        create_schema(conn, cursor)
        conn.commit()
        logger.info('Schema created')
        return True
    except Exception:
        if not conn.autocommit:
            conn.rollback()
        raise
    finally:
        release_db(conn)


def dict_from_row(row):
    """Row -> dict with dates/datetimes as ISO strings. None stays None."""
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result


if not os.environ.get('TESTING'):
    ensure_schema()
