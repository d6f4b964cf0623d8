"""Base Repository: connection handling shared by every repository.

query_one(), query_all(), execute() and execute_many() wrap
get_db()/get_cursor()/release_db() in try/finally.

Every PracticeHub table carries a tenant_id, so subclasses take the tenant
as the first argument of each public method and put it in the WHERE clause.

Usage:
    class ClientRepository(BaseRepository):
        def get(self, tenant_id, client_id):
            return self.query_one(
                'SELECT * FROM clients WHERE tenant_id = %s AND id = %s',
                (tenant_id, client_id))
"""
import json

import psycopg2

from database import get_db, get_cursor, release_db, dict_from_row


class BaseRepository:

    def query_one(self, sql, params=None):
        """Execute a SELECT and return a single row as dict, or None."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            row = cursor.fetchone()
            return dict_from_row(row) if row else None
        finally:
            release_db(conn)

    def query_all(self, sql, params=None):
        """Execute a SELECT and return all rows as list of dicts."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            return [dict_from_row(r) for r in cursor.fetchall()]
        finally:
            release_db(conn)

    def execute(self, sql, params=None, returning=False):
        """Execute an INSERT/UPDATE/DELETE and commit.

        Returns the RETURNING row as dict when `returning` is set, else rowcount.
        Unique-constraint violations are re-raised as ValueError.
        """
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            cursor.execute(sql, params or ())
            if returning:
                result = cursor.fetchone()
                conn.commit()
                return dict_from_row(result) if result else None
            conn.commit()
            return cursor.rowcount
        except psycopg2.errors.UniqueViolation as e:
            conn.rollback()
            raise ValueError(_unique_message(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)

    def execute_many(self, callback):
        """Run callback(cursor) inside a single transaction and return its result."""
        conn = get_db()
        try:
            cursor = get_cursor(conn)
            result = callback(cursor)
            conn.commit()
            return result
        except psycopg2.errors.UniqueViolation as e:
            conn.rollback()
            raise ValueError(_unique_message(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)

    @staticmethod
    def build_update(table, allowed, fields, where, where_params, json_fields=()):
        """Build an UPDATE statement for the allowed keys present in `fields`.

        Returns (sql, params), or (None, None) when nothing is updatable.
        """
        updates = []
        params = []
        for key, val in fields.items():
            if key not in allowed:
                continue
            if key in json_fields:
                updates.append(f'{key} = %s::jsonb')
                params.append(to_json(val))
            else:
                updates.append(f'{key} = %s')
                params.append(val)
        if not updates:
            return None, None
        updates.append('updated_at = NOW()')
        sql = f'UPDATE {table} SET {", ".join(updates)} WHERE {where}'
        return sql, params + list(where_params)


def to_json(val, default='{}'):
    """Convert a value to a JSON string for JSONB columns."""
    if val is None:
        return default
    if isinstance(val, str):
        return val
    return json.dumps(val, default=str)


def _unique_message(error):
    constraint = getattr(getattr(error, 'diag', None), 'constraint_name', None)
    if constraint:
        return f'Duplicate value violates unique constraint {constraint}'
    return 'Duplicate value violates a unique constraint'
