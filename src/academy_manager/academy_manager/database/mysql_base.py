from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence

from .connection import DatabaseConnection


@contextmanager
def transaction(conn_factory: DatabaseConnection) -> Iterator[Any]:
    """Dictionary cursor on a fresh connection.

    Commits when the block exits cleanly, rolls back on any exception and
    always closes both cursor and connection.
    """
    conn = conn_factory.connect()
    cur = conn.cursor(dictionary=True)
    try:
        yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def execute(conn_factory: DatabaseConnection, sql: str, params: Sequence[Any] = ()) -> None:
    with transaction(conn_factory) as cur:
        cur.execute(sql, tuple(params))


def query(conn_factory: DatabaseConnection, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
    with transaction(conn_factory) as cur:
        cur.execute(sql, tuple(params))
        return list(cur.fetchall() or [])
