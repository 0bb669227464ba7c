from __future__ import annotations

import sqlite3
from contextlib import contextmanager


@contextmanager
def immediate_tx(conn: sqlite3.Connection):
    """
    Start an IMMEDIATE transaction (write lock once first write happens),
    commit on success, rollback on error.

    When the connection is already inside a transaction the caller owns it:
    we neither begin nor commit, and errors propagate to the outer block,
    which rolls everything back. This lets CostsRepo recompute products and
    SalesRepo move stock as part of a single unit.
    """
    if conn.in_transaction:
        yield
        return
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        yield
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
