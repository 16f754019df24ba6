import sqlite3
from contextlib import contextmanager
from voicebatch.config import settings

# Reconcile and cancel can hit the same row from different request threads
BUSY_TIMEOUT_SECONDS = 5


@contextmanager
def get_db(path: str = None):
    conn = sqlite3.connect(
        path or settings.DB_PATH,
        timeout=BUSY_TIMEOUT_SECONDS,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
