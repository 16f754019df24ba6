import logging

from voicebatch.db.database import get_db
from voicebatch.config import settings

logger = logging.getLogger(__name__)


def init_db():
    """Initialize database with required tables"""
    with get_db() as conn:
        cursor = conn.cursor()

        # Campaign mirror; metadata is a JSON document
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS campaigns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                tenant_id TEXT NOT NULL,
                name TEXT NOT NULL,
                phone_number_id TEXT,
                agent_id TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                total_recipients INTEGER NOT NULL DEFAULT 0,
                processed_recipients INTEGER NOT NULL DEFAULT 0,
                metadata TEXT NOT NULL DEFAULT '{}',
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_campaigns_tenant_created
            ON campaigns (tenant_id, created_at DESC)
        ''')

        # Per-tenant dispatch credential overrides
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS tenant_credentials (
                tenant_id TEXT PRIMARY KEY,
                api_key TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        conn.commit()
        logger.info("Database initialized at %s", settings.DB_PATH)
