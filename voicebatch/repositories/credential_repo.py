from voicebatch.utils.helper import utc_now


class CredentialRepository:

    def __init__(self, conn):
        self.conn = conn
        self.cursor = conn.cursor()

    def get_api_key(self, tenant_id: str):
        self.cursor.execute(
                "SELECT api_key FROM tenant_credentials WHERE tenant_id = ?",
                (tenant_id,)
            )
        row = self.cursor.fetchone()
        return row["api_key"] if row else None

    def set_api_key(self, tenant_id: str, api_key: str):
        self.cursor.execute("""
                INSERT INTO tenant_credentials (tenant_id, api_key, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(tenant_id) DO UPDATE
                SET api_key = excluded.api_key,
                    updated_at = excluded.updated_at
            """, (tenant_id, api_key, utc_now()))

    def delete(self, tenant_id: str):
        self.cursor.execute(
                "DELETE FROM tenant_credentials WHERE tenant_id = ?",
                (tenant_id,)
            )
