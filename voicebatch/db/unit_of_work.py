from voicebatch.db.database import get_db
from voicebatch.repositories.campaign_repo import CampaignRepository
from voicebatch.repositories.credential_repo import CredentialRepository

class UnitOfWork:
    """One sqlite transaction shared by every repository."""

    def __init__(self, db_path: str = None):
        self.db_path = db_path

    def __enter__(self):
        self.conn_ctx = get_db(self.db_path)
        self.conn = self.conn_ctx.__enter__()

        # Pass SAME connection to repos
        self.campaigns = CampaignRepository(self.conn)
        self.credentials = CredentialRepository(self.conn)

        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type:
            self.conn.rollback()
        else:
            self.conn.commit()

        self.conn_ctx.__exit__(exc_type, exc, tb)
