from typing import Optional

from voicebatch.models.schemas import Campaign, CampaignMetadata
from voicebatch.repositories.metadata_codec import decode_metadata, encode_metadata
from voicebatch.utils.helper import utc_now

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

UPDATABLE_FIELDS = (
    "name",
    "phone_number_id",
    "agent_id",
    "status",
    "total_recipients",
    "processed_recipients",
    "metadata",
)


class CampaignRepository:
    """
    Tenant-scoped campaign mirror.

    Every statement filters on ``tenant_id``; a campaign owned by another
    tenant is reported exactly like a missing one.
    """

    def __init__(self, conn):
        self.conn = conn
        self.cursor = conn.cursor()

    def _to_campaign(self, row) -> Campaign:
        data = dict(row)
        data["metadata"] = decode_metadata(data.get("metadata"))
        return Campaign(**data)

    def create(self, tenant_id: str, fields: dict) -> Campaign:
        now = utc_now()
        metadata = fields.get("metadata") or CampaignMetadata()

        self.cursor.execute("""
                INSERT INTO campaigns (
                    tenant_id, name, phone_number_id, agent_id, status,
                    total_recipients, processed_recipients, metadata,
                    version, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """, (
                tenant_id,
                fields["name"],
                fields.get("phone_number_id"),
                fields.get("agent_id"),
                fields.get("status", "pending"),
                fields.get("total_recipients", 0),
                fields.get("processed_recipients", 0),
                encode_metadata(metadata),
                now,
                now,
            ))

        return self.get(tenant_id, self.cursor.lastrowid)

    def get(self, tenant_id: str, campaign_id: int) -> Optional[Campaign]:
        self.cursor.execute(
                "SELECT * FROM campaigns WHERE tenant_id = ? AND id = ?",
                (tenant_id, campaign_id)
            )
        row = self.cursor.fetchone()
        return self._to_campaign(row) if row else None

    def update(
        self,
        tenant_id: str,
        campaign_id: int,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Optional[Campaign]:
        """
        Apply ``fields`` and bump ``version`` when anything changed.

        With ``expected_version`` this is a compare-and-set: ``None`` is
        returned, and nothing written, if the stored version moved on.
        Without it the write always lands; ``None`` means the row is gone.
        The recipient snapshot inside ``metadata`` is never replaced once
        written.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update campaign fields: {sorted(unknown)}")

        current = self.get(tenant_id, campaign_id)
        if current is None:
            return None

        if expected_version is not None and current.version != expected_version:
            return None

        changes = {}
        for key, value in fields.items():
            if key == "metadata":
                if current.metadata.recipients:
                    value = value.model_copy(update={"recipients": current.metadata.recipients})
                if value != current.metadata:
                    changes[key] = encode_metadata(value)
            elif getattr(current, key) != value:
                changes[key] = value

        if not changes:
            return current

        assignments = ", ".join(f"{key} = ?" for key in changes)
        where = "tenant_id = ? AND id = ?"
        params = [*changes.values(), utc_now(), tenant_id, campaign_id]
        # Unconditional writes win over whatever committed since the read
        if expected_version is not None:
            where += " AND version = ?"
            params.append(expected_version)

        self.cursor.execute(f"""
                UPDATE campaigns
                SET {assignments},
                    version = version + 1,
                    updated_at = ?
                WHERE {where}
            """, params)

        if self.cursor.rowcount == 0:
            return None

        return self.get(tenant_id, campaign_id)

    def list(self, tenant_id: str, limit: int = DEFAULT_LIST_LIMIT):
        limit = max(1, min(int(limit or DEFAULT_LIST_LIMIT), MAX_LIST_LIMIT))
        self.cursor.execute("""
                SELECT * FROM campaigns
                WHERE tenant_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            """, (tenant_id, limit))
        return [self._to_campaign(row) for row in self.cursor.fetchall()]
