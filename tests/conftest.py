import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DISPATCH_BASE_URL", "http://dispatch.test/api/batch-calling")

import pytest

from voicebatch.config import settings
from voicebatch.core.exceptions import RemoteServiceError
from voicebatch.db.init_db import init_db
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import (
    CampaignMetadata,
    RecipientIn,
    RemoteCampaignStatus,
    RemoteRecipient,
    RoutingAgent,
    TenantContext,
)


class FakeDispatchClient:
    """In-memory stand-in for the dispatch service."""

    def __init__(self):
        self.submitted = []
        self.status_calls = []
        self.cancelled = []
        self.fail_on_chunk = None
        self.submit_status = "in_progress"
        self.remote_status = RemoteCampaignStatus(status="in_progress")
        self.cancel_response = {"status": "cancelled", "total_calls_dispatched": 0}
        self.cancel_error = None
        self.status_error = None
        self.before_status_return = None

    def submit(self, tenant_id, payload):
        chunk_number = len(self.submitted) + 1
        if self.fail_on_chunk == chunk_number:
            raise RemoteServiceError("queue full", status_code=503, payload={"error": "queue full"})
        self.submitted.append((tenant_id, payload))
        return {"enqueued": len(payload["recipients"]), "status": self.submit_status}

    def get_status(self, tenant_id, campaign_id):
        self.status_calls.append((tenant_id, campaign_id))
        if self.status_error:
            raise self.status_error
        if self.before_status_return:
            self.before_status_return()
        return self.remote_status

    def cancel(self, tenant_id, campaign_id):
        if self.cancel_error:
            raise self.cancel_error
        self.cancelled.append((tenant_id, campaign_id))
        return self.cancel_response


@pytest.fixture(autouse=True)
def _temp_database(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "voicebatch-test.db"))
    monkeypatch.setattr(settings, "DISPATCH_API_KEY", "global-key")
    init_db()


@pytest.fixture
def ctx():
    return TenantContext(tenant_id="tenant-a", user_id="user-1", role="admin")


@pytest.fixture
def other_ctx():
    return TenantContext(tenant_id="tenant-b", user_id="user-2", role="admin")


@pytest.fixture
def dispatch():
    return FakeDispatchClient()


@pytest.fixture
def agent():
    return RoutingAgent(agent_id="agent-1", phone_number_id="pn-1", agent_name="Sofia", phone_number="+34910000000")


@pytest.fixture
def make_campaign(ctx):
    """Insert a mirror record directly, bypassing submission."""

    def _make(status="processing", remote_id="cmp_remote", recipients=None,
              total=3, processed=0, tenant_id=None, name="Spring outreach"):
        metadata = CampaignMetadata(
            remote_campaign_id=remote_id,
            agents=[RoutingAgent(agent_id="agent-1", phone_number_id="pn-1")],
            concurrency=10,
            recipients=recipients or [],
        )
        with UnitOfWork() as uow:
            return uow.campaigns.create(tenant_id or ctx.tenant_id, {
                "name": name,
                "phone_number_id": "pn-1",
                "agent_id": "agent-1",
                "status": status,
                "total_recipients": total,
                "processed_recipients": processed,
                "metadata": metadata,
            })

    return _make


def remote(status, scheduled, dispatched, recipients=()):
    return RemoteCampaignStatus(
        status=status,
        total_calls_scheduled=scheduled,
        total_calls_dispatched=dispatched,
        recipients=[RemoteRecipient(phone_number=p, status=s) for p, s in recipients],
    )


def recipient(phone, **variables):
    return RecipientIn(phone_number=phone, variables=variables)
