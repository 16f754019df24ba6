from pydantic import BaseModel, Field
from typing import Any, Optional, List, Dict

CAMPAIGN_STATUSES = ("pending", "processing", "completed", "cancelled", "failed")
TERMINAL_STATUSES = ("completed", "cancelled", "failed")

RECIPIENT_STATUSES = (
    "pending",
    "initiated",
    "voicemail",
    "in_progress",
    "completed",
    "failed",
    "cancelled",
)

METADATA_SCHEMA_VERSION = 1


class TenantContext(BaseModel):
    tenant_id: str
    user_id: Optional[str] = None
    role: Optional[str] = None


class RecipientIn(BaseModel):
    phone_number: Optional[str] = None
    variables: Optional[Dict[str, Any]] = Field(default_factory=dict)


class RoutingAgent(BaseModel):
    agent_id: str
    phone_number_id: str
    agent_name: Optional[str] = None
    phone_number: Optional[str] = None


class TimeWindow(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_of_week: Optional[List[int]] = None
    timezone: Optional[str] = None


class DispatchOptions(BaseModel):
    enable_machine_detection: bool = False
    machine_detection_timeout: Optional[int] = None
    concurrency: Optional[int] = None
    time_window: Optional[TimeWindow] = None


class CampaignSubmit(BaseModel):
    name: str = "Untitled Batch"
    agents: List[RoutingAgent]
    recipients: List[RecipientIn]
    campaign_id: Optional[str] = None
    scheduled_time_unix: Optional[int] = None
    phone_provider: Optional[str] = None
    call_type: Optional[str] = None
    options: DispatchOptions = Field(default_factory=DispatchOptions)


class PrioritySubmit(BaseModel):
    agent: RoutingAgent
    recipient: RecipientIn
    phone_provider: Optional[str] = None
    options: DispatchOptions = Field(default_factory=DispatchOptions)


class RetryRequest(BaseModel):
    name: Optional[str] = None


class PartialSubmission(BaseModel):
    failed_chunk: int
    total_chunks: int
    error: str


class CampaignMetadata(BaseModel):
    schema_version: int = METADATA_SCHEMA_VERSION
    remote_campaign_id: Optional[str] = None
    phone_provider: Optional[str] = None
    agent_name: Optional[str] = None
    phone_number: Optional[str] = None
    agents: List[RoutingAgent] = Field(default_factory=list)
    scheduled_time_unix: Optional[int] = None
    call_type: Optional[str] = None
    concurrency: Optional[int] = None
    enable_machine_detection: Optional[bool] = None
    machine_detection_timeout: Optional[int] = None
    time_window: Optional[TimeWindow] = None
    recipients: List[RecipientIn] = Field(default_factory=list)
    retry_of: Optional[int] = None
    partial_submission: Optional[PartialSubmission] = None


class Campaign(BaseModel):
    id: int
    tenant_id: str
    name: str
    phone_number_id: Optional[str] = None
    agent_id: Optional[str] = None
    status: str
    total_recipients: int
    processed_recipients: int
    metadata: CampaignMetadata
    version: int
    created_at: str
    updated_at: str

    @property
    def remote_campaign_id(self) -> Optional[str]:
        return self.metadata.remote_campaign_id

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class CampaignSummary(BaseModel):
    """List view: the mirror record without the recipient snapshot."""
    id: int
    name: str
    phone_number_id: Optional[str] = None
    agent_id: Optional[str] = None
    status: str
    total_recipients: int
    processed_recipients: int
    remote_campaign_id: Optional[str] = None
    created_at: str
    updated_at: str


class RemoteRecipient(BaseModel):
    phone_number: str
    status: str = "pending"
    conversation_id: Optional[str] = None


class RemoteCampaignStatus(BaseModel):
    status: str
    total_calls_scheduled: Optional[int] = None
    total_calls_dispatched: Optional[int] = None
    recipients: List[RemoteRecipient] = Field(default_factory=list)
    phone_provider: Optional[str] = None
    agent_name: Optional[str] = None
    scheduled_time_unix: Optional[int] = None
