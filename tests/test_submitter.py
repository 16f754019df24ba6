import pytest

from conftest import recipient
from voicebatch.core.exceptions import (
    NoValidRecipients,
    PartialSubmissionError,
    RemoteServiceError,
    ValidationError,
)
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import CampaignSubmit, DispatchOptions, PrioritySubmit, TimeWindow
from voicebatch.services.submitter import CHUNK_SIZE, submit_campaign, submit_priority_call


def build_request(agent, count=3, **kwargs):
    recipients = [recipient(f"3460{i:07d}", idx=str(i)) for i in range(count)]
    return CampaignSubmit(name="Spring outreach", agents=[agent], recipients=recipients, **kwargs)


def test_chunks_10001_recipients_into_three_calls(ctx, dispatch, agent):
    result = submit_campaign(ctx, build_request(agent, count=10001), dispatch)

    sizes = [len(payload["recipients"]) for _, payload in dispatch.submitted]
    assert sizes == [5000, 5000, 1]
    assert result["enqueued"] == 10001
    assert result["chunks"] == 3


def test_chunks_share_one_correlation_id_and_keep_order(ctx, dispatch, agent):
    result = submit_campaign(ctx, build_request(agent, count=CHUNK_SIZE + 2), dispatch)

    ids = {payload["campaignId"] for _, payload in dispatch.submitted}
    assert ids == {result["remote_campaign_id"]}

    phones = [r["phone_number"] for _, p in dispatch.submitted for r in p["recipients"]]
    assert phones[0] == "+34600000000"
    assert phones[-1] == f"+3460{CHUNK_SIZE + 1:07d}"


def test_enqueued_is_sum_of_reported_counts(ctx, dispatch, agent, monkeypatch):
    reported = iter([4990, 5000, 1])
    original = dispatch.submit

    def submit(tenant_id, payload):
        response = original(tenant_id, payload)
        response["enqueued"] = next(reported)
        return response

    monkeypatch.setattr(dispatch, "submit", submit)

    result = submit_campaign(ctx, build_request(agent, count=10001), dispatch)
    assert result["enqueued"] == 9991


def test_caller_supplied_campaign_id_is_used(ctx, dispatch, agent):
    result = submit_campaign(ctx, build_request(agent, campaign_id="cmp_fixed"), dispatch)
    assert result["remote_campaign_id"] == "cmp_fixed"
    assert dispatch.submitted[0][1]["campaignId"] == "cmp_fixed"


def test_generated_campaign_ids_differ(ctx, dispatch, agent):
    first = submit_campaign(ctx, build_request(agent), dispatch)
    second = submit_campaign(ctx, build_request(agent), dispatch)
    assert first["remote_campaign_id"] != second["remote_campaign_id"]


def test_writes_mirror_with_snapshot(ctx, dispatch, agent):
    request = build_request(agent, count=2, phone_provider="twilio", call_type="survey")
    result = submit_campaign(ctx, request, dispatch)
    campaign = result["campaign"]

    assert campaign.status == "processing"
    assert campaign.total_recipients == 2
    assert campaign.processed_recipients == 0
    assert campaign.agent_id == "agent-1"
    assert campaign.phone_number_id == "pn-1"

    metadata = campaign.metadata
    assert metadata.remote_campaign_id == result["remote_campaign_id"]
    assert metadata.phone_provider == "twilio"
    assert metadata.call_type == "survey"
    assert metadata.agent_name == "Sofia"
    assert [(r.phone_number, r.variables) for r in metadata.recipients] == [
        ("+34600000000", {"idx": "0"}),
        ("+34600000001", {"idx": "1"}),
    ]

    with UnitOfWork() as uow:
        assert uow.campaigns.get(ctx.tenant_id, campaign.id) == campaign


def test_payload_carries_full_context(ctx, dispatch, agent):
    options = DispatchOptions(
        enable_machine_detection=True,
        machine_detection_timeout=20,
        concurrency=5,
        time_window=TimeWindow(start_time="09:00", end_time="18:00", days_of_week=[1, 2]),
    )
    submit_campaign(ctx, build_request(agent, count=1, options=options, scheduled_time_unix=1700000000), dispatch)

    tenant_id, payload = dispatch.submitted[0]
    assert tenant_id == "tenant-a"
    assert payload["tenant"] == "tenant-a"
    assert payload["agents"] == [{"agentId": "agent-1", "phoneNumberId": "pn-1"}]
    assert payload["concurrency"] == 5
    assert payload["enableMachineDetection"] is True
    assert payload["machineDetectionTimeout"] == 20
    assert payload["timeWindow"]["timezone"] == "UTC"
    assert payload["scheduledTimeUnix"] == 1700000000
    assert payload["recipients"][0] == {
        "phone_number": "+34600000000",
        "conversation_initiation_client_data": {"dynamic_variables": {"idx": "0"}},
    }


def test_no_valid_recipients_rejected_before_remote_call(ctx, dispatch, agent):
    request = CampaignSubmit(name="x", agents=[agent], recipients=[recipient(""), recipient("   ")])

    with pytest.raises(NoValidRecipients):
        submit_campaign(ctx, request, dispatch)

    assert dispatch.submitted == []


def test_invalid_options_rejected_before_remote_call(ctx, dispatch, agent):
    request = build_request(agent, options=DispatchOptions(concurrency=101))

    with pytest.raises(ValidationError):
        submit_campaign(ctx, request, dispatch)

    assert dispatch.submitted == []
    with UnitOfWork() as uow:
        assert uow.campaigns.list(ctx.tenant_id) == []


def test_first_chunk_failure_writes_nothing(ctx, dispatch, agent):
    dispatch.fail_on_chunk = 1

    with pytest.raises(RemoteServiceError) as exc:
        submit_campaign(ctx, build_request(agent), dispatch)

    assert not isinstance(exc.value, PartialSubmissionError)
    with UnitOfWork() as uow:
        assert uow.campaigns.list(ctx.tenant_id) == []


def test_later_chunk_failure_reports_partial_success(ctx, dispatch, agent):
    dispatch.fail_on_chunk = 2

    with pytest.raises(PartialSubmissionError) as exc:
        submit_campaign(ctx, build_request(agent, count=CHUNK_SIZE * 2 + 10), dispatch)

    error = exc.value
    assert error.enqueued == CHUNK_SIZE
    assert error.failed_chunk == 2
    assert error.total_chunks == 3
    assert len(error.accepted_phone_numbers) == CHUNK_SIZE
    assert len(dispatch.submitted) == 1

    with UnitOfWork() as uow:
        campaign = uow.campaigns.get(ctx.tenant_id, error.campaign_id)
    assert campaign.total_recipients == CHUNK_SIZE
    assert len(campaign.metadata.recipients) == CHUNK_SIZE
    assert campaign.metadata.partial_submission.failed_chunk == 2
    assert campaign.metadata.remote_campaign_id == error.remote_campaign_id


def test_priority_call_submits_once_without_mirror(ctx, dispatch, agent):
    result = submit_priority_call(
        ctx,
        PrioritySubmit(agent=agent, recipient=recipient(" 34600000009 ", name="Ana")),
        dispatch,
    )

    assert result["enqueued"] == 1
    _, payload = dispatch.submitted[0]
    assert payload["priority"] is True
    assert payload["recipients"][0]["phone_number"] == "+34600000009"
    with UnitOfWork() as uow:
        assert uow.campaigns.list(ctx.tenant_id) == []


def test_priority_call_validates_options(ctx, dispatch, agent):
    with pytest.raises(ValidationError):
        submit_priority_call(
            ctx,
            PrioritySubmit(
                agent=agent,
                recipient=recipient("34600000009"),
                options=DispatchOptions(machine_detection_timeout=31),
            ),
            dispatch,
        )
    assert dispatch.submitted == []


def test_first_chunk_total_only_used_for_single_chunk(ctx, dispatch, agent, monkeypatch):
    fake_submit = dispatch.submit

    def submit_with_total(tenant_id, payload):
        response = fake_submit(tenant_id, payload)
        response["total_calls_scheduled"] = 4
        return response

    monkeypatch.setattr(dispatch, "submit", submit_with_total)

    single = submit_campaign(ctx, build_request(agent, count=3), dispatch)
    chunked_run = submit_campaign(ctx, build_request(agent, count=CHUNK_SIZE + 1), dispatch)

    assert single["campaign"].total_recipients == 4
    assert chunked_run["campaign"].total_recipients == CHUNK_SIZE + 1
