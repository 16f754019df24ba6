import logging
from typing import Optional

from voicebatch.core.exceptions import (
    NoValidRecipients,
    PartialSubmissionError,
    RemoteServiceError,
)
from voicebatch.core.logging import mask_phone
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import (
    CampaignMetadata,
    CampaignSubmit,
    PartialSubmission,
    PrioritySubmit,
    TenantContext,
)
from voicebatch.services.dispatch_client import build_submit_payload, map_remote_status
from voicebatch.services.normalizer import normalize_recipients
from voicebatch.services.validation import validate_agents, validate_dispatch_options
from voicebatch.utils.helper import chunked, new_correlation_id

logger = logging.getLogger(__name__)

CHUNK_SIZE = 5000


def _build_metadata(request: CampaignSubmit, options, remote_campaign_id, recipients, first_response, retry_of):
    primary = request.agents[0]
    return CampaignMetadata(
        remote_campaign_id=remote_campaign_id,
        phone_provider=first_response.get("phone_provider") or request.phone_provider,
        agent_name=first_response.get("agent_name") or primary.agent_name,
        phone_number=primary.phone_number,
        agents=request.agents,
        scheduled_time_unix=first_response.get("scheduled_time_unix") or request.scheduled_time_unix,
        call_type=request.call_type,
        concurrency=options.concurrency,
        enable_machine_detection=options.enable_machine_detection,
        machine_detection_timeout=options.machine_detection_timeout,
        time_window=options.time_window,
        recipients=recipients,
        retry_of=retry_of,
    )


def _initial_total(first_response, recipients, chunks) -> int:
    # A single-chunk response already covers the whole campaign
    if len(chunks) == 1 and first_response.get("total_calls_scheduled"):
        return first_response["total_calls_scheduled"]
    return len(recipients)


def submit_campaign(
    ctx: TenantContext,
    request: CampaignSubmit,
    client,
    uow_factory=UnitOfWork,
    retry_of: Optional[int] = None,
) -> dict:
    """
    Submit a campaign to the dispatch service in chunks and mirror it.

    Chunks are sent one after another under a single correlation id so the
    dispatch service aggregates them into one campaign. The mirror record is
    written only after the dispatch service accepted the recipients.
    """
    recipients = normalize_recipients(request.recipients)
    if not recipients:
        raise NoValidRecipients()

    agents = validate_agents(request.agents)
    options = validate_dispatch_options(request.options)

    remote_campaign_id = request.campaign_id or new_correlation_id()
    chunks = chunked(recipients, CHUNK_SIZE)
    enqueued = 0
    first_response = {}

    logger.info(
        "Submitting campaign %s for tenant %s: %d recipients in %d chunk(s)",
        remote_campaign_id, ctx.tenant_id, len(recipients), len(chunks),
    )

    for index, chunk in enumerate(chunks, start=1):
        payload = build_submit_payload(
            ctx.tenant_id,
            agents,
            remote_campaign_id,
            chunk,
            request.name,
            options,
            scheduled_time_unix=request.scheduled_time_unix,
            phone_provider=request.phone_provider,
            call_type=request.call_type,
        )

        try:
            response = client.submit(ctx.tenant_id, payload)
        except RemoteServiceError as e:
            if index == 1:
                raise
            accepted = recipients[:(index - 1) * CHUNK_SIZE]
            campaign = _record_partial(ctx, request, options, remote_campaign_id, accepted,
                                       index, len(chunks), e, first_response,
                                       uow_factory, retry_of)
            logger.error(
                "Campaign %s stopped at chunk %d/%d after enqueuing %d; mirrored as #%d",
                remote_campaign_id, index, len(chunks), enqueued, campaign.id,
            )
            raise PartialSubmissionError(
                campaign_id=campaign.id,
                remote_campaign_id=remote_campaign_id,
                enqueued=enqueued,
                accepted_phone_numbers=[r.phone_number for r in accepted],
                failed_chunk=index,
                total_chunks=len(chunks),
                cause=e,
            ) from e

        if index == 1:
            first_response = response
        enqueued += response["enqueued"]
        logger.info("Chunk %d/%d of %s enqueued %d", index, len(chunks), remote_campaign_id, response["enqueued"])

    metadata = _build_metadata(request, options, remote_campaign_id, recipients, first_response, retry_of)
    primary = agents[0]

    with uow_factory() as uow:
        campaign = uow.campaigns.create(ctx.tenant_id, {
            "name": request.name,
            "phone_number_id": primary.phone_number_id,
            "agent_id": primary.agent_id,
            "status": map_remote_status(first_response.get("status")),
            "total_recipients": _initial_total(first_response, recipients, chunks),
            "processed_recipients": first_response.get("total_calls_dispatched") or 0,
            "metadata": metadata,
        })

    logger.info("Campaign %s mirrored as #%d (enqueued %d)", remote_campaign_id, campaign.id, enqueued)

    return {
        "campaign": campaign,
        "enqueued": enqueued,
        "chunks": len(chunks),
        "remote_campaign_id": remote_campaign_id,
    }


def _record_partial(ctx, request, options, remote_campaign_id, accepted,
                    failed_chunk, total_chunks, error, first_response, uow_factory, retry_of):
    metadata = _build_metadata(request, options, remote_campaign_id, accepted, first_response, retry_of)
    metadata = metadata.model_copy(update={
        "partial_submission": PartialSubmission(
            failed_chunk=failed_chunk,
            total_chunks=total_chunks,
            error=error.message,
        ),
    })
    primary = request.agents[0]

    with uow_factory() as uow:
        campaign = uow.campaigns.create(ctx.tenant_id, {
            "name": request.name,
            "phone_number_id": primary.phone_number_id,
            "agent_id": primary.agent_id,
            "status": "processing",
            "total_recipients": len(accepted),
            "processed_recipients": 0,
            "metadata": metadata,
        })

    return campaign


def submit_priority_call(ctx: TenantContext, request: PrioritySubmit, client) -> dict:
    """Immediate one-off call. Nothing is mirrored."""
    recipients = normalize_recipients([request.recipient])
    if not recipients:
        raise NoValidRecipients()

    agents = validate_agents([request.agent])
    options = validate_dispatch_options(request.options)
    remote_campaign_id = new_correlation_id()

    payload = build_submit_payload(
        ctx.tenant_id,
        agents,
        remote_campaign_id,
        recipients,
        "Priority call",
        options,
        phone_provider=request.phone_provider,
        priority=True,
    )
    response = client.submit(ctx.tenant_id, payload)

    logger.info("Priority call to %s enqueued (%s)", mask_phone(recipients[0].phone_number), remote_campaign_id)

    return {"enqueued": response["enqueued"], "remote_campaign_id": remote_campaign_id}
