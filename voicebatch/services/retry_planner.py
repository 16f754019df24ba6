import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from voicebatch.core.exceptions import NothingToRetry, ValidationError
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import (
    Campaign,
    CampaignSubmit,
    DispatchOptions,
    RecipientIn,
    RemoteRecipient,
    RoutingAgent,
    TenantContext,
)
from voicebatch.services.normalizer import normalize_phone
from voicebatch.services.reconciler import reconcile_campaign
from voicebatch.services.submitter import submit_campaign

logger = logging.getLogger(__name__)

RETRY_EXCLUDED_STATUS = "completed"


@dataclass
class RetryPlan:
    campaign_id: int
    recipients: List[RecipientIn]
    # recipients with no entry in the original snapshot
    unmatched: int = 0


def plan_retry(campaign: Campaign, recipients: Iterable[RemoteRecipient]) -> RetryPlan:
    """
    Recipients that still need a call, with their original variables.

    Everything not ``completed`` is retried. Variables come from the
    submission snapshot matched on phone number; a phone missing from the
    snapshot retries with no variables.
    """
    snapshot = {
        normalize_phone(r.phone_number): dict(r.variables or {})
        for r in campaign.metadata.recipients
    }

    planned = []
    seen = set()
    unmatched = 0

    for recipient in recipients:
        if recipient.status == RETRY_EXCLUDED_STATUS:
            continue

        phone = normalize_phone(recipient.phone_number)
        if not phone or phone in seen:
            continue
        seen.add(phone)

        if phone not in snapshot:
            unmatched += 1
        planned.append(RecipientIn(phone_number=phone, variables=snapshot.get(phone, {})))

    if not planned:
        raise NothingToRetry(campaign.id)

    return RetryPlan(campaign_id=campaign.id, recipients=planned, unmatched=unmatched)


def build_retry_request(campaign: Campaign, plan: RetryPlan, name: Optional[str] = None) -> CampaignSubmit:
    metadata = campaign.metadata

    agents = list(metadata.agents)
    if not agents and campaign.agent_id and campaign.phone_number_id:
        agents = [RoutingAgent(
            agent_id=campaign.agent_id,
            phone_number_id=campaign.phone_number_id,
            agent_name=metadata.agent_name,
            phone_number=metadata.phone_number,
        )]

    return CampaignSubmit(
        name=name or f"{campaign.name} (retry)",
        agents=agents,
        recipients=plan.recipients,
        phone_provider=metadata.phone_provider,
        call_type=metadata.call_type,
        options=DispatchOptions(
            enable_machine_detection=bool(metadata.enable_machine_detection),
            machine_detection_timeout=metadata.machine_detection_timeout,
            concurrency=metadata.concurrency,
            time_window=metadata.time_window,
        ),
    )


def retry_campaign(
    ctx: TenantContext,
    campaign_id: int,
    client,
    uow_factory=UnitOfWork,
    name: Optional[str] = None,
) -> dict:
    """Start a brand-new campaign for the unfinished recipients of a terminal one."""
    result = reconcile_campaign(ctx, campaign_id, client, uow_factory)
    campaign = result.campaign

    if not campaign.is_terminal:
        raise ValidationError(
            f"Campaign is still {campaign.status}; only finished campaigns can be retried",
            {"campaign_id": campaign_id, "status": campaign.status},
        )

    plan = plan_retry(campaign, result.recipients)
    if plan.unmatched:
        logger.warning(
            "Campaign #%d retry: %d recipient(s) missing from the original snapshot",
            campaign_id, plan.unmatched,
        )

    submission = submit_campaign(
        ctx,
        build_retry_request(campaign, plan, name),
        client,
        uow_factory,
        retry_of=campaign.id,
    )

    logger.info(
        "Campaign #%d retried as #%d with %d recipient(s)",
        campaign_id, submission["campaign"].id, len(plan.recipients),
    )
    return {**submission, "retry_of": campaign.id, "retried": len(plan.recipients)}
