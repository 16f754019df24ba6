import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from voicebatch.core.exceptions import NotFoundError, NotRemoteManaged
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import Campaign, RemoteRecipient, TenantContext
from voicebatch.services.dispatch_client import map_remote_status

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    campaign: Campaign
    recipients: List[RemoteRecipient] = field(default_factory=list)
    breakdown: Dict[str, int] = field(default_factory=dict)
    progress_pct: int = 0
    # False when a newer mirror write (e.g. a cancel) beat this fetch
    applied: bool = True

    @property
    def terminal(self) -> bool:
        return self.campaign.is_terminal


def progress_percentage(processed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(processed / total * 100)


def load_campaign(ctx: TenantContext, campaign_id: int, uow_factory=UnitOfWork) -> Campaign:
    with uow_factory() as uow:
        campaign = uow.campaigns.get(ctx.tenant_id, campaign_id)

    if campaign is None:
        raise NotFoundError("Campaign", str(campaign_id))
    return campaign


def reconcile_campaign(
    ctx: TenantContext,
    campaign_id: int,
    client,
    uow_factory=UnitOfWork,
) -> ReconcileResult:
    """
    Overwrite the mirror's progress fields from the dispatch service.

    The remote view is authoritative. The write is a compare-and-set on the
    version read before the fetch, so a result fetched before a concurrent
    cancellation is discarded instead of clobbering it. Safe to call
    repeatedly; an unchanged remote state leaves the row untouched.
    """
    campaign = load_campaign(ctx, campaign_id, uow_factory)
    remote_id = campaign.remote_campaign_id
    if not remote_id:
        raise NotRemoteManaged(campaign_id)

    seen_version = campaign.version
    remote = client.get_status(ctx.tenant_id, remote_id)

    total = remote.total_calls_scheduled
    if total is None:
        total = campaign.total_recipients
    processed = remote.total_calls_dispatched or 0
    if processed > total:
        logger.warning(
            "Campaign #%d: remote dispatched %d exceeds scheduled %d, clamping",
            campaign_id, processed, total,
        )
        processed = total

    fields = {
        "status": map_remote_status(remote.status, default=campaign.status),
        "total_recipients": total,
        "processed_recipients": processed,
    }

    with uow_factory() as uow:
        updated = uow.campaigns.update(
            ctx.tenant_id, campaign_id, fields, expected_version=seen_version
        )
        applied = updated is not None
        if not applied:
            updated = uow.campaigns.get(ctx.tenant_id, campaign_id)

    if updated is None:
        raise NotFoundError("Campaign", str(campaign_id))

    if not applied:
        logger.info(
            "Campaign #%d changed during status fetch (v%d -> v%d); discarding stale result",
            campaign_id, seen_version, updated.version,
        )

    return ReconcileResult(
        campaign=updated,
        recipients=remote.recipients,
        breakdown=dict(Counter(r.status for r in remote.recipients)),
        progress_pct=progress_percentage(updated.processed_recipients, updated.total_recipients),
        applied=applied,
    )
