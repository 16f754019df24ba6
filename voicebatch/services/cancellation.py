import logging

from voicebatch.core.exceptions import AlreadyTerminal, NotFoundError, NotRemoteManaged
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import Campaign, TenantContext
from voicebatch.services.dispatch_client import map_remote_status
from voicebatch.services.reconciler import load_campaign

logger = logging.getLogger(__name__)


def cancel_campaign(
    ctx: TenantContext,
    campaign_id: int,
    client,
    uow_factory=UnitOfWork,
) -> Campaign:
    """
    Cancel a running campaign in the dispatch service and mirror the result.

    The dispatch service decides whether the cancel took effect; its
    rejection propagates as ``RemoteServiceError`` and the mirror is left
    as it was. The mirror write bumps the version, which makes any
    reconciliation fetched before it a no-op.
    """
    campaign = load_campaign(ctx, campaign_id, uow_factory)

    remote_id = campaign.remote_campaign_id
    if not remote_id:
        raise NotRemoteManaged(campaign_id)

    if campaign.is_terminal:
        raise AlreadyTerminal(campaign_id, campaign.status)

    response = client.cancel(ctx.tenant_id, remote_id)

    processed = response.get("total_calls_dispatched")
    if processed is None:
        processed = campaign.processed_recipients

    with uow_factory() as uow:
        updated = uow.campaigns.update(ctx.tenant_id, campaign_id, {
            "status": map_remote_status(response.get("status"), default="cancelled"),
            "processed_recipients": min(processed, campaign.total_recipients),
        })

    if updated is None:
        raise NotFoundError("Campaign", str(campaign_id))

    logger.info("Campaign #%d (%s) cancelled: status=%s", campaign_id, remote_id, updated.status)
    return updated
