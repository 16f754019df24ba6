from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.models.schemas import (
    Campaign,
    CampaignSubmit,
    CampaignSummary,
    PrioritySubmit,
    TenantContext,
)
from voicebatch.repositories.campaign_repo import DEFAULT_LIST_LIMIT
from voicebatch.services import cancellation, reconciler, retry_planner, submitter


def _summary(campaign: Campaign) -> dict:
    return CampaignSummary(
        id=campaign.id,
        name=campaign.name,
        phone_number_id=campaign.phone_number_id,
        agent_id=campaign.agent_id,
        status=campaign.status,
        total_recipients=campaign.total_recipients,
        processed_recipients=campaign.processed_recipients,
        remote_campaign_id=campaign.remote_campaign_id,
        created_at=campaign.created_at,
        updated_at=campaign.updated_at,
    ).model_dump()


def submit_campaign(ctx: TenantContext, request: CampaignSubmit, client, uow_factory=UnitOfWork):
    result = submitter.submit_campaign(ctx, request, client, uow_factory)
    return {
        "campaign": _summary(result["campaign"]),
        "remote_campaign_id": result["remote_campaign_id"],
        "enqueued": result["enqueued"],
        "chunks": result["chunks"],
    }


def submit_priority_call(ctx: TenantContext, request: PrioritySubmit, client):
    return submitter.submit_priority_call(ctx, request, client)


def list_campaigns(ctx: TenantContext, limit: int = DEFAULT_LIST_LIMIT, uow_factory=UnitOfWork):
    with uow_factory() as uow:
        campaigns = uow.campaigns.list(ctx.tenant_id, limit)
    return {"campaigns": [_summary(c) for c in campaigns]}


def get_campaign(ctx: TenantContext, campaign_id: int, uow_factory=UnitOfWork):
    campaign = reconciler.load_campaign(ctx, campaign_id, uow_factory)
    return {
        "campaign": campaign.model_dump(),
        "progress_pct": reconciler.progress_percentage(
            campaign.processed_recipients, campaign.total_recipients
        ),
    }


def get_campaign_status(ctx: TenantContext, campaign_id: int, client, uow_factory=UnitOfWork):
    result = reconciler.reconcile_campaign(ctx, campaign_id, client, uow_factory)
    return {
        "campaign": _summary(result.campaign),
        "recipients": [r.model_dump() for r in result.recipients],
        "breakdown": result.breakdown,
        "progress_pct": result.progress_pct,
        "terminal": result.terminal,
        "applied": result.applied,
    }


def cancel_campaign(ctx: TenantContext, campaign_id: int, client, uow_factory=UnitOfWork):
    campaign = cancellation.cancel_campaign(ctx, campaign_id, client, uow_factory)
    return {"campaign": _summary(campaign)}


def retry_campaign(ctx: TenantContext, campaign_id: int, client, name=None, uow_factory=UnitOfWork):
    result = retry_planner.retry_campaign(ctx, campaign_id, client, uow_factory, name=name)
    return {
        "campaign": _summary(result["campaign"]),
        "remote_campaign_id": result["remote_campaign_id"],
        "enqueued": result["enqueued"],
        "chunks": result["chunks"],
        "retry_of": result["retry_of"],
        "retried": result["retried"],
    }
