from fastapi import APIRouter, Depends, Query
from voicebatch.models.schemas import CampaignSubmit, PrioritySubmit, RetryRequest, TenantContext
from voicebatch.repositories.campaign_repo import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from voicebatch.services import campaign_service
from voicebatch.services.dispatch_client import DispatchClient, get_dispatch_client
from voicebatch.utils.auth import verify_token

router = APIRouter(prefix="/api/campaigns", tags=["Campaigns"])


def ok(data):
    return {"success": True, "data": data}


@router.post("")
def submit_campaign(
    campaign: CampaignSubmit,
    ctx: TenantContext = Depends(verify_token),
    client: DispatchClient = Depends(get_dispatch_client),
):
    return ok(campaign_service.submit_campaign(ctx, campaign, client))


@router.post("/priority")
def submit_priority_call(
    call: PrioritySubmit,
    ctx: TenantContext = Depends(verify_token),
    client: DispatchClient = Depends(get_dispatch_client),
):
    return ok(campaign_service.submit_priority_call(ctx, call, client))


@router.get("")
def list_campaigns(
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    ctx: TenantContext = Depends(verify_token),
):
    return ok(campaign_service.list_campaigns(ctx, limit))


@router.get("/{campaign_id}")
def get_campaign(campaign_id: int, ctx: TenantContext = Depends(verify_token)):
    return ok(campaign_service.get_campaign(ctx, campaign_id))


@router.get("/{campaign_id}/status")
def get_campaign_status(
    campaign_id: int,
    ctx: TenantContext = Depends(verify_token),
    client: DispatchClient = Depends(get_dispatch_client),
):
    return ok(campaign_service.get_campaign_status(ctx, campaign_id, client))


@router.post("/{campaign_id}/cancel")
def cancel_campaign(
    campaign_id: int,
    ctx: TenantContext = Depends(verify_token),
    client: DispatchClient = Depends(get_dispatch_client),
):
    return ok(campaign_service.cancel_campaign(ctx, campaign_id, client))


@router.post("/{campaign_id}/retry")
def retry_campaign(
    campaign_id: int,
    body: RetryRequest = None,
    ctx: TenantContext = Depends(verify_token),
    client: DispatchClient = Depends(get_dispatch_client),
):
    name = body.name if body else None
    return ok(campaign_service.retry_campaign(ctx, campaign_id, client, name=name))
