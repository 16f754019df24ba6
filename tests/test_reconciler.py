import pytest

from conftest import remote
from voicebatch.core.exceptions import NotFoundError, NotRemoteManaged, RemoteServiceError
from voicebatch.db.database import get_db
from voicebatch.db.unit_of_work import UnitOfWork
from voicebatch.services.reconciler import progress_percentage, reconcile_campaign


def _row(campaign_id):
    with get_db() as conn:
        return dict(conn.execute("SELECT * FROM campaigns WHERE id = ?", (campaign_id,)).fetchone())


def test_remote_values_overwrite_mirror(ctx, dispatch, make_campaign):
    campaign = make_campaign(total=3, processed=0)
    dispatch.remote_status = remote("in_progress", 5, 2, [
        ("+1", "completed"), ("+2", "failed"), ("+3", "in_progress"), ("+4", "pending"), ("+5", "pending"),
    ])

    result = reconcile_campaign(ctx, campaign.id, dispatch)

    assert result.applied
    assert result.campaign.status == "processing"
    assert result.campaign.total_recipients == 5
    assert result.campaign.processed_recipients == 2
    assert result.breakdown == {"completed": 1, "failed": 1, "in_progress": 1, "pending": 2}
    assert result.progress_pct == 40
    assert not result.terminal
    assert dispatch.status_calls == [("tenant-a", "cmp_remote")]


def test_terminal_remote_status(ctx, dispatch, make_campaign):
    campaign = make_campaign()
    dispatch.remote_status = remote("completed", 3, 3)

    result = reconcile_campaign(ctx, campaign.id, dispatch)

    assert result.campaign.status == "completed"
    assert result.terminal
    assert result.progress_pct == 100


def test_reconcile_twice_is_idempotent(ctx, dispatch, make_campaign):
    campaign = make_campaign()
    dispatch.remote_status = remote("in_progress", 3, 1, [("+1", "completed")])

    reconcile_campaign(ctx, campaign.id, dispatch)
    first = _row(campaign.id)
    reconcile_campaign(ctx, campaign.id, dispatch)
    second = _row(campaign.id)

    assert first == second


def test_processed_is_clamped_to_total(ctx, dispatch, make_campaign):
    campaign = make_campaign()
    dispatch.remote_status = remote("in_progress", 3, 7)

    result = reconcile_campaign(ctx, campaign.id, dispatch)

    assert result.campaign.processed_recipients == 3


def test_missing_remote_total_keeps_local_total(ctx, dispatch, make_campaign):
    campaign = make_campaign(total=9)
    dispatch.remote_status = remote("in_progress", None, 4)

    result = reconcile_campaign(ctx, campaign.id, dispatch)

    assert result.campaign.total_recipients == 9
    assert result.campaign.processed_recipients == 4


def test_not_remote_managed(ctx, dispatch, make_campaign):
    campaign = make_campaign(remote_id=None)

    with pytest.raises(NotRemoteManaged):
        reconcile_campaign(ctx, campaign.id, dispatch)

    assert dispatch.status_calls == []


def test_other_tenant_campaign_is_not_found(other_ctx, dispatch, make_campaign):
    campaign = make_campaign()

    with pytest.raises(NotFoundError):
        reconcile_campaign(other_ctx, campaign.id, dispatch)

    assert dispatch.status_calls == []


def test_remote_failure_leaves_mirror_unchanged(ctx, dispatch, make_campaign):
    campaign = make_campaign()
    before = _row(campaign.id)
    dispatch.status_error = RemoteServiceError("boom", status_code=500)

    with pytest.raises(RemoteServiceError):
        reconcile_campaign(ctx, campaign.id, dispatch)

    assert _row(campaign.id) == before


def test_stale_poll_does_not_overwrite_cancellation(ctx, dispatch, make_campaign):
    campaign = make_campaign()
    dispatch.remote_status = remote("in_progress", 3, 1)

    def cancel_lands_during_fetch():
        with UnitOfWork() as uow:
            uow.campaigns.update(ctx.tenant_id, campaign.id, {"status": "cancelled"})

    dispatch.before_status_return = cancel_lands_during_fetch

    result = reconcile_campaign(ctx, campaign.id, dispatch)

    assert not result.applied
    assert result.campaign.status == "cancelled"
    assert _row(campaign.id)["status"] == "cancelled"


@pytest.mark.parametrize("processed,total,expected", [(0, 0, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100)])
def test_progress_percentage(processed, total, expected):
    assert progress_percentage(processed, total) == expected
