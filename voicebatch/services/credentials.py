from voicebatch.config import settings
from voicebatch.core.exceptions import ConfigurationError
from voicebatch.db.unit_of_work import UnitOfWork


def resolve_credential(tenant_id: str, uow_factory=UnitOfWork) -> str:
    """
    Bearer credential for the dispatch service.

    The tenant's own key wins; otherwise the process-wide
    ``DISPATCH_API_KEY``. Having neither is a configuration error.
    """
    with uow_factory() as uow:
        api_key = uow.credentials.get_api_key(tenant_id)

    if api_key:
        return api_key

    if settings.DISPATCH_API_KEY:
        return settings.DISPATCH_API_KEY

    raise ConfigurationError(
        "No dispatch credential configured",
        {"tenant_id": tenant_id},
    )
