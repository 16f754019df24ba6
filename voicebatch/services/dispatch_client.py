import logging
from typing import Callable, List, Optional

import requests

from voicebatch.config import settings
from voicebatch.core.exceptions import RemoteServiceError
from voicebatch.models.schemas import (
    DispatchOptions,
    RecipientIn,
    RemoteCampaignStatus,
    RoutingAgent,
)
from voicebatch.services.credentials import resolve_credential

logger = logging.getLogger(__name__)

STATUS_MAPPING = {
    "pending": "pending",
    "in_progress": "processing",
    "processing": "processing",
    "completed": "completed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "failed": "failed",
}


def map_remote_status(status: Optional[str], default: str = "processing") -> str:
    if not status:
        return default
    mapped = STATUS_MAPPING.get(str(status).lower())
    if mapped is None:
        logger.warning("Unknown remote campaign status %r, treating as %s", status, default)
        return default
    return mapped


def recipient_to_wire(recipient: RecipientIn) -> dict:
    return {
        "phone_number": recipient.phone_number,
        "conversation_initiation_client_data": {
            "dynamic_variables": dict(recipient.variables or {}),
        },
    }


def build_submit_payload(
    tenant_id: str,
    agents: List[RoutingAgent],
    campaign_id: str,
    recipients: List[RecipientIn],
    call_name: str,
    options: DispatchOptions,
    scheduled_time_unix: Optional[int] = None,
    phone_provider: Optional[str] = None,
    call_type: Optional[str] = None,
    priority: bool = False,
) -> dict:
    payload = {
        "tenant": tenant_id,
        "agents": [
            {"agentId": a.agent_id, "phoneNumberId": a.phone_number_id}
            for a in agents
        ],
        "campaignId": campaign_id,
        "callName": call_name,
        "concurrency": options.concurrency,
        "enableMachineDetection": options.enable_machine_detection,
        "recipients": [recipient_to_wire(r) for r in recipients],
    }

    # The dispatch service rejects explicit nulls, so optional fields are omitted
    if options.machine_detection_timeout is not None:
        payload["machineDetectionTimeout"] = options.machine_detection_timeout
    if options.time_window is not None:
        window = options.time_window
        payload["timeWindow"] = {
            "startTime": window.start_time,
            "endTime": window.end_time,
            "daysOfWeek": window.days_of_week,
            "timezone": window.timezone,
        }
    if scheduled_time_unix:
        payload["scheduledTimeUnix"] = scheduled_time_unix
    if phone_provider:
        payload["phoneProvider"] = phone_provider
    if call_type:
        payload["callType"] = call_type
    if priority:
        payload["priority"] = True
    if payload["concurrency"] is None:
        del payload["concurrency"]

    return payload


def _first_error_msg(errors) -> Optional[str]:
    """First message of a validator-style ``errors`` list, if it has one."""
    if not isinstance(errors, list) or not errors:
        return None
    first = errors[0]
    if isinstance(first, dict):
        msg = first.get("msg")
        return str(msg) if msg else None
    if isinstance(first, str):
        return first or None
    return None


class DispatchClient:
    """
    Thin HTTP client for the external call-dispatch service.

    Every call resolves the tenant's bearer credential, is bounded by
    ``DISPATCH_TIMEOUT_SECONDS`` and is never retried here.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: int = None,
        credential_resolver: Callable[[str], str] = resolve_credential,
        session: requests.Session = None,
    ):
        self.base_url = (base_url or settings.DISPATCH_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.DISPATCH_TIMEOUT_SECONDS
        self.credential_resolver = credential_resolver
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, tenant_id: str, **kwargs) -> dict:
        headers = {
            "Authorization": f"Bearer {self.credential_resolver(tenant_id)}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/{path}"

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error("Dispatch service unreachable: %s %s: %s", method, path, e)
            raise RemoteServiceError(f"Dispatch service unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = "Dispatch service error"
            if isinstance(body, dict):
                message = body.get("error") or _first_error_msg(body.get("errors")) or message
            logger.warning("Dispatch %s %s -> %s", method, path, response.status_code)
            raise RemoteServiceError(
                message,
                status_code=response.status_code,
                payload=body if isinstance(body, dict) else None,
            )

        if not isinstance(body, dict):
            raise RemoteServiceError("Malformed response from dispatch service")

        # Envelope form: {success, data, error}
        if "success" in body:
            if not body.get("success"):
                raise RemoteServiceError(
                    body.get("error") or "Dispatch service returned an error",
                    payload=body,
                )
            data = body.get("data")
            if not isinstance(data, dict):
                raise RemoteServiceError(
                    "Malformed response from dispatch service",
                    payload=body,
                )
            return data

        return body

    def submit(self, tenant_id: str, payload: dict) -> dict:
        data = self._request("POST", "submit", tenant_id, json=payload)
        try:
            data["enqueued"] = int(data["enqueued"])
        except (KeyError, TypeError, ValueError):
            raise RemoteServiceError("Submit response missing 'enqueued'", payload=data)
        return data

    def get_status(self, tenant_id: str, campaign_id: str) -> RemoteCampaignStatus:
        data = self._request(
            "GET", "status", tenant_id,
            params={"tenant": tenant_id, "campaignId": campaign_id},
        )
        try:
            return RemoteCampaignStatus.model_validate(data)
        except ValueError as e:
            raise RemoteServiceError("Malformed status response", payload=data) from e

    def cancel(self, tenant_id: str, campaign_id: str) -> dict:
        return self._request(
            "POST", "cancel", tenant_id,
            params={"campaignId": campaign_id},
        )


def get_dispatch_client() -> DispatchClient:
    return DispatchClient()
