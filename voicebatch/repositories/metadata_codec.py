"""
Encode/decode of the campaign ``metadata`` column.

New rows store ``CampaignMetadata`` as a JSON document. Rows migrated from
the old dashboard may still hold ``<correlation-id>metadata:<json>`` with
camelCase keys; those are read here and nowhere else.
"""
import json
import logging

from pydantic import ValidationError as PydanticValidationError

from voicebatch.models.schemas import CampaignMetadata

logger = logging.getLogger(__name__)

LEGACY_MARKER = "metadata:"

_LEGACY_KEYS = {
    "external_batch_id": "remote_campaign_id",
    "externalBatchId": "remote_campaign_id",
    "campaignId": "remote_campaign_id",
    "scheduled_time": "scheduled_time_unix",
    "scheduledTimeUnix": "scheduled_time_unix",
    "phoneProvider": "phone_provider",
    "agentName": "agent_name",
    "callType": "call_type",
    "enableMachineDetection": "enable_machine_detection",
    "machineDetectionTimeout": "machine_detection_timeout",
    "timeWindow": "time_window",
}

_LEGACY_WINDOW_KEYS = {
    "startTime": "start_time",
    "endTime": "end_time",
    "daysOfWeek": "days_of_week",
}


def encode_metadata(metadata: CampaignMetadata) -> str:
    return metadata.model_dump_json()


def _from_legacy_dict(data: dict) -> dict:
    converted = {}
    for key, value in data.items():
        converted[_LEGACY_KEYS.get(key, key)] = value

    window = converted.get("time_window")
    if isinstance(window, dict):
        converted["time_window"] = {
            _LEGACY_WINDOW_KEYS.get(k, k): v for k, v in window.items()
        }

    recipients = converted.get("recipients")
    if isinstance(recipients, list):
        converted["recipients"] = [
            {
                "phone_number": r.get("phone_number") or r.get("toNumber"),
                "variables": r.get("variables") or {},
            }
            for r in recipients
            if isinstance(r, dict)
        ]

    return converted


def decode_metadata(raw) -> CampaignMetadata:
    if not raw:
        return CampaignMetadata()

    if isinstance(raw, dict):
        return CampaignMetadata.model_validate(_from_legacy_dict(raw))

    text = str(raw).strip()
    if text.startswith("{"):
        try:
            return CampaignMetadata.model_validate(_from_legacy_dict(json.loads(text)))
        except (ValueError, PydanticValidationError) as e:
            logger.warning("Unreadable campaign metadata, ignoring: %s", e)
            return CampaignMetadata()

    if LEGACY_MARKER not in text:
        logger.warning("Campaign metadata in unknown format, ignoring")
        return CampaignMetadata()

    prefix, _, blob = text.partition(LEGACY_MARKER)
    try:
        data = _from_legacy_dict(json.loads(blob))
        metadata = CampaignMetadata.model_validate(data)
    except (ValueError, PydanticValidationError) as e:
        logger.warning("Failed to parse legacy metadata: %s", e)
        metadata = CampaignMetadata()

    correlation_id = prefix.strip().rstrip("|;:, ")
    if not metadata.remote_campaign_id and correlation_id:
        metadata = metadata.model_copy(update={"remote_campaign_id": correlation_id})

    return metadata
