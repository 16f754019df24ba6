import re
from typing import List, Optional

from voicebatch.core.exceptions import ValidationError
from voicebatch.models.schemas import DispatchOptions, RoutingAgent, TimeWindow

AMD_TIMEOUT_MIN = 1
AMD_TIMEOUT_MAX = 30
CONCURRENCY_MIN = 1
CONCURRENCY_MAX = 100

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _minutes(value: str, field: str) -> int:
    match = _HHMM.match(value or "")
    if not match:
        raise ValidationError(f"timeWindow.{field} must be HH:MM (24h)", {"field": field, "value": value})
    return int(match.group(1)) * 60 + int(match.group(2))


def validate_time_window(window: Optional[TimeWindow]) -> Optional[TimeWindow]:
    """All-or-nothing recurring window; returns it with timezone defaulted."""
    if window is None:
        return None

    parts = [window.start_time, window.end_time, window.days_of_week]
    if all(p is None for p in parts) and window.timezone is None:
        return None

    if any(p is None for p in parts):
        raise ValidationError(
            "timeWindow requires startTime, endTime and daysOfWeek together"
        )

    if _minutes(window.start_time, "startTime") >= _minutes(window.end_time, "endTime"):
        raise ValidationError(
            "timeWindow.startTime must be before endTime",
            {"startTime": window.start_time, "endTime": window.end_time},
        )

    if not window.days_of_week:
        raise ValidationError("timeWindow.daysOfWeek must name at least one day")

    bad_days = [d for d in window.days_of_week if not 1 <= d <= 7]
    if bad_days:
        raise ValidationError(
            "timeWindow.daysOfWeek values must be between 1 (Monday) and 7 (Sunday)",
            {"invalid": bad_days},
        )

    return TimeWindow(
        start_time=window.start_time,
        end_time=window.end_time,
        days_of_week=sorted(set(window.days_of_week)),
        timezone=window.timezone or "UTC",
    )


def validate_dispatch_options(options: DispatchOptions) -> DispatchOptions:
    timeout = options.machine_detection_timeout
    if timeout is not None and not AMD_TIMEOUT_MIN <= timeout <= AMD_TIMEOUT_MAX:
        raise ValidationError(
            f"machineDetectionTimeout must be between {AMD_TIMEOUT_MIN} and {AMD_TIMEOUT_MAX} seconds",
            {"machineDetectionTimeout": timeout},
        )

    concurrency = options.concurrency
    if concurrency is not None and not CONCURRENCY_MIN <= concurrency <= CONCURRENCY_MAX:
        raise ValidationError(
            f"concurrency must be between {CONCURRENCY_MIN} and {CONCURRENCY_MAX}",
            {"concurrency": concurrency},
        )

    return DispatchOptions(
        enable_machine_detection=options.enable_machine_detection,
        machine_detection_timeout=timeout,
        concurrency=concurrency,
        time_window=validate_time_window(options.time_window),
    )


def validate_agents(agents: List[RoutingAgent]) -> List[RoutingAgent]:
    if not agents:
        raise ValidationError("At least one routing agent is required")

    for agent in agents:
        if not agent.agent_id or not agent.phone_number_id:
            raise ValidationError(
                "Each routing agent needs agent_id and phone_number_id",
                {"agent_id": agent.agent_id, "phone_number_id": agent.phone_number_id},
            )

    return agents
