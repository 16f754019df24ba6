from typing import Iterable, List, Union

from voicebatch.models.schemas import RecipientIn


def normalize_phone(raw) -> str:
    """Trimmed phone in leading-``+`` form, or ``""`` when nothing is left."""
    if raw is None:
        return ""
    phone = str(raw).strip()
    if not phone:
        return ""
    if not phone.startswith("+"):
        phone = "+" + phone
    return phone


def normalize_recipients(raw: Iterable[Union[RecipientIn, dict]]) -> List[RecipientIn]:
    """
    Canonicalize raw recipient entries before submission.

    Formatting only: a missing ``+`` is prepended and surrounding whitespace
    removed; digits are never touched. Entries without a phone are dropped.
    Variables pass through unchanged and order is preserved.
    """
    normalized = []

    for entry in raw:
        if isinstance(entry, dict):
            raw_phone = entry.get("phone_number")
            variables = entry.get("variables")
        else:
            raw_phone = entry.phone_number
            variables = entry.variables

        phone = normalize_phone(raw_phone)
        if not phone:
            continue

        normalized.append(RecipientIn(phone_number=phone, variables=dict(variables or {})))

    return normalized
