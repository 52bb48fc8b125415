"""Inbound message filter — raw transport messages to canonical envelopes."""

from typing import List, Optional

from commandbot.domain.models import InboundMessage
from commandbot.ports.inbound import MessagesUpsert, RawMessage

LIVE_DELIVERY = "notify"


def extract_text(raw: RawMessage) -> str:
    """First populated field among plain body, extended body, image caption."""
    return raw.conversation or raw.extended_text or raw.image_caption or ""


def filter_message(raw: RawMessage, upsert_type: str = LIVE_DELIVERY) -> Optional[InboundMessage]:
    """Return the canonical message, or None if it must never reach the dispatcher."""
    if upsert_type != LIVE_DELIVERY:
        return None
    if not raw.has_payload or raw.from_me:
        return None
    return InboundMessage(sender=raw.remote_id, text=extract_text(raw), from_me=False)


def filter_upsert(upsert: MessagesUpsert) -> List[InboundMessage]:
    """Filter a batch, preserving arrival order."""
    accepted = []
    for raw in upsert.messages:
        msg = filter_message(raw, upsert.type)
        if msg is not None:
            accepted.append(msg)
    return accepted
