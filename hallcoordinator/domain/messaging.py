"""Messaging handoff: phone and WhatsApp deep links and pre-filled texts.

Nothing here sends a message. The dashboard only formats the content and hands
a link (or clipboard text) to the coordinator's device.
"""

from __future__ import annotations

import datetime
import json
import logging
import re
from typing import Any, Iterable, Optional
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..models import Issue, PersonMention
from .issues import issue_info

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me/"

_NON_DIGIT_RE = re.compile(r"\D")
_TEL_STRIP_RE = re.compile(r"[^\d+]")


class ControlContact(BaseModel):
    """A control-room desk the coordinator can call."""

    name: str
    phone: str
    role: str = ""


class ContactCard(BaseModel):
    """A person with ready-to-use handoff links."""

    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None
    tel_link: Optional[str] = None
    whatsapp_link: Optional[str] = None


DEFAULT_CONTROL_CONTACTS: tuple[ControlContact, ...] = (
    ControlContact(name="Control Room", phone="+919876543210", role="Main Hub"),
    ControlContact(name="Tech Support", phone="+919876543211", role="AV/IT"),
    ControlContact(name="Program Head", phone="+919876543212", role="Schedule"),
)

_contacts_adapter = TypeAdapter(list[ControlContact])


def phone_digits(phone: Optional[str]) -> str:
    return _NON_DIGIT_RE.sub("", phone or "")


def tel_link(phone: Optional[str]) -> Optional[str]:
    """``tel:`` URI for a phone number, or None when it has no digits."""
    if not phone_digits(phone):
        return None
    return "tel:" + _TEL_STRIP_RE.sub("", phone or "")


def whatsapp_link(phone: Optional[str], text: Optional[str] = None) -> Optional[str]:
    """``https://wa.me/<digits>`` link with an optional pre-filled message."""
    digits = phone_digits(phone)
    if not digits:
        return None
    link = WHATSAPP_BASE_URL + digits
    if text:
        link += "?text=" + quote(text, safe="")
    return link


def speaker_greeting(name: str) -> str:
    return f"Hi {name}"


def _clock_label(moment: datetime.datetime) -> str:
    hour = moment.hour % 12 or 12
    suffix = "PM" if moment.hour >= 12 else "AM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"


def format_issue_message(
    issue: Issue,
    hall_name: str,
    coordinator_name: str,
    session_name: Optional[str],
    moment: datetime.datetime,
) -> str:
    """Pre-formatted WhatsApp text announcing an issue to the control room."""
    info = issue_info(issue.type)
    lines = [
        f"🚨 *{hall_name} - ISSUE*",
        "",
        f"⚠️ *{info.label}*",
        f"📍 Priority: {info.priority.value.upper()}",
        f"👥 Team: {info.team}",
    ]
    if issue.description:
        lines.append(f"📝 {issue.description}")
    lines.extend(
        [
            f"🎤 Session: {session_name or 'N/A'}",
            f"⏰ {_clock_label(moment)}",
            f"👤 {coordinator_name}",
        ]
    )
    return "\n".join(lines)


def parse_control_contacts(raw: Optional[str]) -> list[ControlContact]:
    """Parse a JSON list of ``{name, phone, role}`` objects.

    Falls back to the default desks when the value is missing or invalid.
    """
    if not raw:
        return list(DEFAULT_CONTROL_CONTACTS)
    try:
        contacts = _contacts_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Invalid control contacts configuration; using defaults: %s", e)
        return list(DEFAULT_CONTROL_CONTACTS)
    return contacts or list(DEFAULT_CONTROL_CONTACTS)


def control_contact_cards(contacts: Iterable[ControlContact]) -> list[ContactCard]:
    return [
        ContactCard(
            name=c.name,
            role=c.role,
            phone=c.phone,
            tel_link=tel_link(c.phone),
            whatsapp_link=whatsapp_link(c.phone),
        )
        for c in contacts
    ]


def mention_card(mention: PersonMention, greet: bool = True) -> ContactCard:
    """Contact card for a session person; speakers get a greeting pre-filled."""
    text = speaker_greeting(mention.name) if greet else None
    return ContactCard(
        name=mention.name,
        role=str(mention.role),
        phone=mention.phone,
        email=mention.email,
        tel_link=tel_link(mention.phone),
        whatsapp_link=whatsapp_link(mention.phone, text),
    )


def serialize_cards(cards: Iterable[ContactCard]) -> list[dict[str, Any]]:
    return [card.model_dump() for card in cards]
