"""Extraction of people (name, role, contact) from loosely structured session text.

Sessions describe their people in several overlapping ways: contact-annotated
fields (``Name (email, phone) | Name2 (...)``), plain comma-separated fields,
and prose in the description or title. Each source is handled by a named
extraction strategy; strategies run in priority order and feed a collector
that cleans, filters and deduplicates names. The first occurrence of a name
keeps its role and contact details.

Parsing never raises: text that matches nothing yields no mentions.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Optional, Protocol

from ..models import (
    ContactEntry,
    FreeformPeople,
    PeopleField,
    PersonMention,
    PersonRole,
    Session,
    StructuredPeople,
)
from .contact_resolver import ContactResolver

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 60

# Keyword → role, checked in order; more specific phrases come first
ROLE_KEYWORDS: tuple[tuple[str, PersonRole], ...] = (
    ("hall co-ordinator", PersonRole.HALL_COORDINATOR),
    ("co-ordinator", PersonRole.HALL_COORDINATOR),
    ("coordinator", PersonRole.HALL_COORDINATOR),
    ("co-chair", PersonRole.CO_CHAIR),
    ("cochair", PersonRole.CO_CHAIR),
    ("chairperson", PersonRole.CHAIRPERSON),
    ("chair", PersonRole.CHAIRPERSON),
    ("moderator", PersonRole.MODERATOR),
    ("panellist", PersonRole.PANELIST),
    ("panelist", PersonRole.PANELIST),
    ("convener", PersonRole.CONVENER),
    ("faculty", PersonRole.FACULTY),
    ("chief guest", PersonRole.CHIEF_GUEST),
    ("keynote", PersonRole.KEYNOTE_SPEAKER),
    ("invited", PersonRole.INVITED_SPEAKER),
    ("guest", PersonRole.GUEST_SPEAKER),
    ("speaker", PersonRole.SPEAKER),
)

# Session-structure words that are never people
STOPLIST = frozenset(
    {
        "session",
        "break",
        "lunch",
        "tea",
        "coffee",
        "registration",
        "inauguration",
        "valedictory",
        "panel",
        "discussion",
        "q&a",
        "networking",
    }
)

_MARKDOWN_RE = re.compile(r"[*_#]+")
_SPACE_RE = re.compile(r"\s+")
_LETTER_RUN_RE = re.compile(r"[A-Za-z]{2,}")
_DIGITS_RE = re.compile(r"^\d+$")
_KEY_RE = re.compile(r"[^a-z]")
_ANNOTATED_RE = re.compile(r"^(.+?)\s*\(([^)]+)\)$", re.DOTALL)
_PLAIN_SPLIT_RE = re.compile(r"[,;/\n]+")
_NAME_ROLE_RE = re.compile(r"([A-Z][a-zA-Z\s.]+?)\s*\(([^)]+)\)")
_ROLE_NAME_RE = re.compile(
    r"(?i:\b(co-chair|chair(?:person)?|moderator|speaker|panel+ist|faculty|presenter|convener))"
    r"[\s:\u2013\u2014-]+([A-Z][a-zA-Z\s.]+?)(?=[,;]|$)"
)
_COMMA_SPLIT_RE = re.compile(r"[,;]+")
_HONORIFIC_NAME_RE = re.compile(r"((?i:\b(?:dr|prof)\b\.?)\s+[A-Z][a-zA-Z\s.]+?)(?=[,;()]|$)")
_TITLE_SUFFIX_RE = re.compile(r"(?i:\b(?:by|with|featuring))\s+([A-Z][a-zA-Z\s.]+?)$")
_NAME_WORD_RE = re.compile(r"^(?:[A-Z][a-zA-Z.'-]*|[A-Z]\.)$")


class PeopleCategory(str, Enum):
    """Session fields that list people, with the role they imply."""

    SPEAKERS = "speakers"
    MODERATORS = "moderators"
    CHAIRPERSONS = "chairpersons"


CATEGORY_ROLES: dict[PeopleCategory, PersonRole] = {
    PeopleCategory.SPEAKERS: PersonRole.SPEAKER,
    PeopleCategory.MODERATORS: PersonRole.MODERATOR,
    PeopleCategory.CHAIRPERSONS: PersonRole.CHAIRPERSON,
}


def detect_role(text: Optional[str], default: PersonRole = PersonRole.SPEAKER) -> PersonRole:
    """Infer a role from free text by keyword scan."""
    lower = (text or "").lower()
    for keyword, role in ROLE_KEYWORDS:
        if keyword in lower:
            return role
    return default


def clean_name(raw: Optional[str]) -> Optional[str]:
    """Tidy a candidate name, or return None if it does not look like a person.

    Titles and capitalization are kept; markdown characters and extra
    whitespace are removed.
    """
    if not raw:
        return None
    name = _SPACE_RE.sub(" ", _MARKDOWN_RE.sub("", raw)).strip()

    if len(name) < MIN_NAME_LENGTH or len(name) > MAX_NAME_LENGTH:
        return None
    if not _LETTER_RUN_RE.search(name):
        return None
    if _DIGITS_RE.match(name):
        return None
    if name.lower() in STOPLIST:
        return None
    return name


def dedup_key(name: str) -> str:
    """Key used to spot the same person written differently."""
    return _KEY_RE.sub("", name.lower())


def parse_contact_entry(text: str) -> ContactEntry:
    """Split ``Name (email, phone)`` on its last parenthesis group.

    Tokens containing ``@`` are emails; tokens with a digit are phones.
    """
    stripped = text.strip()
    match = _ANNOTATED_RE.match(stripped)
    if not match:
        return ContactEntry(name=stripped)

    tokens = [t.strip() for t in match.group(2).split(",")]
    email = next((t for t in tokens if "@" in t), None)
    phone = next((t for t in tokens if "@" not in t and any(ch.isdigit() for ch in t)), None)
    return ContactEntry(name=match.group(1).strip(), email=email, phone=phone)


def parse_structured(text: str) -> StructuredPeople:
    """Parse a pipe-separated contact-annotated field."""
    entries = [parse_contact_entry(part) for part in text.split("|") if part.strip()]
    return StructuredPeople(entries=entries)


def people_field(annotated: Optional[str], plain: Optional[str]) -> Optional[PeopleField]:
    """Pick the best source for one category: annotated text wins over plain."""
    if annotated and annotated.strip():
        return parse_structured(annotated)
    if plain and plain.strip():
        return FreeformPeople(text=plain)
    return None


def session_people_fields(session: Session) -> dict[PeopleCategory, Optional[PeopleField]]:
    """Tagged people fields for every category of a session."""
    return {
        PeopleCategory.SPEAKERS: people_field(session.speakers_text, session.speakers),
        PeopleCategory.MODERATORS: people_field(session.moderators_text, session.moderators),
        PeopleCategory.CHAIRPERSONS: people_field(session.chairpersons_text, session.chairpersons),
    }


@dataclass(frozen=True)
class Candidate:
    """A raw person mention produced by a strategy."""

    name: str
    role: PersonRole
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass
class MentionCollector:
    """Accumulates cleaned, deduplicated mentions in insertion order."""

    mentions: list[PersonMention] = field(default_factory=list)
    _seen: set[str] = field(default_factory=set)

    def add(self, candidate: Candidate) -> bool:
        name = clean_name(candidate.name)
        if name is None:
            return False
        key = dedup_key(name)
        if len(key) < 3 or key in self._seen:
            return False
        self._seen.add(key)
        self.mentions.append(
            PersonMention(
                name=name,
                role=candidate.role,
                phone=candidate.phone or None,
                email=candidate.email or None,
            )
        )
        return True

    def __len__(self) -> int:
        return len(self.mentions)


class ExtractionStrategy(Protocol):
    """One named way of finding people in a session.

    ``only_if_empty`` strategies are fallbacks: they run only when every
    earlier strategy produced nothing.
    """

    name: str
    only_if_empty: bool

    def extract(self, session: Session) -> Iterable[Candidate]: ...


@dataclass(frozen=True)
class FacultyFieldStrategy:
    """Dedicated faculty columns, which carry direct contact details."""

    name: str = "faculty_field"
    only_if_empty: bool = False

    def extract(self, session: Session) -> Iterable[Candidate]:
        if not session.faculty_name:
            return []
        return [
            Candidate(
                name=session.faculty_name,
                role=PersonRole.FACULTY,
                phone=session.faculty_phone,
                email=session.faculty_email,
            )
        ]


@dataclass(frozen=True)
class PeopleFieldStrategy:
    """Speakers, moderators or chairpersons fields, dispatched on field kind."""

    category: PeopleCategory
    only_if_empty: bool = False

    @property
    def name(self) -> str:
        return f"{self.category.value}_field"

    def extract(self, session: Session) -> Iterable[Candidate]:
        source = session_people_fields(session)[self.category]
        role = CATEGORY_ROLES[self.category]
        if source is None:
            return []
        if isinstance(source, StructuredPeople):
            return [
                Candidate(name=e.name, role=role, phone=e.phone, email=e.email)
                for e in source.entries
            ]
        return [Candidate(name=part, role=role) for part in _PLAIN_SPLIT_RE.split(source.text)]


@dataclass(frozen=True)
class NameRoleStrategy:
    """``Name (Role)`` anywhere in the description."""

    name: str = "name_role"
    only_if_empty: bool = False

    def extract(self, session: Session) -> Iterable[Candidate]:
        desc = session.description or ""
        return [
            Candidate(name=m.group(1).strip(), role=detect_role(m.group(2)))
            for m in _NAME_ROLE_RE.finditer(desc)
        ]


@dataclass(frozen=True)
class RoleNameStrategy:
    """``Role: Name`` or ``Role – Name`` in the description."""

    name: str = "role_name"
    only_if_empty: bool = False

    def extract(self, session: Session) -> Iterable[Candidate]:
        desc = session.description or ""
        return [
            Candidate(name=m.group(2).strip(), role=detect_role(m.group(1)))
            for m in _ROLE_NAME_RE.finditer(desc)
        ]


def _looks_like_name(text: str) -> bool:
    words = text.split()
    return 0 < len(words) <= 5 and all(_NAME_WORD_RE.match(w) for w in words)


@dataclass(frozen=True)
class CommaListStrategy:
    """Description that is just a list of names, optionally ``Name (Role)``."""

    name: str = "comma_list"
    only_if_empty: bool = True

    def extract(self, session: Session) -> Iterable[Candidate]:
        candidates = []
        for part in _COMMA_SPLIT_RE.split(session.description or ""):
            trimmed = part.strip()
            with_role = _ANNOTATED_RE.match(trimmed)
            if with_role and "(" not in with_role.group(1):
                candidates.append(
                    Candidate(name=with_role.group(1), role=detect_role(with_role.group(2)))
                )
            elif 3 <= len(trimmed) <= 50 and _looks_like_name(trimmed):
                candidates.append(Candidate(name=trimmed, role=PersonRole.SPEAKER))
        return candidates


@dataclass(frozen=True)
class HonorificStrategy:
    """``Dr.``/``Prof.`` prefixed names anywhere in the description."""

    name: str = "honorific"
    only_if_empty: bool = False

    def extract(self, session: Session) -> Iterable[Candidate]:
        desc = session.description or ""
        return [
            Candidate(name=m.group(1).strip(), role=PersonRole.SPEAKER)
            for m in _HONORIFIC_NAME_RE.finditer(desc)
        ]


@dataclass(frozen=True)
class TitleSuffixStrategy:
    """``... by/with/featuring <Name>`` at the end of the session title."""

    name: str = "title_suffix"
    only_if_empty: bool = False

    def extract(self, session: Session) -> Iterable[Candidate]:
        title = (session.session_name or "").strip()
        match = _TITLE_SUFFIX_RE.search(title)
        if not match:
            return []
        return [Candidate(name=match.group(1).strip(), role=detect_role(title))]


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    FacultyFieldStrategy(),
    PeopleFieldStrategy(PeopleCategory.SPEAKERS),
    PeopleFieldStrategy(PeopleCategory.MODERATORS),
    PeopleFieldStrategy(PeopleCategory.CHAIRPERSONS),
    NameRoleStrategy(),
    RoleNameStrategy(),
    CommaListStrategy(),
    HonorificStrategy(),
    TitleSuffixStrategy(),
)


def extract_mentions(
    session: Session,
    strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
) -> list[PersonMention]:
    """Run the strategy cascade over a session without roster lookups."""
    collector = MentionCollector()
    for strategy in strategies:
        if strategy.only_if_empty and len(collector):
            continue
        try:
            for candidate in strategy.extract(session):
                collector.add(candidate)
        except Exception as e:
            logger.debug("Strategy %s failed on session %s: %s", strategy.name, session.id, e)
    return collector.mentions


_TEXT_FIELDS = (
    "session_name",
    "description",
    "speakers",
    "speakers_text",
    "moderators",
    "moderators_text",
    "chairpersons",
    "chairpersons_text",
    "faculty_name",
    "faculty_email",
    "faculty_phone",
)


def _fingerprint(session: Session) -> tuple[Optional[str], ...]:
    return tuple(getattr(session, f) for f in _TEXT_FIELDS)


@lru_cache(maxsize=1024)
def _cached_extract(fingerprint: tuple[Optional[str], ...]) -> tuple[PersonMention, ...]:
    session = Session(id="cached", **dict(zip(_TEXT_FIELDS, fingerprint)))
    return tuple(extract_mentions(session))


def parse_session_people(
    session: Session,
    resolver: Optional[ContactResolver] = None,
) -> list[PersonMention]:
    """People for a session, with phones resolved from the roster where missing.

    Raw extraction is memoized by the session's text fields; roster lookups
    are memoized by the resolver.
    """
    mentions = _cached_extract(_fingerprint(session))
    if resolver is None:
        return [m.model_copy() for m in mentions]

    resolved = []
    for mention in mentions:
        if mention.phone:
            resolved.append(mention.model_copy())
            continue
        match = resolver.match(mention.name)
        resolved.append(
            mention.model_copy(
                update={
                    "phone": match.phone if match else None,
                    "email": mention.email or (match.email if match else None),
                }
            )
        )
    return resolved
