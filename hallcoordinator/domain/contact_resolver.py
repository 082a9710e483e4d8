"""Fuzzy name matching of free-text person names against the event roster.

Scoring rules, strongest first (the first rule that holds gives the score):

    100  exact normalized match
     80  one token set is a subset of the other (multi-token queries)
     70  first and last tokens both equal
     60  last token equal and one first token is a prefix of the other
     50  one normalized string contains the other (multi-token queries)
     40  at least two query tokens match a candidate token (equal or substring)
     30  single-token query equals a candidate token
     20  any token pair is a substring match

A single-token query such as a bare surname can only reach 30 through the
token rules, which keeps it at the confidence threshold instead of letting
set containment inflate it to 80.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from ..models import RosterEntry

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 30

_HONORIFIC_RE = re.compile(r"^(?:dr|prof|mrs|mr|ms|shri|smt)(?:\.\s*|\s+)", re.IGNORECASE)
_NON_ALPHA_RE = re.compile(r"[^a-z\s]")
_SPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class NameParts:
    """Normalized form of a name split into tokens."""

    full: str
    parts: tuple[str, ...]

    @property
    def first(self) -> str:
        return self.parts[0] if self.parts else ""

    @property
    def last(self) -> str:
        return self.parts[-1] if self.parts else ""


@dataclass(frozen=True)
class ContactMatch:
    """Best roster entry found for a query name."""

    entry: RosterEntry
    score: int

    @property
    def phone(self) -> Optional[str]:
        return self.entry.best_phone

    @property
    def email(self) -> Optional[str]:
        return self.entry.attendee_email or None


def strip_honorifics(name: str) -> str:
    """Remove leading honorifics, including stacked ones like ``Prof. Dr.``."""
    previous = None
    result = name.strip()
    while previous != result:
        previous = result
        result = _HONORIFIC_RE.sub("", result, count=1).strip()
    return result


def normalize_name(name: Optional[str]) -> str:
    """Lowercase, drop honorifics and non-letters, collapse whitespace."""
    if not name:
        return ""
    text = strip_honorifics(name.lower())
    text = _NON_ALPHA_RE.sub("", _SPACE_RE.sub(" ", text))
    return _SPACE_RE.sub(" ", text).strip()


def name_parts(name: Optional[str]) -> NameParts:
    """Normalize a name and tokenize it; single letters (initials) are dropped."""
    full = normalize_name(name)
    parts = tuple(p for p in full.split(" ") if len(p) > 1)
    return NameParts(full=full, parts=parts)


def _related(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def score_name_parts(query: NameParts, candidate: NameParts) -> int:
    """Score how well a candidate name matches a query (0 when unrelated)."""
    if not query.parts or not candidate.parts:
        return 0

    multi_token = len(query.parts) > 1
    query_set = set(query.parts)
    candidate_set = set(candidate.parts)

    if query.full == candidate.full:
        return 100
    if multi_token and (query_set <= candidate_set or candidate_set <= query_set):
        return 80
    if query.first == candidate.first and query.last == candidate.last:
        return 70
    if query.last == candidate.last and (
        query.first.startswith(candidate.first) or candidate.first.startswith(query.first)
    ):
        return 60
    if multi_token and (candidate.full in query.full or query.full in candidate.full):
        return 50
    if sum(1 for p in query.parts if any(_related(p, c) for c in candidate.parts)) >= 2:
        return 40
    if not multi_token and query.first in candidate_set:
        return 30
    if any(_related(p, c) for p in query.parts for c in candidate.parts):
        return 20
    return 0


def score_names(query: str, candidate: str) -> int:
    """Score two raw names against each other."""
    return score_name_parts(name_parts(query), name_parts(candidate))


def find_best_match(name: str, roster: Iterable[RosterEntry]) -> Optional[ContactMatch]:
    """Return the highest scoring roster entry across all its name variants.

    Ties keep the earlier roster entry. Returns None when nothing scores.
    """
    query = name_parts(name)
    if not query.full or not query.parts:
        return None

    best_entry: Optional[RosterEntry] = None
    best_score = 0
    for entry in roster:
        for variant in entry.name_variants():
            score = score_name_parts(query, name_parts(variant))
            if score > best_score:
                best_score = score
                best_entry = entry
                if score == 100:
                    return ContactMatch(entry=entry, score=score)

    if best_entry is None:
        return None
    return ContactMatch(entry=best_entry, score=best_score)


def resolve_phone(name: str, roster: Iterable[RosterEntry]) -> Optional[str]:
    """Phone for the best roster match, or None below the confidence threshold."""
    match = find_best_match(name, roster)
    if match is None or match.score < MATCH_THRESHOLD:
        return None
    return match.phone


class ContactResolver:
    """Roster-backed resolver with results memoized per roster version.

    Installing a new roster bumps the version and drops cached results, so a
    render loop can call ``resolve`` for every mention on every tick.
    """

    def __init__(self, roster: Sequence[RosterEntry] = ()) -> None:
        self._lock = threading.Lock()
        self._roster: tuple[RosterEntry, ...] = tuple(roster)
        self._version = 0
        self._cache: dict[tuple[str, int], Optional[ContactMatch]] = {}

    @property
    def roster(self) -> tuple[RosterEntry, ...]:
        return self._roster

    @property
    def version(self) -> int:
        return self._version

    def set_roster(self, roster: Sequence[RosterEntry]) -> None:
        """Install a fresh roster snapshot."""
        snapshot = tuple(roster)
        with self._lock:
            if snapshot == self._roster:
                return
            self._roster = snapshot
            self._version += 1
            self._cache.clear()
        logger.debug("Roster updated to version %d (%d entries)", self._version, len(snapshot))

    def match(self, name: str) -> Optional[ContactMatch]:
        """Best match at or above the confidence threshold, else None."""
        key = (normalize_name(name), self._version)
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            roster = self._roster

        match = find_best_match(name, roster)
        if match is not None and match.score < MATCH_THRESHOLD:
            match = None

        with self._lock:
            if key[1] == self._version:
                self._cache[key] = match
        return match

    def resolve(self, name: str) -> Optional[str]:
        """Phone number for a name, or None."""
        match = self.match(name)
        return match.phone if match else None
