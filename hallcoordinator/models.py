"""Data models for the hall coordination engine."""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class SessionTiming(str, Enum):
    """Temporal state of a session relative to the wall clock."""

    PAST = "past"
    CURRENT = "current"
    STARTING_SOON = "starting_soon"
    UPCOMING = "upcoming"
    FUTURE = "future"


class CoordinatorStatus(str, Enum):
    """Operational status a coordinator sets on a session.

    Any status may be set from any other status; the ordering below is only the
    suggested flow (scheduled → speaker_arrived → in_progress → completed).
    """

    SCHEDULED = "scheduled"
    SPEAKER_ARRIVED = "speaker_arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"
    SPEAKER_ABSENT = "speaker_absent"
    CANCELLED = "cancelled"


class ChecklistKey(str, Enum):
    """Readiness checklist flags."""

    SPEAKER_ARRIVED = "speaker_arrived"
    AV_READY = "av_ready"
    MIC_CHECKED = "mic_checked"
    PRESENTATION_LOADED = "presentation_loaded"
    WATER_ARRANGED = "water_arranged"


class PersonRole(str, Enum):
    """Roles a person mention can carry."""

    SPEAKER = "Speaker"
    MODERATOR = "Moderator"
    CHAIRPERSON = "Chairperson"
    CO_CHAIR = "Co-Chair"
    PANELIST = "Panelist"
    FACULTY = "Faculty"
    CONVENER = "Convener"
    HALL_COORDINATOR = "Hall Co-Ordinator"
    GUEST_SPEAKER = "Guest Speaker"
    CHIEF_GUEST = "Chief Guest"
    KEYNOTE_SPEAKER = "Keynote Speaker"
    INVITED_SPEAKER = "Invited Speaker"


class IssuePriority(str, Enum):
    """Issue priority, derived from the issue type."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueStatus(str, Enum):
    """Issue lifecycle; only moves forward."""

    REPORTED = "reported"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class IssueType(str, Enum):
    """Catalog of reportable hall issues."""

    AV_FAILURE = "av_failure"
    MIC_ISSUE = "mic_issue"
    SPEAKER_MISSING = "speaker_missing"
    SPEAKER_LATE = "speaker_late"
    OVERCROWDING = "overcrowding"
    AC_ISSUE = "ac_issue"
    LIGHTING = "lighting"
    SOUND_ISSUE = "sound_issue"
    EMERGENCY = "emergency"
    OTHER = "other"


class Checklist(BaseModel):
    """Five independent readiness flags for a session."""

    speaker_arrived: bool = False
    av_ready: bool = False
    mic_checked: bool = False
    presentation_loaded: bool = False
    water_arranged: bool = False

    model_config = ConfigDict(extra="ignore", frozen=True)

    @classmethod
    def from_mapping(cls, data: Optional[dict[str, object]]) -> Checklist:
        """Build a checklist from a stored map, ignoring unknown keys."""
        if not data:
            return cls()
        return cls(**{k.value: bool(data.get(k.value, False)) for k in ChecklistKey})

    def get(self, key: ChecklistKey) -> bool:
        return bool(getattr(self, key.value))

    def as_map(self) -> dict[str, bool]:
        return {k.value: self.get(k) for k in ChecklistKey}

    @property
    def completed_count(self) -> int:
        return sum(1 for k in ChecklistKey if self.get(k))


class Session(BaseModel):
    """A program session as read from the session store."""

    id: str
    session_name: str = ""
    session_type: Optional[str] = None
    description: Optional[str] = None
    session_date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    hall: Optional[str] = None
    specialty_track: Optional[str] = None
    event_id: Optional[str] = None

    # Plain and contact-annotated people fields
    speakers: Optional[str] = None
    speakers_text: Optional[str] = None
    moderators: Optional[str] = None
    moderators_text: Optional[str] = None
    chairpersons: Optional[str] = None
    chairpersons_text: Optional[str] = None
    faculty_name: Optional[str] = None
    faculty_email: Optional[str] = None
    faculty_phone: Optional[str] = None

    # Coordinator-owned fields
    coordinator_status: Optional[str] = None
    coordinator_checklist: Optional[dict[str, bool]] = None
    coordinator_notes: Optional[str] = None
    audience_count: Optional[int] = Field(default=None, ge=0)
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @field_validator("session_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def status(self) -> CoordinatorStatus:
        """Stored status as an enum; unknown values read as scheduled."""
        try:
            return CoordinatorStatus(self.coordinator_status or CoordinatorStatus.SCHEDULED.value)
        except ValueError:
            return CoordinatorStatus.SCHEDULED

    @property
    def checklist(self) -> Checklist:
        return Checklist.from_mapping(self.coordinator_checklist)

    @field_serializer("session_date", when_used="unless-none")
    def serialize_date(self, value: datetime.date) -> str:
        return value.isoformat()


class RosterEntry(BaseModel):
    """A registrant record used to look up contact details by name."""

    attendee_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    attendee_phone: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    attendee_email: Optional[str] = None
    attendee_designation: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    def name_variants(self) -> list[str]:
        """Names this registrant may be referred to by, most specific first."""
        variants = [self.attendee_name]
        if self.first_name and self.last_name:
            variants.append(f"{self.first_name} {self.last_name}")
        variants.extend([self.first_name, self.last_name])
        return [v for v in variants if v]

    @property
    def best_phone(self) -> Optional[str]:
        """Phone, then alternate phone, then WhatsApp handle."""
        return self.attendee_phone or self.phone or self.whatsapp or None


class ContactEntry(BaseModel):
    """One person from a contact-annotated field: ``Name (email, phone)``."""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class StructuredPeople(BaseModel):
    """People field whose entries carry explicit contact details."""

    kind: Literal["structured"] = "structured"
    entries: list[ContactEntry] = Field(default_factory=list)


class FreeformPeople(BaseModel):
    """People field holding bare names in free text."""

    kind: Literal["freeform"] = "freeform"
    text: str


PeopleField = Annotated[Union[StructuredPeople, FreeformPeople], Field(discriminator="kind")]


class PersonMention(BaseModel):
    """A person referenced by a session, with role and best-known contact."""

    name: str
    role: PersonRole = PersonRole.SPEAKER
    phone: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class EventSummary(BaseModel):
    """Parent event metadata shown in the dashboard header."""

    id: str
    name: str
    short_name: Optional[str] = None
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    venue_name: Optional[str] = None
    city: Optional[str] = None
    logo_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def display_name(self) -> str:
        return self.short_name or self.name


class CoordinatorInfo(BaseModel):
    """Coordinator context resolved from an access token; immutable once read."""

    id: str
    event_id: str
    hall_name: str
    coordinator_name: str
    coordinator_email: Optional[str] = None
    coordinator_phone: Optional[str] = None
    portal_token: str
    event: Optional[EventSummary] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class Issue(BaseModel):
    """A hall issue reported by the coordinator."""

    id: str
    type: IssueType
    description: str = ""
    priority: IssuePriority
    status: IssueStatus = IssueStatus.REPORTED
    session_id: Optional[str] = None
    created_at: datetime.datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime.datetime) -> str:
        return value.isoformat()
