"""
RecordStore port — messages, bookings, clients and pets.

The store is the source of truth for idempotency: Message.eid carries a
uniqueness constraint, and a second insert with the same EID raises
DuplicateMessageError instead of creating a row.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from booking_inbox.domain.segments import DateSegment, ServiceType


class RecordStoreError(Exception):
    """The store is unavailable or rejected a write."""


class DuplicateMessageError(RecordStoreError):
    """A message with this EID already exists."""

    def __init__(self, eid: str):
        super().__init__(f"message {eid} already stored")
        self.eid = eid


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    ARCHIVED = "ARCHIVED"


@dataclass
class Message:
    eid: str
    platform: str                 # "sms" or "rover"
    thread_id: str                # sender address or relay handle
    sender: str
    body: str
    received_at: datetime
    direction: str = "in"         # "in" or "out"
    channel: str = "SMS"
    is_read: bool = False
    is_booking_candidate: bool = False
    keywords: list[str] = field(default_factory=list)
    segments: list[DateSegment] = field(default_factory=list)
    classify_label: str | None = None
    classify_score: float | None = None
    extracted_json: str | None = None    # raw oracle payload, audit only
    booking_id: int | None = None
    id: int | None = None


@dataclass
class Booking:
    start_at: datetime
    end_at: datetime
    source: str = "SMS"
    client_name: str | None = None
    client_phone: str | None = None
    rover_relay: str | None = None
    client_email: str | None = None
    dogs_count: int = 1
    service_type: ServiceType = ServiceType.UNSPECIFIED
    status: BookingStatus = BookingStatus.PENDING
    notes: str = ""
    client_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None


@dataclass
class Client:
    phone: str
    name: str | None = None
    trusted: bool = False
    is_private: bool = False
    id: int | None = None


@dataclass
class Pet:
    name: str
    booking_id: int
    client_id: int | None = None
    age_months: int | None = None
    weight_lbs: float | None = None
    id: int | None = None


class RecordStore(ABC):
    """
    Port: persistence for the intake pipeline and the booking actions.

    Datetimes go in and come out timezone-aware.  Every method may raise
    RecordStoreError when the backing store is unavailable.
    """

    # -- messages ------------------------------------------------------------

    @abstractmethod
    async def find_message_by_eid(self, eid: str) -> Message | None:
        ...

    @abstractmethod
    async def create_message(self, message: Message) -> Message:
        """Insert and return the stored copy (with id).  Raises DuplicateMessageError."""
        ...

    @abstractmethod
    async def get_message(self, message_id: int) -> Message | None:
        ...

    @abstractmethod
    async def update_message(self, message_id: int, **patch) -> Message:
        """Patch fields in place; unknown fields raise ValueError."""
        ...

    @abstractmethod
    async def list_inbound_messages(
        self, since: datetime, only_unlinked: bool = False, limit: int = 5000
    ) -> list[Message]:
        """Inbound messages received at or after *since*, oldest first."""
        ...

    @abstractmethod
    async def mark_read_for_bookings(self, booking_ids: list[int]) -> int:
        """Mark unread inbound messages of these bookings read; returns the count."""
        ...

    # -- bookings ------------------------------------------------------------

    @abstractmethod
    async def find_recent_booking_for_sender(
        self,
        sender: str,
        since: datetime,
        near: datetime | None = None,
        window: timedelta | None = None,
        exclude_ids: tuple[int, ...] = (),
    ) -> Booking | None:
        """
        Newest booking whose phone or relay handle equals *sender*, created
        at or after *since*.  With *near* and *window*, only bookings whose
        start lies within *window* of *near* qualify.
        """
        ...

    @abstractmethod
    async def get_booking(self, booking_id: int) -> Booking | None:
        ...

    @abstractmethod
    async def create_booking(self, booking: Booking) -> Booking:
        ...

    @abstractmethod
    async def update_booking(self, booking_id: int, **patch) -> Booking:
        """Patch fields in place and bump updated_at; unknown fields raise ValueError."""
        ...

    @abstractmethod
    async def list_bookings(self, statuses: tuple[BookingStatus, ...] = ()) -> list[Booking]:
        """All bookings (optionally only these statuses), oldest first."""
        ...

    @abstractmethod
    async def dogs_in_window(
        self, start: datetime, end: datetime, exclude_id: int | None = None
    ) -> int:
        """Sum of dogs over CONFIRMED bookings overlapping [start, end]."""
        ...

    @abstractmethod
    async def bookings_ended_before(
        self, before: datetime, statuses: tuple[BookingStatus, ...]
    ) -> list[Booking]:
        ...

    # -- clients & pets ------------------------------------------------------

    @abstractmethod
    async def find_client(self, phone: str) -> Client | None:
        ...

    @abstractmethod
    async def ensure_client(
        self, phone: str, name: str | None = None, mark_private: bool = False
    ) -> Client:
        """Find or create; backfill a missing name, never clear a private flag."""
        ...

    @abstractmethod
    async def set_client_trusted(self, client_id: int, trusted: bool) -> None:
        ...

    @abstractmethod
    async def link_pet_to_booking(
        self,
        booking_id: int,
        name: str,
        client_id: int | None = None,
        age_months: int | None = None,
        weight_lbs: float | None = None,
    ) -> Pet:
        """Attach a pet by name; the same name twice on one booking is one pet."""
        ...

    @abstractmethod
    async def pets_for_booking(self, booking_id: int) -> list[Pet]:
        ...
