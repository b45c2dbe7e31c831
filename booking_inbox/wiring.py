import os
from dataclasses import dataclass

from booking_inbox.bookings import BookingService
from booking_inbox.communication.factory import create_notifier
from booking_inbox.communication.outbox import NotificationOutbox
from booking_inbox.config import IntakeSettings
from booking_inbox.domain.calendar import CalendarService
from booking_inbox.domain.oracle import ClassificationOracle
from booking_inbox.domain.store import RecordStore
from booking_inbox.pipeline import IntakePipeline, PipelineConfig
from booking_inbox.reparse import ReparseJob


@dataclass
class Services:
    settings: IntakeSettings
    store: RecordStore
    outbox: NotificationOutbox
    bookings: BookingService
    pipeline: IntakePipeline
    reparse: ReparseJob


def create_store(db_path: str | None = None) -> RecordStore:
    from booking_inbox.adapters.sqlite_store import SqliteRecordStore

    db_path = db_path or os.environ.get("DB_PATH", "data/booking_inbox.db")
    if db_path != ":memory:" and os.path.dirname(db_path):
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return SqliteRecordStore(db_path=db_path)


def create_oracle() -> ClassificationOracle | None:
    """Claude when ANTHROPIC_API_KEY is set, none otherwise (ORACLE=simulator forces the simulator)."""
    choice = os.environ.get("ORACLE", "")
    if choice == "simulator":
        from booking_inbox.adapters.simulator_oracle import SimulatorClassificationOracle

        return SimulatorClassificationOracle()
    if choice == "none" or not os.environ.get("ANTHROPIC_API_KEY"):
        return None

    from booking_inbox.adapters.claude_oracle import ClaudeClassificationOracle

    return ClaudeClassificationOracle()


def create_calendar() -> CalendarService | None:
    """Google Calendar when all three OAuth variables are set."""
    client_id = os.environ.get("GOOGLE_CLIENT_ID")
    client_secret = os.environ.get("GOOGLE_CLIENT_SECRET")
    refresh_token = os.environ.get("GOOGLE_REFRESH_TOKEN")
    if not (client_id and client_secret and refresh_token):
        return None

    from booking_inbox.adapters.google_calendar import GoogleCalendar

    return GoogleCalendar(
        client_id=client_id,
        client_secret=client_secret,
        refresh_token=refresh_token,
        calendar_id=os.environ.get("GOOGLE_CALENDAR_ID", "primary"),
    )


def build_services(
    store: RecordStore | None = None,
    calendar: CalendarService | None = None,
    oracle: ClassificationOracle | None = None,
    settings: IntakeSettings | None = None,
) -> Services:
    """Wire collaborators from the environment; anything passed in wins."""
    settings = settings or IntakeSettings.from_env()
    store = store or create_store()
    calendar = calendar or create_calendar()
    oracle = oracle or create_oracle()

    outbox = NotificationOutbox(create_notifier())
    bookings = BookingService(store, calendar=calendar, settings=settings)
    pipeline = IntakePipeline(PipelineConfig(
        store=store,
        outbox=outbox,
        oracle=oracle,
        bookings=bookings,
        settings=settings,
    ))
    return Services(
        settings=settings,
        store=store,
        outbox=outbox,
        bookings=bookings,
        pipeline=pipeline,
        reparse=ReparseJob(pipeline, store, settings),
    )
