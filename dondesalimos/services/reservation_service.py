import logging
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from ..config import settings
from ..errors import RemoteSubmissionError, ReservationValidationError
from ..models.schemas import ReservationForm, ReservationRequest, ReservationStatus, VenueRecord
from ..utils.schedule import format_minutes, is_overnight, parse_time_to_minutes, within_hours
from .reservation_client import ReservationClient

logger = logging.getLogger(__name__)

TOLERANCE_WINDOW = timedelta(minutes=15)


class SubmissionErrorCategory(str, Enum):
    ACCOUNT_DEACTIVATED = "account_deactivated"
    DUPLICATE_PENDING = "duplicate_pending_reservation"
    DUPLICATE_CONFIRMED = "duplicate_confirmed_reservation"
    VENUE_UNAVAILABLE = "venue_unavailable"


FRIENDLY_MESSAGES = {
    SubmissionErrorCategory.ACCOUNT_DEACTIVATED: "Tu cuenta está desactivada. Por favor, contactá al administrador para reactivarla.",
    SubmissionErrorCategory.DUPLICATE_PENDING: "Ya tenés una reserva pendiente de aprobación para este comercio en esta fecha.",
    SubmissionErrorCategory.DUPLICATE_CONFIRMED: "Ya tenés una reserva confirmada para este comercio en esta fecha.",
    SubmissionErrorCategory.VENUE_UNAVAILABLE: "Este comercio no está disponible para reservas en este momento.",
}


def classify_submission_error(message: str, code: Optional[str] = None) -> Tuple[Optional[SubmissionErrorCategory], str]:
    """Map a backend failure to (category, user-facing message).

    A structured code wins when the backend sends one; free text is matched
    by substring, first match wins. Unknown text is passed through as is.
    """
    if code:
        try:
            category = SubmissionErrorCategory(code)
            return category, FRIENDLY_MESSAGES[category]
        except ValueError:
            logger.debug(f"Unknown reservation error code '{code}', falling back to text matching")

    text = (message or "").lower()
    if "inactiv" in text or "desactivad" in text:
        category = SubmissionErrorCategory.ACCOUNT_DEACTIVATED
    elif "pendiente" in text:
        category = SubmissionErrorCategory.DUPLICATE_PENDING
    elif "aprobada" in text:
        category = SubmissionErrorCategory.DUPLICATE_CONFIRMED
    elif "comercio" in text and "disponible" in text:
        category = SubmissionErrorCategory.VENUE_UNAVAILABLE
    else:
        return None, message
    return category, FRIENDLY_MESSAGES[category]


class ReservationValidator:
    def __init__(
        self,
        max_days_ahead: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_days_ahead = max_days_ahead if max_days_ahead is not None else settings.RESERVATION_MAX_DAYS_AHEAD
        self.clock = clock

    @staticmethod
    def business_hours(venue: VenueRecord) -> Optional[Tuple[int, int]]:
        opening = parse_time_to_minutes(venue.schedule_open)
        closing = parse_time_to_minutes(venue.schedule_close)
        if opening is None or closing is None:
            return None
        return opening, closing

    def is_within_business_hours(self, venue: VenueRecord, candidate: str) -> bool:
        hours = self.business_hours(venue)
        if hours is None:
            return True
        minutes = parse_time_to_minutes(candidate)
        if minutes is None:
            return False
        return within_hours(minutes, *hours)

    def hours_message(self, venue: VenueRecord) -> Optional[str]:
        hours = self.business_hours(venue)
        if hours is None:
            return None
        opening, closing = hours
        message = f"Horario: {format_minutes(opening)} a {format_minutes(closing)}"
        if is_overnight(opening, closing):
            message += " (día siguiente)"
        return message

    def validate(self, form: ReservationForm, venue: VenueRecord, now: Optional[datetime] = None) -> Dict[str, str]:
        """Run every field check and return all failures keyed by field."""
        now = now or self.clock()
        errors: Dict[str, str] = {}

        if form.reservation_date is None:
            errors["date"] = "Seleccioná una fecha"
        elif form.reservation_date > now.date() + timedelta(days=self.max_days_ahead):
            errors["date"] = f"Podés reservar hasta {self.max_days_ahead} días por adelantado"

        candidate_minutes = parse_time_to_minutes(form.reservation_time)
        if not form.reservation_time:
            errors["time"] = "Seleccioná una hora"
        elif candidate_minutes is None:
            errors["time"] = "Hora inválida"
        elif not self.is_within_business_hours(venue, form.reservation_time):
            errors["time"] = self.hours_message(venue)

        if form.party_size is None or form.party_size < 1:
            errors["party_size"] = "Mínimo 1 persona"
        elif venue.capacity and venue.capacity > 0 and form.party_size > venue.capacity:
            errors["party_size"] = f"Capacidad máxima: {venue.capacity} personas"

        if form.reservation_date is not None and candidate_minutes is not None:
            requested_at = self.requested_at(form.reservation_date, candidate_minutes)
            if requested_at < now:
                errors["date"] = "No podés reservar en fechas pasadas"

        return errors

    @staticmethod
    def requested_at(day: date, minutes: int) -> datetime:
        return datetime.combine(day, time(hour=minutes // 60, minute=minutes % 60))

    def build_request(self, form: ReservationForm, venue: VenueRecord, user_id: str, now: Optional[datetime] = None) -> ReservationRequest:
        now = now or self.clock()
        errors = self.validate(form, venue, now)
        if errors:
            raise ReservationValidationError(errors)
        return ReservationRequest(
            venue_id=venue.id,
            user_id=user_id,
            requested_at=self.requested_at(form.reservation_date, parse_time_to_minutes(form.reservation_time)),
            party_size=form.party_size,
            tolerance_window=TOLERANCE_WINDOW,
            status=ReservationStatus.PENDING,
            created_at=now,
            rejection_reason=None,
        )


class ReservationState(str, Enum):
    EDITING = "editing"
    VALIDATING = "validating"
    REJECTED_LOCAL = "rejected_local"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    REJECTED_REMOTE = "rejected_remote"


TERMINAL_STATES = {ReservationState.REJECTED_LOCAL, ReservationState.ACCEPTED, ReservationState.REJECTED_REMOTE}


class ReservationAttempt:
    """One reservation submission, from form editing to a terminal state."""

    def __init__(self, validator: ReservationValidator, client: ReservationClient, venue: VenueRecord, user_id: str):
        self.validator = validator
        self.client = client
        self.venue = venue
        self.user_id = user_id
        self.state = ReservationState.EDITING
        self.errors: Dict[str, str] = {}
        self.request: Optional[ReservationRequest] = None
        self.response: Optional[dict] = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    async def submit(self, form: ReservationForm) -> ReservationRequest:
        if self.state != ReservationState.EDITING:
            raise RuntimeError(f"Reservation attempt already {self.state.value}")

        self.state = ReservationState.VALIDATING
        try:
            self.request = self.validator.build_request(form, self.venue, self.user_id)
        except ReservationValidationError as e:
            self.state = ReservationState.REJECTED_LOCAL
            self.errors = e.errors
            logger.info(f"Reservation for venue {self.venue.id} rejected locally: {e.errors}")
            raise

        self.state = ReservationState.SUBMITTING
        try:
            self.response = await self.client.create_reservation(self.request.to_payload())
        except RemoteSubmissionError as e:
            category, friendly = classify_submission_error(e.message, e.code)
            self.state = ReservationState.REJECTED_REMOTE
            self.errors = {"submit": friendly}
            raise RemoteSubmissionError(
                e.message,
                category=category.value if category else None,
                friendly_message=friendly,
                code=e.code,
                status=e.status,
            ) from e

        self.state = ReservationState.ACCEPTED
        return self.request


class ReservationService:
    def __init__(self, validator: ReservationValidator, client: ReservationClient):
        self.validator = validator
        self.client = client

    def start(self, venue: VenueRecord, user_id: str) -> ReservationAttempt:
        return ReservationAttempt(self.validator, self.client, venue, user_id)

    async def reserve(self, form: ReservationForm, venue: VenueRecord, user_id: str) -> ReservationRequest:
        return await self.start(venue, user_id).submit(form)
