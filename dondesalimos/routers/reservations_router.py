import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from ..dependencies import get_reservation_service, get_venue_repository
from ..errors import RemoteSubmissionError, ReservationValidationError
from ..models.schemas import ReservationErrorResponse, ReservationForm, ReservationRequest
from ..repositories.venue_repository import VenueRepository
from ..services.access_control import Capability, has_capability
from ..services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

reservations_router = APIRouter()


def require_reservation_capability(
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
    user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Iniciá sesión para reservar")
    if not has_capability(user_role, Capability.CREATE_RESERVATION):
        raise HTTPException(status_code=403, detail="Tu rol no permite crear reservas")
    return user_id


@reservations_router.post("/reservations", response_model=ReservationRequest, status_code=201)
async def create_reservation(
    form: ReservationForm,
    user_id: str = Depends(require_reservation_capability),
    venue_repository: VenueRepository = Depends(get_venue_repository),
    reservation_service: ReservationService = Depends(get_reservation_service),
):
    try:
        venue = await venue_repository.get_venue(form.venue_id)
    except Exception as e:
        logger.error(f"Venue lookup failed for {form.venue_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="No se pudo consultar el comercio. Intentá nuevamente.") from e

    if venue is None or not venue.approved:
        raise HTTPException(status_code=404, detail="Comercio no encontrado")

    try:
        return await reservation_service.reserve(form, venue, user_id)
    except ReservationValidationError as e:
        body = ReservationErrorResponse(message="Revisá los datos de la reserva", errors=e.errors)
        raise HTTPException(status_code=422, detail=body.model_dump()) from e
    except RemoteSubmissionError as e:
        body = ReservationErrorResponse(category=e.category, message=e.friendly_message, errors={"submit": e.friendly_message})
        status_code = 409 if e.category else 502
        raise HTTPException(status_code=status_code, detail=body.model_dump()) from e
