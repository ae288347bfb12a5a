from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    latitude: float
    longitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


class PlaceSource(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


class VenueRecord(BaseModel):
    """A row of the curated venue registry, as stored."""

    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo: Optional[str] = None
    description: Optional[str] = None
    schedule_open: Optional[str] = None
    schedule_close: Optional[str] = None
    capacity: Optional[int] = None
    genre_tags: List[str] = Field(default_factory=list)
    average_rating: Optional[float] = None
    category_id: Optional[int] = None
    approved: bool = False


class Place(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source: PlaceSource
    is_approximate: bool = False
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    open_now: Optional[bool] = None
    schedule_open: Optional[int] = None
    schedule_close: Optional[int] = None
    capacity: Optional[int] = None
    genre_tags: List[str] = Field(default_factory=list)
    approved: bool = True
    category_id: Optional[int] = None
    description: Optional[str] = None
    photo: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    distance_meters: Optional[float] = None
    distance_label: Optional[str] = None

    @property
    def coordinate(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def is_local(self) -> bool:
        return self.source == PlaceSource.LOCAL


class SortKey(str, Enum):
    NAME = "name"
    RATING = "rating"
    DISTANCE = "distance"


class PlaceFilters(BaseModel):
    category: Optional[int] = None
    search_text: Optional[str] = None
    genres: List[str] = Field(default_factory=list)


class PlacePage(BaseModel):
    items: List[Place]
    page: int
    total_pages: int
    total: int
    page_size: int
    page_numbers: List[Union[int, str]]
    first_index: int
    last_index: int


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReservationForm(BaseModel):
    venue_id: str
    reservation_date: Optional[date] = None
    reservation_time: Optional[str] = None
    party_size: Optional[int] = 1


class ReservationRequest(BaseModel):
    venue_id: str
    user_id: str
    requested_at: datetime
    party_size: int = Field(ge=1)
    tolerance_window: timedelta
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime
    rejection_reason: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body expected by the reservations backend."""
        total_seconds = int(self.tolerance_window.total_seconds())
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return {
            "ID_Usuario": self.user_id,
            "ID_Comercio": self.venue_id,
            "FechaReserva": self.requested_at.isoformat(),
            "TiempoTolerancia": f"{hours:02d}:{minutes:02d}:{seconds:02d}",
            # the backend spells the party size column this way
            "Comenzales": self.party_size,
            "Estado": self.status == ReservationStatus.APPROVED,
            "FechaCreacion": self.created_at.isoformat(),
            "MotivoRechazo": self.rejection_reason,
        }


class ReservationErrorResponse(BaseModel):
    category: Optional[str] = None
    message: str
    errors: Dict[str, str] = Field(default_factory=dict)
