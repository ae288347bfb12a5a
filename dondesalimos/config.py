import os
from dotenv import load_dotenv

load_dotenv()


def _as_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _as_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


class Settings:
    GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dondesalimos.db")
    RESERVATIONS_API_BASE_URL = os.getenv("RESERVATIONS_API_BASE_URL", "http://localhost:7283")
    GEOCODER_PROVIDER = os.getenv("GEOCODER_PROVIDER", "google" if os.getenv("GOOGLE_MAPS_API_KEY") else "nominatim")
    NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "dondesalimos/0.1")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # used when the caller sends no coordinate (Buenos Aires)
    DEFAULT_LATITUDE = _as_float("DEFAULT_LATITUDE", -34.6037)
    DEFAULT_LONGITUDE = _as_float("DEFAULT_LONGITUDE", -58.3816)

    SEARCH_RADIUS_METERS = _as_int("SEARCH_RADIUS_METERS", 10000)
    EXTERNAL_PLACE_TYPE = os.getenv("EXTERNAL_PLACE_TYPE", "bar")
    FALLBACK_OFFSET_DEGREES = _as_float("FALLBACK_OFFSET_DEGREES", 0.01)

    RESERVATION_MAX_DAYS_AHEAD = _as_int("RESERVATION_MAX_DAYS_AHEAD", 30)
    HTTP_TIMEOUT_SECONDS = _as_float("HTTP_TIMEOUT_SECONDS", 30.0)

settings = Settings()
