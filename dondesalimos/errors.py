from typing import Dict, Optional


class DiscoveryError(Exception):
    """Base class for failures raised while discovering places."""


class GeocodingFailure(DiscoveryError):
    def __init__(self, address: str, reason: str = ""):
        self.address = address
        self.reason = reason
        super().__init__(f"Could not geocode '{address}': {reason}" if reason else f"Could not geocode '{address}'")


class ExternalSourceFailure(DiscoveryError):
    pass


class LocalSourceFailure(DiscoveryError):
    """The venue registry could not be read. Fatal for a discovery call."""


class ReservationValidationError(Exception):
    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(", ".join(f"{field}: {message}" for field, message in self.errors.items()))


class RemoteSubmissionError(Exception):
    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        friendly_message: Optional[str] = None,
        code: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.message = message
        self.category = category
        self.code = code
        self.status = status
        self.friendly_message = friendly_message or message
        super().__init__(self.friendly_message)


class DiscoverySuperseded(DiscoveryError):
    """A newer discovery for the same caller replaced this one."""
