import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config import settings
from ..errors import RemoteSubmissionError

logger = logging.getLogger(__name__)


def extract_error(body: str) -> Dict[str, Optional[str]]:
    """Pull a message (and structured code, if any) out of an error body."""
    message = body.strip() if body else ""
    code = None
    try:
        data = json.loads(body) if body else None
    except ValueError:
        data = None

    if isinstance(data, str):
        message = data
    elif isinstance(data, dict):
        code = data.get("code")
        message = data.get("message") or data.get("error") or data.get("title") or message
    return {"message": message or "Error al crear la reserva", "code": code}


class ReservationClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.RESERVATIONS_API_BASE_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.HTTP_TIMEOUT_SECONDS)

    async def create_reservation(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/api/reservas/crear"
        logger.info(f"Submitting reservation: venue={payload.get('ID_Comercio')}, user={payload.get('ID_Usuario')}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=payload, headers={"Content-Type": "application/json"}) as response:
                    body = await response.text()
                    if 200 <= response.status < 300:
                        logger.info(f"Reservation accepted by backend (status={response.status})")
                        try:
                            return json.loads(body) if body else {}
                        except ValueError:
                            return {"raw": body}
                    error = extract_error(body)
                    logger.warning(f"Reservation rejected by backend (status={response.status}): {error['message']}")
                    raise RemoteSubmissionError(error["message"], code=error["code"], status=response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Reservation backend unreachable: {e}", exc_info=True)
            raise RemoteSubmissionError(str(e) or "Reservation backend unreachable", status=503) from e
