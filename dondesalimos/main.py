import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .dependencies import venue_repository
from .routers.places_router import places_router
from .routers.reservations_router import reservations_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await venue_repository.connect()
    logger.info("Venue registry connected")
    try:
        yield
    finally:
        await venue_repository.disconnect()


app = FastAPI(title="Donde Salimos API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(places_router)
app.include_router(reservations_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
