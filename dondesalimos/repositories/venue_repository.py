from typing import Any, List, Mapping, Optional
from databases import Database
from sqlalchemy import Table, MetaData, Column, String, Integer, Numeric, Text, Boolean
from ..config import settings
from ..models.schemas import VenueRecord


def split_genres(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [genre.strip() for genre in raw.split(",") if genre.strip()]


class VenueRepository:
    def __init__(self, database_url: Optional[str] = None):
        self.database = Database(database_url or settings.DATABASE_URL)
        self.metadata = MetaData()
        self.venues = Table(
            "venues",
            self.metadata,
            Column("id", String, primary_key=True),
            Column("name", Text, nullable=False),
            Column("address", Text),
            Column("latitude", Numeric(10, 6)),
            Column("longitude", Numeric(10, 6)),
            Column("photo", Text),
            Column("description", Text),
            Column("schedule_open", String(8)),
            Column("schedule_close", String(8)),
            Column("capacity", Integer),
            Column("genres", Text),
            Column("average_rating", Numeric(2, 1)),
            Column("category_id", Integer),
            Column("approved", Boolean, nullable=False, default=False),
        )

    async def connect(self):
        await self.database.connect()

    async def disconnect(self):
        await self.database.disconnect()

    async def list_venues(self) -> List[VenueRecord]:
        query = self.venues.select()
        rows = await self.database.fetch_all(query)
        return [self._to_record(row._mapping) for row in rows]

    async def get_venue(self, venue_id: str) -> Optional[VenueRecord]:
        query = self.venues.select().where(self.venues.c.id == venue_id)
        row = await self.database.fetch_one(query)
        return self._to_record(row._mapping) if row else None

    def _to_record(self, row: Mapping[str, Any]) -> VenueRecord:
        return VenueRecord(
            id=str(row["id"]),
            name=row["name"] or "",
            address=row["address"],
            latitude=float(row["latitude"]) if row["latitude"] is not None else None,
            longitude=float(row["longitude"]) if row["longitude"] is not None else None,
            photo=row["photo"],
            description=row["description"],
            schedule_open=row["schedule_open"],
            schedule_close=row["schedule_close"],
            capacity=row["capacity"],
            genre_tags=split_genres(row["genres"]),
            average_rating=float(row["average_rating"]) if row["average_rating"] is not None else None,
            category_id=row["category_id"],
            approved=bool(row["approved"]),
        )
