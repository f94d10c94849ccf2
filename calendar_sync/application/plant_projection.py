"""Plant projections for the tasks visible on one day"""
from typing import Iterable

from calendar_sync.application.ports import PlantRepository
from calendar_sync.domain.task import PlantProjection


class PlantProjectionCache:
    """
    One batched lookup per fetch cycle. The map is rebuilt every time and
    never merged with a previous cycle.
    """

    def __init__(self, repository: PlantRepository):
        self.repository = repository

    async def project(self, plant_ids: Iterable[str]) -> dict[str, PlantProjection]:
        ids = frozenset(plant_ids)
        if not ids:
            return {}

        records = await self.repository.query_by_ids(ids)
        return {
            r.id: PlantProjection(id=r.id, name=r.name, image_url=r.image_url)
            for r in records
        }
