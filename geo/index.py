#Purpose: Proximity search ("nearest N within R meters") over one location field.
#Builds "eligible by distance" lists for couriers and orders.
#Typical responsibilities:
#Given a point + radius + predicate -> entities ordered by great-circle distance
#Predicate is a store query (e.g. {"status": "pending"}, {"is_available": True})
#Limit caps the result so a busy campus never returns the whole collection
#Output: raw documents; the owning package turns them into domain models.
#The heavy lifting (bounding box + haversine, or $nearSphere) is the engine's job.

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.limits import require_limit, require_radius
from .point import GeoPoint

logger = logging.getLogger(__name__)


class GeoIndex:
    """
    Geospatial view over one GeoJSON Point field of a document collection.

    The collection must provide
    find_near(field, point, max_distance_meters, *, query, sort, limit)
    (see storage.base.DocumentCollection). Creating the GeoIndex also asks the
    engine to build its native index on that field.
    """

    def __init__(self, collection, field: str):
        self.collection = collection
        self.field = field
        collection.create_geo_index(field)

    def nearest(
        self,
        point: GeoPoint,
        radius_meters: float,
        limit: int,
        query: Optional[Dict[str, Any]] = None,
        *,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Entities within radius_meters of point that satisfy query.

        Args:
            point: centre of the search
            radius_meters: great-circle radius; a finite number > 0
            limit: maximum number of entities to return; a whole number >= 1
            query: caller-supplied predicate in the store query dialect
            sort: optional reordering of the in-radius set before the limit is applied

        Returns:
            Documents ordered by ascending distance (or by `sort`).
            An empty list when nothing qualifies.
        """
        radius_meters = require_radius(radius_meters)
        limit = require_limit(limit)

        found = self.collection.find_near(
            self.field,
            point,
            radius_meters,
            query=query,
            sort=sort,
            limit=limit,
        )
        logger.debug(
            f"{self.collection.name}.{self.field}: {len(found)} hits within {radius_meters}m "
            f"of {point.coordinates} (query={query})"
        )
        return found
