import math
from typing import Dict, List

from .models import AccessType

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS-84 points, in kilometres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.asin(math.sqrt(min(a, 1.0)))
    return EARTH_RADIUS_KM * c


def haversine_expr(lat: float, lng: float, lat_field: str = "$latitude", lng_field: str = "$longitude") -> Dict:
    """
    Aggregation expression computing the haversine distance (km) from (lat, lng)
    to the document's coordinates. Same formula as `haversine_km`, evaluated by MongoDB.
    """
    half_dlat = {"$divide": [{"$degreesToRadians": {"$subtract": [lat_field, lat]}}, 2]}
    half_dlng = {"$divide": [{"$degreesToRadians": {"$subtract": [lng_field, lng]}}, 2]}

    a = {
        "$add": [
            {"$pow": [{"$sin": half_dlat}, 2]},
            {
                "$multiply": [
                    math.cos(math.radians(lat)),
                    {"$cos": {"$degreesToRadians": lat_field}},
                    {"$pow": [{"$sin": half_dlng}, 2]},
                ]
            },
        ]
    }
    # Rounding can push `a` a hair above 1 for antipodal points
    c = {"$multiply": [2, {"$asin": {"$sqrt": {"$min": [a, 1]}}}]}
    return {"$multiply": [EARTH_RADIUS_KM, c]}


def nearby_pipeline(lat: float, lng: float, radius_km: float, limit: int) -> List[Dict]:
    """Public, active memories within radius_km of (lat, lng), nearest first."""
    return [
        {"$match": {"access_type": AccessType.PUBLIC.value, "is_active": True}},
        {"$addFields": {"distance_km": haversine_expr(lat, lng)}},
        {"$match": {"distance_km": {"$lte": radius_km}}},
        {"$sort": {"distance_km": 1, "_id": 1}},
        {"$limit": limit},
    ]
