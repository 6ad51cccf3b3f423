"""
CatTrack Backend: Geographic Helpers
=====================================

What:  Coordinate parsing, GeoJSON construction and point-in-polygon tests.
Who:   Used by the cats routes (query parsing), CatService (area query,
       response location) and FileService (EXIF GPS conversion).

Coordinate conventions:
    Corner values are (lat, lng) pairs. GeoJSON positions are written
    [lng, lat], so the helpers here are the only place that swaps the order.

Bounding rectangle:
    rectangle_bounds() normalizes the two corners per axis, so a caller may
    pass the corners in either diagonal order:

        (maxLat,minLng) ●─────────● (maxLat,maxLng)
                        │         │
        (minLat,minLng) ●─────────● (minLat,maxLng)

    The ring starts at (minLat,minLng), walks east, north, west and closes
    back on the first vertex.
"""

import math
from typing import Any, Dict, List, NamedTuple, Sequence, Tuple

from shapely.geometry import Point, shape

from cattrack.exceptions import ValidationError

GeoJSON = Dict[str, Any]

LAT_RANGE = (-90.0, 90.0)
LNG_RANGE = (-180.0, 180.0)


class Corner(NamedTuple):
    """A (latitude, longitude) pair in decimal degrees."""

    lat: float
    lng: float


def _require_finite(corner: Corner, label: str) -> None:
    for axis, value in (("latitude", corner.lat), ("longitude", corner.lng)):
        if not math.isfinite(value):
            raise ValidationError(
                message=f"{label} {axis} must be a finite number",
                field=label,
                context={"value": str(value)},
            )


def parse_corner(raw: str, field: str = "corner") -> Corner:
    """
    Parse a "lat,lng" query value into a Corner.

    Rejects anything that is not exactly two comma-separated finite numbers
    within [-90, 90] latitude and [-180, 180] longitude.

    Raises:
        ValidationError: with `field` set to the query parameter name
    """
    parts = [p.strip() for p in (raw or "").split(",")]
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            message=f"Expected 'lat,lng': {field}",
            field=field,
            context={"value": raw},
        )

    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        raise ValidationError(
            message=f"Coordinates must be numeric: {field}",
            field=field,
            context={"value": raw},
        )

    corner = Corner(lat=lat, lng=lng)
    _require_finite(corner, field)

    if not LAT_RANGE[0] <= lat <= LAT_RANGE[1]:
        raise ValidationError(
            message=f"Latitude must be between -90 and 90: {field}",
            field=field,
            context={"value": raw},
        )
    if not LNG_RANGE[0] <= lng <= LNG_RANGE[1]:
        raise ValidationError(
            message=f"Longitude must be between -180 and 180: {field}",
            field=field,
            context={"value": raw},
        )
    return corner


def rectangle_bounds(top_right: Corner, bottom_left: Corner) -> GeoJSON:
    """
    Build the closed GeoJSON polygon of the rectangle bounded by two corners.

    The labels are advisory: min/max are taken per axis, so swapping the
    arguments produces the identical polygon. Identical corners or a
    zero-width/zero-height box produce a zero-area polygon, not an error.

    Example:
        >>> rectangle_bounds(Corner(40.0, -73.0), Corner(39.0, -74.0))
        {'type': 'Polygon', 'coordinates': [[[-74.0, 39.0], [-73.0, 39.0],
         [-73.0, 40.0], [-74.0, 40.0], [-74.0, 39.0]]]}

    Raises:
        ValidationError: when any coordinate is NaN or infinite
    """
    _require_finite(top_right, "topRight")
    _require_finite(bottom_left, "bottomLeft")

    min_lat = min(top_right.lat, bottom_left.lat)
    max_lat = max(top_right.lat, bottom_left.lat)
    min_lng = min(top_right.lng, bottom_left.lng)
    max_lng = max(top_right.lng, bottom_left.lng)

    ring: List[Tuple[float, float]] = [
        (min_lat, min_lng),
        (min_lat, max_lng),
        (max_lat, max_lng),
        (max_lat, min_lng),
        (min_lat, min_lng),
    ]
    return {
        "type": "Polygon",
        "coordinates": [[[lng, lat] for lat, lng in ring]],
    }


def polygon_vertices(polygon: GeoJSON) -> List[Tuple[float, float]]:
    """Exterior ring of a GeoJSON polygon as (lat, lng) tuples."""
    return [(lat, lng) for lng, lat in polygon["coordinates"][0]]


def point_geometry(lat: float, lng: float) -> GeoJSON:
    """GeoJSON Point for a latitude/longitude pair."""
    return {"type": "Point", "coordinates": [lng, lat]}


def polygon_bounds(polygon: GeoJSON) -> Tuple[float, float, float, float]:
    """
    Bounding box of a GeoJSON polygon as (min_lat, min_lng, max_lat, max_lng).

    Used to build the indexed range prefilter for containment queries.
    """
    min_x, min_y, max_x, max_y = shape(polygon).bounds
    return min_y, min_x, max_y, max_x


def polygon_covers(polygon: GeoJSON, lat: float, lng: float) -> bool:
    """
    True if the point lies inside the polygon or on its boundary.

    Zero-area polygons (collapsed rectangles) are tested against their
    bounds, since GEOS predicates on a collapsed ring are undefined.
    """
    geometry = shape(polygon)
    if geometry.area == 0:
        min_lng, min_lat, max_lng, max_lat = geometry.bounds
        return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng
    return geometry.covers(Point(lng, lat))


def dms_to_decimal(dms: Sequence[float], ref: str) -> float:
    """
    Convert EXIF degrees/minutes/seconds to signed decimal degrees.

    `ref` is the EXIF hemisphere letter: 'S' and 'W' give negative values.
    """
    degrees, minutes, seconds = (float(v) for v in dms)
    value = degrees + minutes / 60.0 + seconds / 3600.0
    if ref.strip().upper() in ("S", "W"):
        value = -value
    return value
