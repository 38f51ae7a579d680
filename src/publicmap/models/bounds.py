"""
Bounding Box Model

West/south/east/north rectangle in decimal degrees used to spatially filter
public coordinates.
"""
import math
from dataclasses import dataclass
from typing import Optional

from src.publicmap.errors import ValidationError


@dataclass(frozen=True)
class Bounds:
    """
    Spatial filter rectangle.

    Edges are inclusive. When west > east the box is taken to cross the
    antimeridian and matches longitudes >= west or <= east.
    """
    west: float
    south: float
    east: float
    north: float

    def __post_init__(self):
        values = (self.west, self.south, self.east, self.north)
        if any(not isinstance(v, (int, float)) or isinstance(v, bool) for v in values):
            raise ValidationError("bounds must be numeric")
        if any(not math.isfinite(v) for v in values):
            raise ValidationError("bounds must be finite numbers")
        if self.south > self.north:
            raise ValidationError("bounds south must not exceed north")

    @property
    def crosses_antimeridian(self) -> bool:
        return self.west > self.east

    @classmethod
    def parse_bbox(cls, bbox: Optional[str]) -> "Bounds":
        """
        Parse a ``west,south,east,north`` query string value.

        Raises:
            ValidationError: bbox missing or malformed
        """
        if not bbox:
            raise ValidationError("bbox is required")
        parts = bbox.split(",")
        if len(parts) != 4:
            raise ValidationError("bbox must be west,south,east,north")
        try:
            west, south, east, north = (float(part) for part in parts)
        except ValueError:
            raise ValidationError("bbox must be west,south,east,north")
        return cls(west=west, south=south, east=east, north=north)

