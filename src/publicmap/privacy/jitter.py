"""
Privacy Jitter Engine

Perturbs a precise coordinate into a public-safe coordinate sampled uniformly
within a disk whose radius is the point's accuracy in meters.
"""
import math
import random
from typing import Optional, Protocol, Tuple

METERS_PER_DEGREE = 111320.0


class RandomSource(Protocol):
    """Anything exposing ``random() -> float`` in [0, 1), e.g. random.Random."""

    def random(self) -> float:
        ...


def jitter_point(
    lat: float,
    lng: float,
    accuracy_m: Optional[float],
    rng: RandomSource
) -> Tuple[float, float]:
    """
    Sample a point uniformly within ``accuracy_m`` meters of (lat, lng).

    Args:
        lat: Precise latitude (decimal degrees)
        lng: Precise longitude (decimal degrees)
        accuracy_m: Accuracy radius in meters; None or <= 0 means exact
        rng: Injected random source; two values are drawn per call

    Returns:
        (public_lat, public_lng)

    Formula:
        r = accuracy / 111320 (degrees)
        w = r * sqrt(u), t = 2*pi*v
        dlat = w * cos(t)
        dlng = w * sin(t) / cos(lat)
    """
    if not accuracy_m or accuracy_m <= 0:
        return lat, lng

    radius = accuracy_m / METERS_PER_DEGREE
    u = rng.random()
    v = rng.random()
    # sqrt(u) gives uniform density over the disk area
    w = radius * math.sqrt(u)
    t = 2 * math.pi * v
    delta_lat = w * math.cos(t)
    delta_lng = w * math.sin(t) / math.cos(math.radians(lat))
    return lat + delta_lat, lng + delta_lng


class JitterEngine:
    """
    Computes the stored public coordinate for a point write.

    Exact points pass through untouched; approximate points are jittered
    with the injected random source.
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        self.rng = rng or random.SystemRandom()

    def public_coordinate(
        self,
        lat: float,
        lng: float,
        precision: str,
        accuracy_m: Optional[float] = None
    ) -> Tuple[float, float]:
        if precision == "exact":
            return lat, lng
        return jitter_point(lat, lng, accuracy_m, self.rng)
