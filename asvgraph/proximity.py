import logging
from collections import defaultdict
from math import radians, sin, cos, sqrt, atan2
from typing import Iterable, List, Optional

from asvgraph.errors import InvalidInputError
from asvgraph.models import GeoPoint, Sample, FeatureCount, UNKNOWN_CATEGORY

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points given in degrees."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def find_nearby(point: GeoPoint, radius_km: float, samples: Iterable[Sample]) -> List[Sample]:
    """Samples within ``radius_km`` of ``point``.

    Samples without both coordinates are skipped. Input order is kept; callers
    that need distance order must sort themselves.
    """
    if radius_km is None or radius_km <= 0:
        raise InvalidInputError(f"radius must be positive, got {radius_km}")
    nearby = []
    for sample in samples:
        if not sample.has_coordinates:
            continue
        distance = haversine_km(point.latitude, point.longitude, sample.latitude, sample.longitude)
        if distance <= radius_km:
            nearby.append(sample)
    logger.debug(f"{len(nearby)} samples within {radius_km} km of ({point.latitude}, {point.longitude})")
    return nearby


def _matches(sample: Sample, category: Optional[str]) -> bool:
    return not category or sample.category == category


def count_considered(samples: Iterable[Sample], category: Optional[str] = None) -> int:
    return sum(1 for sample in samples if _matches(sample, category))


def aggregate_features(samples: Iterable[Sample], category: Optional[str] = None) -> List[FeatureCount]:
    """Count how many of ``samples`` carry each feature, broken down by category.

    Ordered by total count descending, then feature id ascending.
    """
    totals = defaultdict(int)
    breakdown = defaultdict(lambda: defaultdict(int))
    for sample in samples:
        if not _matches(sample, category):
            continue
        key = sample.category or UNKNOWN_CATEGORY
        for feature in sample.features:
            totals[feature] += 1
            breakdown[feature][key] += 1

    counts = [
        FeatureCount(feature=feature, total_count=total, category_counts=dict(breakdown[feature]))
        for feature, total in totals.items()
    ]
    counts.sort(key=lambda c: (-c.total_count, c.feature))
    return counts


def feature_percentage(total_count: int, considered: int) -> float:
    if considered <= 0:
        return 0.0
    return total_count / considered * 100


def with_percentages(counts: List[FeatureCount], considered: int) -> List[FeatureCount]:
    return [
        c.model_copy(update={"percentage": feature_percentage(c.total_count, considered)})
        for c in counts
    ]
