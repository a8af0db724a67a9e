"""Typed query objects, one per operation.

Parameters arrive as loose strings (HTTP query strings, JSON bodies) and are
parsed once here. Optional parameters that are missing or unusable fall back
to their defaults; a missing or invalid required parameter raises
``InvalidInputError`` before any store access.
"""
import math
from typing import Any, Callable, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from asvgraph.errors import InvalidInputError
from asvgraph.models import GeoPoint

DEFAULT_RADIUS_KM = 10.0
DEFAULT_MIN_SHARED_COUNT = 1
DEFAULT_MAX_EDGES = 100
DEFAULT_SAMPLES_LIMIT = 500


def _number_or_default(value: Any, default, cast: Callable, valid: Callable[[Any], bool]):
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or not valid(number):
        return default
    return number


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _id_list(value: Any):
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    elif not isinstance(value, (list, tuple)):
        # left for the List[str] check to reject
        return value
    return [str(item).strip() for item in value if str(item).strip()]


class Query(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    @classmethod
    def from_params(cls, params: Mapping[str, Any]):
        try:
            return cls.model_validate(dict(params))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'query'}: {err['msg']}" for err in e.errors())
            raise InvalidInputError(problems) from e


class ProximityQuery(Query):
    latitude: float = Field(alias="lat", ge=-90.0, le=90.0)
    longitude: float = Field(alias="lon", ge=-180.0, le=180.0)
    radius_km: float = Field(default=DEFAULT_RADIUS_KM, alias="radius")
    category: Optional[str] = None

    @field_validator('radius_km', mode='before')
    @classmethod
    def _radius(cls, value):
        return _number_or_default(value, DEFAULT_RADIUS_KM, float, lambda r: r > 0)

    @field_validator('category', mode='before')
    @classmethod
    def _category(cls, value):
        return _optional_text(value)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class GraphQuery(Query):
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "biome"))
    min_shared_count: int = Field(default=DEFAULT_MIN_SHARED_COUNT, alias="minCount")
    max_edges: int = Field(default=DEFAULT_MAX_EDGES, alias="limitPairs")

    @field_validator('category', mode='before')
    @classmethod
    def _category(cls, value):
        return _optional_text(value)

    @field_validator('min_shared_count', mode='before')
    @classmethod
    def _min_shared_count(cls, value):
        return _number_or_default(value, DEFAULT_MIN_SHARED_COUNT, int, lambda n: n >= 1)

    @field_validator('max_edges', mode='before')
    @classmethod
    def _max_edges(cls, value):
        return _number_or_default(value, DEFAULT_MAX_EDGES, int, lambda n: n >= 1)


class NeighborQuery(Query):
    focal_id: str = Field(alias="sampleId", min_length=1)
    neighbor_ids: List[str] = Field(default_factory=list, alias="neighbors")

    @field_validator('focal_id', mode='before')
    @classmethod
    def _focal_id(cls, value):
        return _optional_text(value) or ""

    @field_validator('neighbor_ids', mode='before')
    @classmethod
    def _neighbor_ids(cls, value):
        ids = _id_list(value)
        return list(dict.fromkeys(ids)) if isinstance(ids, list) else []


class TaxonomyQuery(Query):
    feature_ids: List[str] = Field(alias="asvSeqs", min_length=1)

    @field_validator('feature_ids', mode='before')
    @classmethod
    def _feature_ids(cls, value):
        return _id_list(value)


class SamplesQuery(Query):
    limit: int = DEFAULT_SAMPLES_LIMIT

    @field_validator('limit', mode='before')
    @classmethod
    def _limit(cls, value):
        return _number_or_default(value, DEFAULT_SAMPLES_LIMIT, int, lambda n: n >= 1)
