from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Dict, Any, Optional

MAX_TOP_FEATURES = 5
UNKNOWN_CATEGORY = "unknown"


class GeoPoint(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    model_config = ConfigDict(extra='forbid')


class Sample(BaseModel):
    id: str = Field(min_length=1, description="The unique identifier for the sample.")
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    features: List[str] = Field(default_factory=list, description="Top-K ASV sequences observed in the sample.")
    category: Optional[str] = Field(default=None, description="Environment/biome tag, ex: soil")
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form sample metadata.")

    model_config = ConfigDict(extra='forbid')

    @field_validator('features')
    @classmethod
    def _unique_top_features(cls, features: List[str]) -> List[str]:
        # top-K membership is a set; keep first-seen order
        unique = list(dict.fromkeys(features))
        if len(unique) > MAX_TOP_FEATURES:
            raise ValueError(f"A sample holds at most {MAX_TOP_FEATURES} features, got {len(unique)}")
        return unique

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class FeatureCount(BaseModel):
    feature: str
    total_count: int
    category_counts: Dict[str, int] = Field(default_factory=dict)
    percentage: Optional[float] = Field(default=None, description="Share of considered samples carrying the feature")


class SimilarityEdge(BaseModel):
    source: str
    target: str
    shared_count: int = Field(ge=1, description="Number of top-K features shared by both samples")

    model_config = ConfigDict(extra='forbid')

    @property
    def pair(self):
        return (self.source, self.target)


class GraphNode(BaseModel):
    id: str
    category: Optional[str] = None


class SimilarityGraph(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[SimilarityEdge] = Field(default_factory=list)

    def weight(self, a: str, b: str) -> int:
        """Shared count between two samples, in either direction; 0 when not linked."""
        for edge in self.edges:
            if (edge.source, edge.target) in ((a, b), (b, a)):
                return edge.shared_count
        return 0

    def neighbors(self, sample_id: str) -> List[str]:
        found = []
        for edge in self.edges:
            if edge.source == sample_id:
                found.append(edge.target)
            elif edge.target == sample_id:
                found.append(edge.source)
        return found


class NeighborShare(BaseModel):
    neighbor: str
    shared_features: List[str] = Field(default_factory=list)

    @property
    def shared_count(self) -> int:
        return len(self.shared_features)


class TaxonomyRecord(BaseModel):
    feature_id: str
    domain: Optional[str] = None
    phylum: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    order: Optional[str] = None
    family: Optional[str] = None
    genus: Optional[str] = None
    species: Optional[str] = None
    confidence: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True)


class ProximityResult(BaseModel):
    samples: List[Sample] = Field(default_factory=list)
    features: List[FeatureCount] = Field(default_factory=list)
    samples_considered: int = 0
