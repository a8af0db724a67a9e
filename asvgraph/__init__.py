from asvgraph.database import SampleStore
from asvgraph.errors import InvalidInputError, BackingStoreError, UnknownSampleError
from asvgraph.models import (
    Sample, GeoPoint, FeatureCount, SimilarityEdge, GraphNode, SimilarityGraph, NeighborShare, TaxonomyRecord,
    ProximityResult,
)
from asvgraph.proximity import haversine_km, find_nearby, aggregate_features
from asvgraph.similarity import build_graph, resolve_shared
from asvgraph.service import SampleGraphService
from asvgraph.taxonomy import resolve_taxonomy

__all__ = [
    "SampleStore", "SampleGraphService",
    "InvalidInputError", "BackingStoreError", "UnknownSampleError",
    "Sample", "GeoPoint", "FeatureCount", "SimilarityEdge", "GraphNode", "SimilarityGraph", "NeighborShare",
    "TaxonomyRecord", "ProximityResult",
    "haversine_km", "find_nearby", "aggregate_features", "build_graph", "resolve_shared", "resolve_taxonomy",
]
