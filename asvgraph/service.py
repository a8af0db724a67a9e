import logging
from typing import List

from asvgraph.database import SampleStore
from asvgraph.models import Sample, SimilarityGraph, NeighborShare, TaxonomyRecord, ProximityResult
from asvgraph.proximity import find_nearby, aggregate_features, count_considered, with_percentages
from asvgraph.queries import ProximityQuery, GraphQuery, NeighborQuery, TaxonomyQuery, SamplesQuery
from asvgraph.similarity import build_graph, resolve_shared
from asvgraph.taxonomy import resolve_taxonomy, search_taxonomy

logger = logging.getLogger(__name__)


class SampleGraphService:
    """Query operations over an injected ``SampleStore``.

    The service holds no state besides the store; the caller owns the store's
    lifetime.
    """

    def __init__(self, store: SampleStore):
        self.store = store

    def sample(self, sample_id: str) -> Sample:
        return self.store.get_sample(sample_id)

    def samples(self, query: SamplesQuery) -> List[Sample]:
        return self.store.samples(limit=query.limit)

    def nearby(self, query: ProximityQuery) -> ProximityResult:
        nearby = find_nearby(query.point, query.radius_km, self.store.located_samples())
        considered = count_considered(nearby, query.category)
        features = with_percentages(aggregate_features(nearby, query.category), considered)
        logger.info(f"{len(nearby)} samples near ({query.latitude}, {query.longitude}) within {query.radius_km} km, "
                    f"{len(features)} distinct features")
        return ProximityResult(samples=nearby, features=features, samples_considered=considered)

    def similarity_graph(self, query: GraphQuery) -> SimilarityGraph:
        samples = self.store.samples(category=query.category)
        return build_graph(samples, min_shared_count=query.min_shared_count, max_edges=query.max_edges,
                           category=query.category)

    def shared_features(self, query: NeighborQuery) -> List[NeighborShare]:
        focal = self.store.get_sample(query.focal_id)
        if not query.neighbor_ids:
            return []
        shared = resolve_shared(focal, query.neighbor_ids, self.store.get_samples(query.neighbor_ids))
        return [NeighborShare(neighbor=neighbor, shared_features=features) for neighbor, features in shared.items()]

    def taxonomy(self, query: TaxonomyQuery) -> List[TaxonomyRecord]:
        resolved = resolve_taxonomy(self.store, query.feature_ids)
        return [record for record in resolved.values() if record is not None]

    def search_taxonomy(self, text: str) -> List[TaxonomyRecord]:
        return search_taxonomy(self.store, text)
