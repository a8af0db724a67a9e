import logging
from collections import Counter, defaultdict
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional

from asvgraph.errors import InvalidInputError
from asvgraph.models import Sample, SimilarityEdge, GraphNode, SimilarityGraph

logger = logging.getLogger(__name__)


def build_feature_index(samples: Iterable[Sample]) -> Dict[str, List[str]]:
    """Inverted index: feature -> ids of the samples carrying it."""
    index = defaultdict(list)
    for sample in samples:
        for feature in sample.features:
            index[feature].append(sample.id)
    return index


def count_shared_pairs(index: Mapping[str, List[str]]) -> Counter:
    """Shared-feature count per unordered sample pair, keyed ``(a, b)`` with ``a < b``."""
    pair_counts = Counter()
    for sample_ids in index.values():
        for a, b in combinations(sorted(set(sample_ids)), 2):
            pair_counts[(a, b)] += 1
    return pair_counts


def build_graph(samples: Iterable[Sample], min_shared_count: int = 1, max_edges: int = 100,
                category: Optional[str] = None) -> SimilarityGraph:
    """Weighted co-occurrence graph between samples.

    Samples are filtered by ``category`` before indexing. Pairs sharing fewer
    than ``min_shared_count`` features are dropped, the rest are ordered by
    shared count descending (then by pair ids) and cut at ``max_edges``. Only
    samples touched by a surviving edge become nodes.
    """
    if min_shared_count < 1:
        raise InvalidInputError(f"minimum shared count must be at least 1, got {min_shared_count}")
    if max_edges < 1:
        raise InvalidInputError(f"edge limit must be at least 1, got {max_edges}")

    participants = {s.id: s for s in samples if not category or s.category == category}
    pair_counts = count_shared_pairs(build_feature_index(participants.values()))

    qualifying = [(pair, count) for pair, count in pair_counts.items() if count >= min_shared_count]
    qualifying.sort(key=lambda item: (-item[1], item[0]))
    edges = [SimilarityEdge(source=a, target=b, shared_count=count) for (a, b), count in qualifying[:max_edges]]

    node_ids = sorted({sample_id for edge in edges for sample_id in edge.pair})
    nodes = [GraphNode(id=sample_id, category=participants[sample_id].category) for sample_id in node_ids]

    logger.info(f"Built similarity graph: {len(participants)} samples, {len(qualifying)} qualifying pairs, "
                f"{len(edges)} edges kept")
    return SimilarityGraph(nodes=nodes, edges=edges)


def resolve_shared(focal: Sample, neighbor_ids: Iterable[str],
                   samples_by_id: Mapping[str, Sample]) -> Dict[str, List[str]]:
    """Literal shared features between ``focal`` and each neighbour.

    Unknown neighbour ids and the focal id itself are left out of the result.
    Shared features keep the focal sample's top-K order.
    """
    shared = {}
    for neighbor_id in neighbor_ids:
        if neighbor_id == focal.id or neighbor_id in shared:
            continue
        neighbor = samples_by_id.get(neighbor_id)
        if neighbor is None:
            logger.debug(f"Skipping unknown neighbour {neighbor_id} of {focal.id}")
            continue
        neighbor_features = set(neighbor.features)
        shared[neighbor_id] = [f for f in focal.features if f in neighbor_features]
    return shared
