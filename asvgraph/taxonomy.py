"""Taxonomy lookups for ASV features.

Enrichment is a read-only side lookup: it never touches sample data, and a
feature with no classification resolves to ``None`` instead of failing.
"""
import logging
from typing import Dict, Iterable, List, Optional

from asvgraph.database import SampleStore
from asvgraph.models import TaxonomyRecord

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500
DEFAULT_SEARCH_LIMIT = 100


def resolve_taxonomy(store: SampleStore, feature_ids: Iterable[str],
                     batch_size: int = DEFAULT_BATCH_SIZE) -> Dict[str, Optional[TaxonomyRecord]]:
    ids = list(dict.fromkeys(feature_ids))
    resolved = dict.fromkeys(ids)
    for start in range(0, len(ids), batch_size):
        for record in store.taxonomy_for(ids[start:start + batch_size]):
            resolved[record.feature_id] = record
    missing = sum(1 for record in resolved.values() if record is None)
    logger.info(f"Resolved taxonomy for {len(ids) - missing} of {len(ids)} features")
    return resolved


def search_taxonomy(store: SampleStore, text: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[TaxonomyRecord]:
    """Records whose name at any rank contains ``text`` (case-insensitive)."""
    text = text.strip()
    if not text:
        return []
    return store.search_taxonomy(text, limit)
