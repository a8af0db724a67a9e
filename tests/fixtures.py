from asvgraph.database import SampleStore
from asvgraph.models import Sample, TaxonomyRecord

# Three soil/water samples around Seoul, one far away in Busan and one without coordinates.
SAMPLES = [
    Sample(id="A", latitude=37.5665, longitude=126.9780, features=["x1", "x2", "x3"], category="soil"),
    Sample(id="B", latitude=37.5700, longitude=126.9900, features=["x2", "x3", "x4"], category="soil"),
    Sample(id="C", latitude=37.5500, longitude=126.9700, features=["x3", "x5"], category="water"),
    Sample(id="D", latitude=35.1796, longitude=129.0756, features=["x1", "x2", "x3", "x4"], category="water"),
    Sample(id="E", features=["x2", "x3"], category="soil"),
]

TAXONOMY = [
    TaxonomyRecord(feature_id="x2", domain="Bacteria", phylum="Actinobacteriota", genus="Streptomyces"),
    TaxonomyRecord(feature_id="x3", domain="Bacteria", phylum="Proteobacteria", genus="Pseudomonas"),
]


def seeded_store() -> SampleStore:
    store = SampleStore(database=':memory:')
    store.bulk_insert_samples(SAMPLES)
    store.bulk_insert_taxonomy(TAXONOMY)
    return store
