import json
import sys

from asvgraph import SampleStore, SampleGraphService, Sample
from asvgraph.queries import GraphQuery, NeighborQuery, ProximityQuery

# Load a samples.json export: a list of {sample_id, env_feature, latitude, longitude, description, top5_asv}
with open(sys.argv[1] if len(sys.argv) > 1 else "samples.json") as f:
    records = json.load(f)

store = SampleStore(database="samples.duckdb")
store.bulk_insert_samples([
    Sample(
        id=r["sample_id"],
        latitude=r.get("latitude"),
        longitude=r.get("longitude"),
        features=r.get("top5_asv") or [],
        category=r.get("env_feature"),
        description=r.get("description"),
        metadata={"env_biome": r.get("env_biome")},
    )
    for r in records
])
service = SampleGraphService(store)

profile = service.nearby(ProximityQuery(lat=40.7831, lon=-73.9712, radius=10))
for feature in profile.features[:10]:
    print(f"{feature.feature[:12]}... {feature.total_count} ({feature.percentage:.1f}%) {feature.category_counts}")

graph = service.similarity_graph(GraphQuery(minCount=2, limitPairs=1000))
print(f"{len(graph.nodes)} samples linked by {len(graph.edges)} edges")

if graph.edges:
    focal = graph.edges[0].source
    for share in service.shared_features(NeighborQuery(sampleId=focal, neighbors=graph.neighbors(focal))):
        print(focal, "->", share.neighbor, share.shared_count)

store.close()
