import os
import tempfile
import unittest

import duckdb
from pydantic import ValidationError

from asvgraph.database import SampleStore
from asvgraph.errors import BackingStoreError, UnknownSampleError
from asvgraph.models import Sample, TaxonomyRecord
from asvgraph.taxonomy import resolve_taxonomy, search_taxonomy


class TestSampleModel(unittest.TestCase):

    def test_duplicate_features_collapse(self):
        sample = Sample(id="s1", features=["x1", "x2", "x1", "x3", "x2"])
        self.assertEqual(sample.features, ["x1", "x2", "x3"])

    def test_too_many_features(self):
        with self.assertRaises(ValidationError):
            Sample(id="s1", features=["a", "b", "c", "d", "e", "f"])

    def test_out_of_range_coordinates(self):
        with self.assertRaises(ValidationError):
            Sample(id="s1", latitude=91.0, longitude=0.0)

    def test_has_coordinates(self):
        self.assertTrue(Sample(id="s1", latitude=0.0, longitude=0.0).has_coordinates)
        self.assertFalse(Sample(id="s2", latitude=0.0).has_coordinates)

    def test_extra_fields_forbidden(self):
        with self.assertRaises(ValidationError):
            Sample(id="s1", biome="soil")


class TestSampleStore(unittest.TestCase):

    def setUp(self):
        self.store = SampleStore(database=':memory:')

    def test_insert_and_get_sample(self):
        sample = Sample(id="s1", latitude=37.5, longitude=127.0, features=["ACGT", "TTTT"], category="soil",
                        description="rice paddy", metadata={"depth_cm": 10})
        self.assertEqual(self.store.insert_sample(sample), "s1")
        self.assertEqual(self.store.get_sample("s1"), sample)

    def test_sample_without_features_or_coordinates(self):
        sample = Sample(id="bare")
        self.store.insert_sample(sample)
        stored = self.store.get_sample("bare")
        self.assertEqual(stored.features, [])
        self.assertIsNone(stored.latitude)
        self.assertEqual(stored.metadata, {})

    def test_get_unknown_sample(self):
        with self.assertRaises(UnknownSampleError) as ctx:
            self.store.get_sample("nope")
        self.assertEqual(ctx.exception.sample_id, "nope")

    def test_duplicate_insert_rolls_back(self):
        self.store.insert_sample(Sample(id="s1", features=["a"]))
        with self.assertRaises(BackingStoreError):
            self.store.bulk_insert_samples([Sample(id="s2"), Sample(id="s1")])
        self.assertEqual([s.id for s in self.store.samples()], ["s1"])

    def test_get_samples_skips_unknown(self):
        self.store.bulk_insert_samples([Sample(id="a"), Sample(id="b")])
        found = self.store.get_samples(["a", "zzz", "b", "a"])
        self.assertEqual(sorted(found), ["a", "b"])
        self.assertEqual(self.store.get_samples([]), {})

    def test_get_samples_in_batches(self):
        self.store.bulk_insert_samples([Sample(id=f"s{i}") for i in range(7)])
        ids = [f"s{i}" for i in range(7)] + ["missing"]
        found = self.store.get_samples(ids, batch_size=3)
        self.assertEqual(sorted(found), [f"s{i}" for i in range(7)])

    def test_samples_by_category_and_limit(self):
        self.store.bulk_insert_samples([
            Sample(id="a", category="soil"), Sample(id="b", category="water"), Sample(id="c", category="soil"),
        ])
        self.assertEqual(sorted(s.id for s in self.store.samples(category="soil")), ["a", "c"])
        self.assertEqual(len(self.store.samples(limit=2)), 2)

    def test_located_samples(self):
        self.store.bulk_insert_samples([
            Sample(id="a", latitude=1.0, longitude=2.0),
            Sample(id="b", latitude=1.0),
            Sample(id="c"),
        ])
        self.assertEqual([s.id for s in self.store.located_samples()], ["a"])

    def test_closed_connection_surfaces_store_failure(self):
        self.store.conn.close()
        with self.assertRaises(BackingStoreError):
            self.store.samples()

    def test_read_only_store_rejects_writes(self):
        workdir = tempfile.TemporaryDirectory()
        self.addCleanup(workdir.cleanup)
        path = os.path.join(workdir.name, "samples.duckdb")
        with SampleStore(database=path) as writer:
            writer.insert_sample(Sample(id="s1", features=["x"]))
        with SampleStore(database=path, read_only=True) as reader:
            self.assertEqual(reader.get_sample("s1").features, ["x"])
            with self.assertRaises(BackingStoreError):
                reader.insert_sample(Sample(id="s2"))

    def test_transaction_handling(self):
        try:
            with self.store.transaction():
                self.store.conn.execute("INSERT INTO samples (id) VALUES ('ghost');")
                raise Exception("Force rollback")
        except Exception:
            pass
        result = self.store.conn.execute("SELECT * FROM samples WHERE id = 'ghost'").fetchone()
        self.assertIsNone(result)

    def tearDown(self):
        try:
            self.store.conn.close()
        except duckdb.Error:
            pass


class TestTaxonomy(unittest.TestCase):

    def setUp(self):
        self.store = SampleStore(database=':memory:')
        self.store.bulk_insert_taxonomy([
            TaxonomyRecord(feature_id="ACGT", domain="Bacteria", phylum="Proteobacteria", genus="Pseudomonas",
                           species="Pseudomonas fluorescens", confidence=0.98),
            TaxonomyRecord(feature_id="TTTT", domain="Bacteria", phylum="Firmicutes", **{"class": "Bacilli"}),
        ])

    def test_resolve_known_and_unknown(self):
        resolved = resolve_taxonomy(self.store, ["ACGT", "GGGG"])
        self.assertEqual(resolved["ACGT"].genus, "Pseudomonas")
        self.assertIsNone(resolved["GGGG"])
        self.assertEqual(list(resolved), ["ACGT", "GGGG"])

    def test_resolve_in_batches(self):
        ids = [f"missing{i}" for i in range(1200)] + ["TTTT"]
        resolved = resolve_taxonomy(self.store, ids, batch_size=100)
        self.assertEqual(len(resolved), 1201)
        self.assertEqual(resolved["TTTT"].class_, "Bacilli")

    def test_resolve_nothing(self):
        self.assertEqual(resolve_taxonomy(self.store, []), {})

    def test_serialises_class_rank(self):
        record = resolve_taxonomy(self.store, ["TTTT"])["TTTT"]
        self.assertEqual(record.model_dump(by_alias=True)["class"], "Bacilli")

    def test_search_any_rank(self):
        self.assertEqual([r.feature_id for r in search_taxonomy(self.store, "pseudo")], ["ACGT"])
        self.assertEqual([r.feature_id for r in search_taxonomy(self.store, "bacteria")], ["ACGT", "TTTT"])
        self.assertEqual(search_taxonomy(self.store, "   "), [])

    def tearDown(self):
        self.store.close()


if __name__ == '__main__':
    unittest.main()
