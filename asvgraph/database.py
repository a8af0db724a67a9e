import duckdb
import json
import logging
from contextlib import contextmanager
from asvgraph.errors import BackingStoreError, UnknownSampleError
from asvgraph.models import Sample, TaxonomyRecord
from typing import Dict, Iterable, List, Optional


logger = logging.getLogger(__name__)

IN_MEMORY = ':memory:'

# Upper bound on parameters bound into a single IN (...) list
IN_BATCH_SIZE = 500

SAMPLE_COLUMNS = "id, latitude, longitude, features, category, description, metadata"
TAXONOMY_COLUMNS = "feature_id, domain, phylum, class, \"order\", family, genus, species, confidence"
TAXONOMY_RANKS = ("domain", "phylum", "class", "\"order\"", "family", "genus", "species")


class SampleStore:
    """DuckDB-backed access to samples and ASV taxonomy.

    Every ``duckdb.Error`` is logged and re-raised as ``BackingStoreError``; the
    store never answers with partial data.
    """

    def __init__(self, database=None, read_only=False):
        self.database = database or IN_MEMORY
        self.read_only = read_only and self.database != IN_MEMORY
        try:
            self.conn = duckdb.connect(database=self.database, read_only=self.read_only)
        except duckdb.Error as e:
            logger.error(f"Error opening database {self.database}: {e}")
            raise BackingStoreError(f"Cannot open database {self.database}: {e}") from e

        if not self.read_only:
            # fresh database: bootstrap the schema
            samples_exist = self.conn.execute(
                "SELECT 1 FROM information_schema.tables WHERE table_name = 'samples';").fetchone()
            taxonomy_exist = self.conn.execute(
                "SELECT 1 FROM information_schema.tables WHERE table_name = 'taxonomy';").fetchone()

            if not samples_exist or not taxonomy_exist:
                self._create_tables()

    def _create_tables(self):
        self.conn.execute("""
        CREATE TABLE IF NOT EXISTS samples (
            id TEXT PRIMARY KEY,
            latitude DOUBLE,
            longitude DOUBLE,
            features VARCHAR[],
            category TEXT,
            description TEXT,
            metadata JSON,
            created_at TIMESTAMP DEFAULT current_timestamp
        );
        """)
        self.conn.execute("""
        CREATE TABLE IF NOT EXISTS taxonomy (
            feature_id TEXT PRIMARY KEY,
            domain TEXT,
            phylum TEXT,
            class TEXT,
            "order" TEXT,
            family TEXT,
            genus TEXT,
            species TEXT,
            confidence DOUBLE
        );
        """)
        logger.info("Tables 'samples' and 'taxonomy' created or already exist.")

    @staticmethod
    def _sample_params(sample: Sample):
        return (sample.id, sample.latitude, sample.longitude, sample.features, sample.category,
                sample.description, json.dumps(sample.metadata))

    @staticmethod
    def _row_to_sample(row) -> Sample:
        return Sample(id=row[0], latitude=row[1], longitude=row[2], features=row[3] or [],
                      category=row[4], description=row[5], metadata=json.loads(row[6]) if row[6] else {})

    @staticmethod
    def _row_to_taxonomy(row) -> TaxonomyRecord:
        return TaxonomyRecord(feature_id=row[0], domain=row[1], phylum=row[2], class_=row[3], order=row[4],
                              family=row[5], genus=row[6], species=row[7], confidence=row[8])

    def _fetch(self, query, params=(), what="rows"):
        try:
            return self.conn.execute(query, params).fetchall()
        except duckdb.Error as e:
            logger.error(f"Error fetching {what}: {e}")
            raise BackingStoreError(f"Error fetching {what}: {e}") from e

    def insert_sample(self, sample: Sample) -> str:
        try:
            with self.transaction():
                self.conn.execute(
                    f"INSERT INTO samples ({SAMPLE_COLUMNS}) VALUES (?, ?, ?, CAST(? AS VARCHAR[]), ?, ?, ?);",
                    self._sample_params(sample))
            logger.info(f"Sample inserted with ID: {sample.id}")
            return sample.id
        except duckdb.Error as e:
            logger.error(f"Error during insert sample: {e}")
            raise BackingStoreError(f"Error inserting sample {sample.id}: {e}") from e

    def bulk_insert_samples(self, samples: List[Sample]) -> List[Sample]:
        if not samples:
            return []
        try:
            with self.transaction():
                self.conn.executemany(
                    f"INSERT INTO samples ({SAMPLE_COLUMNS}) VALUES (?, ?, ?, CAST(? AS VARCHAR[]), ?, ?, ?);",
                    [self._sample_params(sample) for sample in samples])
            logger.info(f"Inserted {len(samples)} samples.")
            return samples
        except duckdb.Error as e:
            logger.error(f"Error during bulk insert samples: {e}")
            raise BackingStoreError(f"Error inserting samples: {e}") from e

    def bulk_insert_taxonomy(self, records: List[TaxonomyRecord]):
        if not records:
            return
        try:
            with self.transaction():
                self.conn.executemany(
                    f"INSERT INTO taxonomy ({TAXONOMY_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
                    [(r.feature_id, r.domain, r.phylum, r.class_, r.order, r.family, r.genus, r.species,
                      r.confidence) for r in records])
            logger.info(f"Inserted {len(records)} taxonomy records.")
        except duckdb.Error as e:
            logger.error(f"Error during bulk insert taxonomy: {e}")
            raise BackingStoreError(f"Error inserting taxonomy: {e}") from e

    def get_sample(self, sample_id: str) -> Sample:
        rows = self._fetch(f"SELECT {SAMPLE_COLUMNS} FROM samples WHERE id = ?;", (sample_id,), "sample")
        if not rows:
            raise UnknownSampleError(sample_id)
        return self._row_to_sample(rows[0])

    def get_samples(self, sample_ids: Iterable[str], batch_size: int = IN_BATCH_SIZE) -> Dict[str, Sample]:
        """Samples keyed by id; ids with no stored sample are absent from the result."""
        ids = list(dict.fromkeys(sample_ids))
        found = {}
        for start in range(0, len(ids), batch_size):
            batch = ids[start:start + batch_size]
            placeholders = ", ".join("?" for _ in batch)
            rows = self._fetch(f"SELECT {SAMPLE_COLUMNS} FROM samples WHERE id IN ({placeholders});", batch, "samples")
            found.update((row[0], self._row_to_sample(row)) for row in rows)
        return found

    def samples(self, category: Optional[str] = None, limit: Optional[int] = None) -> List[Sample]:
        query = f"SELECT {SAMPLE_COLUMNS} FROM samples"
        params = []
        if category:
            query += " WHERE category = ?"
            params.append(category)
        query += " ORDER BY created_at DESC, id"
        if limit is not None:
            query += f" LIMIT {int(limit)}"
        rows = self._fetch(query + ";", params, "samples")
        return [self._row_to_sample(row) for row in rows]

    def located_samples(self) -> List[Sample]:
        rows = self._fetch(
            f"SELECT {SAMPLE_COLUMNS} FROM samples WHERE latitude IS NOT NULL AND longitude IS NOT NULL ORDER BY id;",
            what="located samples")
        return [self._row_to_sample(row) for row in rows]

    def taxonomy_for(self, feature_ids: List[str]) -> List[TaxonomyRecord]:
        if not feature_ids:
            return []
        placeholders = ", ".join("?" for _ in feature_ids)
        rows = self._fetch(f"SELECT {TAXONOMY_COLUMNS} FROM taxonomy WHERE feature_id IN ({placeholders});",
                           list(feature_ids), "taxonomy")
        return [self._row_to_taxonomy(row) for row in rows]

    def search_taxonomy(self, text: str, limit: int) -> List[TaxonomyRecord]:
        condition = " OR ".join(f"{rank} ILIKE ?" for rank in TAXONOMY_RANKS)
        pattern = f"%{text}%"
        rows = self._fetch(
            f"SELECT {TAXONOMY_COLUMNS} FROM taxonomy WHERE {condition} ORDER BY feature_id LIMIT {int(limit)};",
            [pattern] * len(TAXONOMY_RANKS), "taxonomy search")
        return [self._row_to_taxonomy(row) for row in rows]

    @contextmanager
    def transaction(self):
        """Run the block as one DuckDB transaction; any exception rolls it back."""
        self.conn.execute("BEGIN TRANSACTION;")
        try:
            yield
        except BaseException:
            self.conn.execute("ROLLBACK;")
            raise
        self.conn.execute("COMMIT;")

    def close(self):
        self.conn.close()
        logger.info("Database connection closed.")

    def __enter__(self) -> "SampleStore":
        return self

    def __exit__(self, *exc_info):
        self.close()
