import unittest

from application.use_cases.ingest_documents import IngestError, ingest_documents
from domain.entities import NewDocument
from domain.options import IngestOptions
from infrastructure.embedding.hash_embedder import HashEmbedder
from infrastructure.splitting.fixed_window_splitter import FixedWindowSplitter
from infrastructure.storage.in_memory_vector_store import InMemoryVectorStore


class TestIngestDocuments(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryVectorStore(HashEmbedder(16))

    def test_mixed_sources_are_indexed(self):
        progress = []

        report = ingest_documents(
            [
                NewDocument(id="a", text="alpha beta gamma", meta={"source": "official"}),
                {"id": "b", "text": "delta epsilon"},
                ("c", "zeta eta theta"),
            ],
            vector_store=self.store,
            options=IngestOptions(batch_size=2, pause_seconds=0, on_progress=lambda c, t: progress.append(c)),
        )

        self.assertEqual((report.total, report.indexed), (3, 3))
        self.assertEqual(report.ids, ["a", "b", "c"])
        self.assertEqual(report.errors, [])
        self.assertEqual(progress, [2, 3])
        self.assertEqual(self.store.get_document("a").meta, {"source": "official"})

    def test_invalid_sources_are_reported_not_fatal(self):
        report = ingest_documents(
            [("ok", "valid text"), ("blank", "   "), {"text": None}, 42],
            vector_store=self.store,
        )

        self.assertEqual((report.total, report.indexed), (4, 1))
        self.assertEqual(report.ids, ["ok"])
        self.assertEqual([error.source_id for error in report.errors], ["blank", "#2", "#3"])
        self.assertIsInstance(report.errors[0], IngestError)
        self.assertEqual(self.store.stats().document_count, 1)

    def test_splitter_indexes_chunks(self):
        report = ingest_documents(
            [("guide", "alpha\n\nbeta\n\ngamma"), ("blank", "  ")],
            vector_store=self.store,
            splitter=FixedWindowSplitter(chunk_size=12, overlap=0),
        )

        self.assertEqual((report.total, report.indexed), (2, 2))
        self.assertEqual(report.ids, ["guide_chunk_0", "guide_chunk_1"])
        self.assertEqual(len(report.errors), 1)
        self.assertEqual(self.store.get_document("guide_chunk_1").text, "gamma")
        self.assertEqual(self.store.get_document("guide_chunk_1").meta["original_id"], "guide")

    def test_nothing_valid_skips_the_store(self):
        report = ingest_documents([("blank", "")], vector_store=self.store)

        self.assertEqual(report.indexed, 0)
        self.assertEqual(self.store.stats().document_count, 0)


if __name__ == "__main__":
    unittest.main()
