import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from domain.entities import NewDocument
from domain.errors import ConfigurationError
from infrastructure.config import ContainerConfig, _resolve_model_reference, build_default_container
from infrastructure.embedding.hash_embedder import HashEmbedder
from infrastructure.logging_utils import setup_logging
from infrastructure.storage.in_memory_vector_store import InMemoryVectorStore
from infrastructure.storage.sqlite_vector_store import SqliteVectorStore


class TestModelResolution(unittest.TestCase):
    def test_resolves_model_from_models_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            model_ref = "sentence-transformers/all-MiniLM-L6-v2"
            model_path = Path(tmp) / model_ref
            model_path.mkdir(parents=True)
            cfg = ContainerConfig(models_dir=tmp)

            resolved = _resolve_model_reference(model_ref, cfg)

            self.assertEqual(resolved, str(model_path))

    def test_keeps_original_model_when_local_dir_missing(self):
        cfg = ContainerConfig(models_dir="/tmp/contextrank-not-existing")

        resolved = _resolve_model_reference("sentence-transformers/all-MiniLM-L6-v2", cfg)

        self.assertEqual(resolved, "sentence-transformers/all-MiniLM-L6-v2")


class TestContainerConfigFromEnv(unittest.TestCase):
    def test_reads_prefixed_variables(self):
        cfg = ContainerConfig.from_env(
            {
                "CONTEXTRANK_STORE": "sqlite",
                "CONTEXTRANK_DB_PATH": "/tmp/ranks.db",
                "CONTEXTRANK_DIMENSION": "32",
                "CONTEXTRANK_ENABLE_LEARNING": "false",
                "CONTEXTRANK_WEIGHTS": "semanticSimilarity=0.7, recency=0.3",
                "CONTEXTRANK_OLLAMA_MODEL": " ",
            }
        )

        self.assertEqual(cfg.store, "sqlite")
        self.assertEqual(cfg.db_path, "/tmp/ranks.db")
        self.assertEqual(cfg.dimension, 32)
        self.assertFalse(cfg.enable_learning)
        self.assertEqual(cfg.weights, {"semanticSimilarity": 0.7, "recency": 0.3})
        self.assertEqual(cfg.ollama_model, "embeddinggemma")
        self.assertEqual(cfg.embedder, "hash")

    def test_reads_process_environment_by_default(self):
        with mock.patch.dict(os.environ, {"CONTEXTRANK_DEFAULT_K": "7"}):
            self.assertEqual(ContainerConfig.from_env().default_k, 7)

    def test_malformed_values(self):
        with self.assertRaises(ConfigurationError):
            ContainerConfig.from_env({"CONTEXTRANK_DIMENSION": "wide"})
        with self.assertRaises(ConfigurationError):
            ContainerConfig.from_env({"CONTEXTRANK_WEIGHTS": "recency"})


class TestBuildDefaultContainer(unittest.TestCase):
    def test_memory_stack_end_to_end(self):
        container = build_default_container(ContainerConfig(dimension=64, default_k=2))
        self.addCleanup(container.close)

        self.assertIsInstance(container.embedder, HashEmbedder)
        self.assertIsInstance(container.vector_store, InMemoryVectorStore)
        container.vector_store.add_documents(
            [
                NewDocument(id="py", text="python vector search tutorial", meta={"source": "tutorial"}),
                NewDocument(id="bread", text="baking sourdough bread at home", meta={"source": "blog"}),
            ]
        )

        response = container.smart_retriever.get_relevant("python vector search", 1)

        self.assertEqual([r.id for r in response.results], ["py"])
        self.assertEqual(len(container.retriever.get_relevant("python vector search")), 2)

    def test_sqlite_store_and_weights(self):
        with tempfile.TemporaryDirectory() as tmp:
            db_path = Path(tmp) / "contextrank.db"
            container = build_default_container(
                ContainerConfig(store="sqlite", db_path=str(db_path), weights={"recency": 0.0})
            )

            self.assertIsInstance(container.vector_store, SqliteVectorStore)
            self.assertTrue(db_path.exists())
            self.assertEqual(container.smart_retriever.scoring_engine.get_weights()["recency"], 0.0)

    def test_unknown_components(self):
        with self.assertRaises(ConfigurationError):
            build_default_container(ContainerConfig(store="faiss"))
        with self.assertRaises(ConfigurationError):
            build_default_container(ContainerConfig(embedder="word2vec"))


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        root = logging.getLogger()
        self._saved = (root.handlers[:], root.level)
        root.handlers = []
        self.addCleanup(self._restore)

    def _restore(self):
        root = logging.getLogger()
        for handler in root.handlers:
            handler.close()
        root.handlers, level = self._saved[0], self._saved[1]
        root.setLevel(level)

    def test_configures_file_and_console(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "contextrank.log"
            env = {"CONTEXTRANK_LOG_LEVEL": "debug", "CONTEXTRANK_LOG_FILE": str(log_file)}
            with mock.patch.dict(os.environ, env):
                setup_logging()

            root = logging.getLogger()
            self.assertEqual(root.level, logging.DEBUG)
            self.assertEqual(len(root.handlers), 2)
            self.assertTrue(log_file.exists())
            for handler in root.handlers:
                handler.close()
            root.handlers = []

    def test_is_idempotent_and_file_can_be_disabled(self):
        setup_logging(level="warning", log_file="")
        setup_logging(level="debug", log_file="")

        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
