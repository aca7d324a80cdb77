import unittest

from domain.errors import (
    ConfigurationError,
    ContextRankError,
    EmbeddingError,
    EmptyStoreError,
    InvalidDocumentError,
    NoFilterMatchError,
    RetrievalError,
    VectorStoreError,
    get_error_code,
)


class TestErrorHierarchy(unittest.TestCase):
    def test_codes_and_inheritance(self):
        self.assertEqual(EmbeddingError("x").code, "EMBEDDING_ERROR")
        self.assertIsInstance(InvalidDocumentError("empty"), VectorStoreError)
        self.assertIsInstance(EmptyStoreError(), RetrievalError)
        self.assertIsInstance(NoFilterMatchError(), RetrievalError)
        self.assertEqual(get_error_code(ConfigurationError("bad")), "CONFIGURATION_ERROR")
        self.assertEqual(get_error_code(ValueError("bad")), "UNKNOWN_ERROR")

    def test_to_dict_carries_metadata_and_suggestion(self):
        error = EmptyStoreError(dimension=4)

        payload = error.to_dict()

        self.assertEqual(payload["name"], "EmptyStoreError")
        self.assertEqual(payload["code"], "RETRIEVAL_ERROR")
        self.assertEqual(payload["metadata"]["dimension"], 4)
        self.assertIn("suggestion", payload["metadata"])
        self.assertTrue(payload["timestamp"])

    def test_invalid_document_message(self):
        error = InvalidDocumentError("missing text", position=2)

        self.assertEqual(str(error), "Invalid document: missing text")
        self.assertEqual(error.metadata["position"], 2)
        self.assertIsInstance(error, ContextRankError)


if __name__ == "__main__":
    unittest.main()
