import unittest

from domain.entities import NewDocument
from domain.errors import ConfigurationError
from infrastructure.splitting.chunking import chunk_documents
from infrastructure.splitting.fixed_window_splitter import FixedWindowSplitter
from infrastructure.splitting.markdown_splitter import MarkdownSplitter
from infrastructure.splitting.sentence_splitter import SentenceSplitter


class TestFixedWindowSplitter(unittest.TestCase):
    def test_short_and_blank_text(self):
        splitter = FixedWindowSplitter(chunk_size=100)

        self.assertEqual(splitter.split("Short text"), ["Short text"])
        self.assertEqual(splitter.split("   "), [])
        self.assertEqual(splitter.split(None), [])

    def test_packs_paragraphs_up_to_chunk_size(self):
        splitter = FixedWindowSplitter(chunk_size=12, overlap=0)

        self.assertEqual(splitter.split("alpha\n\nbeta\n\ngamma"), ["alpha\n\nbeta", "gamma"])

    def test_long_paragraph_is_windowed_with_overlap(self):
        digits = "0123456789" * 10
        splitter = FixedWindowSplitter(chunk_size=40, overlap=10)

        chunks = splitter.split("intro\n\n" + digits)

        self.assertEqual(chunks[0], "intro")
        self.assertEqual(chunks[1:], [digits[0:40], digits[30:70], digits[60:100]])
        self.assertEqual(chunks[1][-10:], chunks[2][:10])

    def test_invalid_settings(self):
        with self.assertRaises(ConfigurationError):
            FixedWindowSplitter(chunk_size=0)
        with self.assertRaises(ConfigurationError):
            FixedWindowSplitter(chunk_size=10, overlap=10)


class TestSentenceSplitter(unittest.TestCase):
    def test_groups_sentences_with_overlap(self):
        splitter = SentenceSplitter(sentences_per_chunk=2, overlap_sentences=1)

        chunks = splitter.split("One. Two! Three? Four. Five.")

        self.assertEqual(chunks, ["One. Two!", "Two! Three?", "Three? Four.", "Four. Five."])

    def test_few_sentences_stay_whole(self):
        self.assertEqual(SentenceSplitter().split(" First. Second. "), ["First. Second."])

    def test_overlap_must_be_smaller_than_group(self):
        with self.assertRaises(ConfigurationError):
            SentenceSplitter(sentences_per_chunk=2, overlap_sentences=2)


class TestMarkdownSplitter(unittest.TestCase):
    def test_code_block_is_not_broken(self):
        markdown = "\n".join(["# Title", "Intro line here.", "```", "code one", "code two", "```", "Outro."])

        chunks = MarkdownSplitter(chunk_size=30, overlap=10).split(markdown)

        self.assertEqual(chunks[-1], "Outro.")
        block = [chunk for chunk in chunks if "code one" in chunk]
        self.assertEqual(len(block), 1)
        self.assertIn("code two", block[0])
        self.assertEqual(block[0].count("```"), 2)

    def test_trailing_lines_overlap(self):
        chunks = MarkdownSplitter(chunk_size=10, overlap=5).split("aaaa\nbbbb\ncccc\ndddd")

        self.assertEqual(chunks, ["aaaa\nbbbb", "bbbb\ncccc", "cccc\ndddd"])


class TestChunkDocuments(unittest.TestCase):
    def test_chunks_keep_metadata_and_derive_ids(self):
        source = NewDocument(id="guide", text="alpha\n\nbeta\n\ngamma", meta={"source": "docs"})

        chunks = chunk_documents([source, {"text": "short"}], FixedWindowSplitter(chunk_size=12, overlap=0))

        self.assertEqual([chunk.id for chunk in chunks], ["guide_chunk_0", "guide_chunk_1", None])
        self.assertEqual(
            chunks[1].meta,
            {"source": "docs", "source_doc_index": 0, "chunk_index": 1, "total_chunks": 2, "original_id": "guide"},
        )
        self.assertEqual(chunks[2].meta["source_doc_index"], 1)
        self.assertIsNone(chunks[2].meta["original_id"])
        self.assertEqual(source.meta, {"source": "docs"})

    def test_default_splitter_leaves_short_documents_whole(self):
        chunks = chunk_documents([NewDocument(id="a", text="tiny")])

        self.assertEqual([(chunk.id, chunk.text) for chunk in chunks], [("a_chunk_0", "tiny")])


if __name__ == "__main__":
    unittest.main()
