"""
Test AI Data Cleaner

Unit tests for chunking and JSON extraction, with the LLM stubbed out.
"""

import asyncio
import json

import pytest

from llm.data_cleaner import DataCleaner, DataCleaningError, chunk_records, extract_json_records


class EchoClient:
    """Answers each prompt with the records it was sent, upper-cased."""

    def __init__(self, wrap: str = "```json\n{payload}\n```"):
        self.wrap = wrap
        self.prompts = []
        self.json_modes = []

    async def generate(self, prompt, system=None, json_mode=False):
        self.prompts.append(prompt)
        self.json_modes.append(json_mode)
        payload = prompt.split("Input data:\n", 1)[1].split("\n\nReturn ONLY", 1)[0]
        rows = [
            {k: v.upper() if isinstance(v, str) else v for k, v in row.items()}
            for row in json.loads(payload)
        ]
        return self.wrap.format(payload=json.dumps(rows))


class TestExtraction:
    def test_plain_array(self):
        assert extract_json_records('[{"a": 1}]') == [{"a": 1}]

    def test_code_fence_and_prose(self):
        text = 'Here you go:\n```json\n[{"a": 1}, {"a": 2}]\n```\nDone.'

        assert extract_json_records(text) == [{"a": 1}, {"a": 2}]

    def test_trailing_commas(self):
        assert extract_json_records('[{"a": 1,}, {"a": 2},]') == [{"a": 1}, {"a": 2}]

    def test_wrapped_in_data_key(self):
        assert extract_json_records('{"data": [{"a": 1}]}') == [{"a": 1}]

    @pytest.mark.parametrize("text", ["no json here", "[1, 2, 3]", "[{broken"])
    def test_unusable_answers(self, text):
        with pytest.raises(DataCleaningError):
            extract_json_records(text)


class TestChunking:
    def test_chunk_sizes(self):
        chunks = chunk_records([{"i": i} for i in range(60)], 25)

        assert [len(c) for c in chunks] == [25, 25, 10]
        assert chunks[2][0] == {"i": 50}

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk_records([{"i": 1}], 0)


class TestDataCleaner:
    def test_clean_concatenates_chunks(self):
        client = EchoClient()
        cleaner = DataCleaner(client=client)
        records = [{"name": f"item {i}", "n": i} for i in range(30)]

        result = asyncio.run(cleaner.clean(records))

        assert len(client.prompts) == 2
        assert client.json_modes == [True, True]
        assert result.chunks == 2
        assert len(result.data) == 30
        assert result.data[29] == {"name": "ITEM 29", "n": 29}
        assert result.summary.startswith("Processed 2 chunks")

    def test_empty_dataset(self):
        client = EchoClient()
        result = asyncio.run(DataCleaner(client=client).clean([]))

        assert result.data == []
        assert client.prompts == []

    def test_bad_answer_raises(self):
        cleaner = DataCleaner(client=EchoClient(wrap="Sorry, I cannot help with that."))

        with pytest.raises(DataCleaningError):
            asyncio.run(cleaner.clean([{"a": "x"}]))
