"""
AI Data Cleaner

Sends dataset records to the LLM in chunks and reassembles the cleaned
rows. Model answers are free text, so the JSON payload is dug out of
code fences and trailing commas before parsing.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from config import get_settings
from core.dataset import Record, ensure_dataset, infer_columns
from core.logging_config import llm_logger as logger
from llm.ollama_client import OllamaClient, ollama_client
from llm.prompts import CLEANING_PROMPT, CLEANING_SYSTEM_PROMPT


_CODE_FENCE = re.compile(r"```(?:json)?\s*")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_ELLIPSIS = re.compile(r",?\s*\.{3}\s*(?=[\]}])")


class DataCleaningError(RuntimeError):
    """Raised when the model's answer cannot be turned into records."""


@dataclass
class CleaningResult:
    """Cleaned records and a short processing summary."""

    data: list[dict[str, Any]]
    summary: str
    chunks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "summary": self.summary,
            "chunks": self.chunks,
        }


def extract_json_records(text: str) -> list[dict[str, Any]]:
    """
    Pull a JSON array of objects out of an LLM answer.

    Also accepts an object wrapping the rows under "data".

    Raises:
        DataCleaningError: If no usable JSON is found
    """
    cleaned = _CODE_FENCE.sub("", text)

    start = min((i for i in (cleaned.find("["), cleaned.find("{")) if i != -1), default=-1)
    end = max(cleaned.rfind("]"), cleaned.rfind("}"))
    if start == -1 or end <= start:
        raise DataCleaningError("No JSON found in model response")

    cleaned = cleaned[start:end + 1]
    cleaned = _ELLIPSIS.sub("", cleaned)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise DataCleaningError(f"Failed to extract valid JSON: {e}") from e

    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]

    if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
        raise DataCleaningError("Model response is not a JSON array of objects")

    return payload


def chunk_records(records: Sequence[Record], size: int) -> list[list[Record]]:
    """Split records into consecutive chunks of at most `size`."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [list(records[i:i + size]) for i in range(0, len(records), size)]


class DataCleaner:
    """Chunked LLM data cleaning."""

    def __init__(self, client: Optional[OllamaClient] = None):
        self.settings = get_settings()
        self.client = client or ollama_client

    async def clean(self, records: Sequence[Record]) -> CleaningResult:
        """
        Clean a dataset chunk by chunk.

        Raises:
            DataCleaningError: If any chunk cannot be cleaned
        """
        records = ensure_dataset(records)
        if not records:
            return CleaningResult(data=[], summary="No records to clean", chunks=0)

        columns = infer_columns(records)
        chunks = chunk_records(records, self.settings.ollama.cleaning_chunk_size)
        cleaned: list[dict[str, Any]] = []

        for index, chunk in enumerate(chunks):
            logger.info(f"Cleaning chunk {index + 1}/{len(chunks)} ({len(chunk)} records)")
            prompt = CLEANING_PROMPT.format(
                columns=", ".join(columns),
                records=json.dumps(chunk, default=str),
            )
            answer = await self.client.generate(
                prompt, system=CLEANING_SYSTEM_PROMPT, json_mode=True
            )
            rows = extract_json_records(answer)

            if len(rows) != len(chunk):
                logger.warning(
                    f"Chunk {index + 1} returned {len(rows)} rows for {len(chunk)} inputs"
                )
            cleaned.extend(rows)

        logger.success(f"Cleaned {len(records)} records in {len(chunks)} chunks")
        return CleaningResult(
            data=cleaned,
            summary=f"Processed {len(chunks)} chunks; cleaned {len(cleaned)} of {len(records)} records",
            chunks=len(chunks),
        )


# Global cleaner instance
data_cleaner = DataCleaner()
