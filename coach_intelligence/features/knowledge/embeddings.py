"""
Embedding generation via the OpenAI embeddings API.

One call per text. Retries on transient failures are left to the SDK
(`max_retries`); pacing between calls belongs to the batch job runner.
"""

import logging
import time
from typing import Optional, Tuple

import numpy as np
import openai

from coach_intelligence.core.config import settings
from coach_intelligence.core.logging_utils import log_embedding_cost
from coach_intelligence.shared.errors import ConfigurationError, EmbeddingError

logger = logging.getLogger("Coach.Knowledge.Embeddings")


class EmbeddingGenerator:
    """
    Turns text into fixed-dimension float32 vectors.

    Usage:
        generator = get_embedding_generator()
        vector = await generator.embed("Protein timing after training")
    """

    def __init__(
        self,
        client: Optional[openai.AsyncOpenAI] = None,
        model: str = settings.EMBEDDING_MODEL,
        dimensions: int = settings.EMBEDDING_DIMENSIONS,
        max_retries: int = settings.EMBEDDING_MAX_RETRIES,
    ):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise ConfigurationError("OPENAI_API_KEY is not configured")
            client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=max_retries)
        self.client = client
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> np.ndarray:
        """Embed a single text, returning a float32 vector of length `dimensions`."""
        vector, _ = await self.embed_with_usage(text)
        return vector

    async def embed_with_usage(self, text: str) -> Tuple[np.ndarray, int]:
        """
        Embed a single text and report the prompt tokens billed for it.

        Returns:
            (float32 vector of length `dimensions`, prompt tokens)

        Raises:
            EmbeddingError: non-success HTTP status, connection failure,
                or a vector of unexpected size
        """
        started = time.monotonic()
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
                encoding_format="float",
            )
        except openai.APIStatusError as e:
            raise EmbeddingError(e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            raise EmbeddingError(None, str(e)) from e

        if not response.data:
            raise EmbeddingError(None, "Provider returned no embedding")

        vector = np.asarray(response.data[0].embedding, dtype=np.float32)
        if vector.shape != (self.dimensions,):
            raise EmbeddingError(
                None,
                f"Expected {self.dimensions} dimensions from {self.model}, got {vector.shape[0]}",
            )

        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "prompt_tokens", 0) or 0
        log_embedding_cost(
            model=self.model,
            input_tokens=tokens,
            duration_ms=int((time.monotonic() - started) * 1000),
            endpoint="embeddings",
        )
        return vector, tokens


# Singleton instance
_embedding_generator: Optional[EmbeddingGenerator] = None


def get_embedding_generator() -> EmbeddingGenerator:
    """Get the process-wide generator (reuses one AsyncOpenAI client)."""
    global _embedding_generator
    if _embedding_generator is None:
        _embedding_generator = EmbeddingGenerator()
    return _embedding_generator
