from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import numpy as np
import openai
import pytest

from coach_intelligence.features.knowledge.embeddings import EmbeddingGenerator
from coach_intelligence.shared.errors import EmbeddingError

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _client(vector=None, side_effect=None):
    client = MagicMock()
    client.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(
            data=[SimpleNamespace(embedding=vector)] if vector is not None else [],
            usage=SimpleNamespace(prompt_tokens=7),
        ),
        side_effect=side_effect,
    )
    return client


class TestEmbeddingGenerator:
    @pytest.mark.asyncio
    async def test_returns_float32_vector(self):
        client = _client(vector=[0.25] * 4)
        generator = EmbeddingGenerator(client=client, model="text-embedding-3-small", dimensions=4)

        vector = await generator.embed("Deadlift form")

        assert vector.dtype == np.float32
        assert vector.shape == (4,)
        client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small",
            input="Deadlift form",
            encoding_format="float",
        )

    @pytest.mark.asyncio
    async def test_usage_is_returned_with_the_vector(self):
        generator = EmbeddingGenerator(client=_client(vector=[0.5] * 4), dimensions=4)

        vector, tokens = await generator.embed_with_usage("Squat depth")

        assert vector.shape == (4,)
        assert tokens == 7
        assert not hasattr(generator, "last_usage_tokens")

    @pytest.mark.asyncio
    async def test_http_error_carries_status_and_body(self):
        error = openai.APIStatusError(
            "Rate limit reached",
            response=httpx.Response(429, request=REQUEST),
            body=None,
        )
        generator = EmbeddingGenerator(client=_client(side_effect=error), dimensions=4)

        with pytest.raises(EmbeddingError) as exc_info:
            await generator.embed("text")

        assert exc_info.value.status == 429
        assert "Rate limit reached" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_connection_error(self):
        error = openai.APIConnectionError(request=REQUEST)
        generator = EmbeddingGenerator(client=_client(side_effect=error), dimensions=4)

        with pytest.raises(EmbeddingError) as exc_info:
            await generator.embed("text")

        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self):
        generator = EmbeddingGenerator(client=_client(vector=[0.1] * 3), dimensions=4)

        with pytest.raises(EmbeddingError):
            await generator.embed("text")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        generator = EmbeddingGenerator(client=_client(vector=None), dimensions=4)

        with pytest.raises(EmbeddingError):
            await generator.embed("text")
