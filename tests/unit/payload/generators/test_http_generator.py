"""Unit tests for the OpenAI-compatible HTTP generator."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from llmock.payload.core import GeneratorError
from llmock.payload.generators import Generator, HTTPClient, OpenAICompatibleGenerator, bind_generator
from llmock.payload.shapes import ShapeDescriptor

SHAPE = ShapeDescriptor.parse('{"id": 1, "name": "string"}')


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def mock_client():
    """Create a mock HTTPClient."""
    client = MagicMock(spec=HTTPClient)
    client.post = AsyncMock(return_value=_completion('```json\n[{"id": 1, "name": "Ada"}]\n```'))
    client.close = AsyncMock()
    return client


class TestOpenAICompatibleGenerator:
    """Test request construction and response handling."""

    def test_satisfies_protocol(self, mock_client):
        assert isinstance(OpenAICompatibleGenerator(client=mock_client), Generator)

    @pytest.mark.asyncio
    async def test_generate_extracts_json(self, mock_client):
        generator = OpenAICompatibleGenerator(client=mock_client)

        assert await generator.generate(SHAPE) == '[{"id": 1, "name": "Ada"}]'

    @pytest.mark.asyncio
    async def test_request_body(self, mock_client):
        generator = OpenAICompatibleGenerator(
            client=mock_client,
            model="qwen2.5",
            api_key="secret",
            temperature=0.9,
            max_tokens=512,
        )

        await generator.generate(SHAPE, "Part 2/3")

        mock_client.post.assert_awaited_once()
        url = mock_client.post.call_args.args[0]
        body = mock_client.post.call_args.kwargs["json_body"]
        headers = mock_client.post.call_args.kwargs["headers"]
        assert url == "chat/completions"
        assert body["model"] == "qwen2.5"
        assert body["temperature"] == 0.9
        assert body["max_tokens"] == 512
        assert body["stream"] is False
        assert SHAPE.to_text() in body["messages"][-1]["content"]
        assert "Part 2/3" in body["messages"][-1]["content"]
        assert headers == {"Authorization": "Bearer secret"}

    @pytest.mark.asyncio
    async def test_no_auth_or_limit_by_default(self, mock_client):
        await OpenAICompatibleGenerator(client=mock_client).generate(SHAPE)

        body = mock_client.post.call_args.kwargs["json_body"]
        assert "max_tokens" not in body
        assert mock_client.post.call_args.kwargs["headers"] is None

    @pytest.mark.asyncio
    async def test_http_error_mapped(self, mock_client):
        mock_client.post.side_effect = aiohttp.ClientResponseError(
            request_info=MagicMock(),
            history=(),
            status=429,
            message="Too Many Requests",
        )

        with pytest.raises(GeneratorError) as exc_info:
            await OpenAICompatibleGenerator(client=mock_client).generate(SHAPE)

        assert exc_info.value.status_code == 429
        assert "429" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error_mapped(self, mock_client):
        mock_client.post.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(GeneratorError) as exc_info:
            await OpenAICompatibleGenerator(client=mock_client).generate(SHAPE)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{}, {"choices": []}, {"choices": [{"message": {}}]}])
    async def test_missing_content(self, mock_client, data):
        mock_client.post.return_value = data

        with pytest.raises(GeneratorError, match="no completion content"):
            await OpenAICompatibleGenerator(client=mock_client).generate(SHAPE)

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, mock_client):
        async with OpenAICompatibleGenerator(client=mock_client):
            pass

        mock_client.close.assert_awaited_once()


class TestHTTPClient:
    """Test HTTPClient helpers."""

    def test_url_joining(self):
        client = HTTPClient(base_url="http://localhost:1234/v1/")

        assert client._url("chat/completions") == "http://localhost:1234/v1/chat/completions"
        assert client._url("/models") == "http://localhost:1234/v1/models"
        assert client._url("https://api.example.com/v1/x") == "https://api.example.com/v1/x"

    @pytest.mark.asyncio
    async def test_close_without_session(self):
        await HTTPClient().close()


class TestBindGenerator:
    """Test binding a generator into a cache fetch."""

    @pytest.mark.asyncio
    async def test_bind(self, make_generator):
        generator = make_generator(['{"id": 1}'])
        fetch = bind_generator(generator, SHAPE, "ctx")

        assert await fetch() == '{"id": 1}'
        assert generator.calls == [(SHAPE, "ctx")]
