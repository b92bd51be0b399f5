"""Tests for the Gemini generation client and its retry policy."""

import json

import httpx
import pytest

from career_roadmap.providers.gemini import (
    GeminiClient,
    GeminiSettings,
    GenerationFailure,
    backoff_delay,
    extract_text,
    EmptyResponseError,
)

SETTINGS = GeminiSettings(api_key="test-key", model="gemini-test", base_url="https://gemini.test")


def ok_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class Recorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_client(handler):
    sleeps = Recorder()
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiClient(SETTINGS, http, sleep=sleeps), sleeps, http


def failing_then_ok(failures, text="done"):
    requests = []

    def handler(request):
        requests.append(request)
        if len(requests) <= failures:
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json=ok_body(text))

    return handler, requests


def test_backoff_schedule():
    assert [backoff_delay(n) for n in range(1, 6)] == [0.0, 2, 4, 8, 16]
    assert backoff_delay(3, base=0.5) == 2.0


def test_extract_text_is_strict():
    assert extract_text(ok_body("hi")) == "hi"
    for data in ({}, {"candidates": []}, {"candidates": [{"content": {"parts": []}}]},
                 {"candidates": [{"content": {"parts": [{"text": 3}]}}]}, ok_body(""), ok_body("  \n"), None):
        with pytest.raises(EmptyResponseError):
            extract_text(data)


@pytest.mark.asyncio
async def test_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=ok_body("[]"))

    client, sleeps, http = make_client(handler)
    async with http:
        result = await client.generate("Target: Fintech.", "Be a strategist.", structured_output=True)

    assert result == "[]"
    assert seen["url"] == "https://gemini.test/v1beta/models/gemini-test:generateContent"
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"] == [{"role": "user", "parts": [{"text": "Target: Fintech."}]}]
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "Be a strategist."}]}
    assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_plain_request_omits_optional_fields():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=ok_body("hello"))

    client, _, http = make_client(handler)
    async with http:
        assert await client.generate("hi") == "hello"

    assert "systemInstruction" not in bodies[0]
    assert "generationConfig" not in bodies[0]


@pytest.mark.asyncio
async def test_four_failures_then_success():
    handler, requests = failing_then_ok(4, text="finally")
    client, sleeps, http = make_client(handler)
    async with http:
        result = await client.generate("prompt")

    assert result == "finally"
    assert len(requests) == 5
    assert sleeps.delays == [2, 4, 8, 16]


@pytest.mark.asyncio
async def test_five_failures_return_failure_after_thirty_seconds():
    handler, requests = failing_then_ok(5)
    client, sleeps, http = make_client(handler)
    async with http:
        result = await client.generate("prompt")

    assert isinstance(result, GenerationFailure)
    assert result.kind == "transport"
    assert result.attempts == 5
    assert len(requests) == 5
    assert sum(sleeps.delays) == 30


@pytest.mark.asyncio
async def test_connection_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=ok_body("recovered"))

    client, sleeps, http = make_client(handler)
    async with http:
        assert await client.generate("prompt") == "recovered"
    assert sleeps.delays == [2]


@pytest.mark.asyncio
async def test_undecodable_body_is_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(200, content=b"<html>oops</html>")
        return httpx.Response(200, json=ok_body("ok"))

    client, _, http = make_client(handler)
    async with http:
        assert await client.generate("prompt") == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_empty_response_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"candidates": []})

    client, sleeps, http = make_client(handler)
    async with http:
        result = await client.generate("prompt")

    assert isinstance(result, GenerationFailure)
    assert result.kind == "empty_response"
    assert result.attempts == 1
    assert len(calls) == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_blank_text_is_an_empty_response():
    client, sleeps, http = make_client(lambda request: httpx.Response(200, json=ok_body("")))
    async with http:
        result = await client.generate("prompt")

    assert isinstance(result, GenerationFailure)
    assert result.kind == "empty_response"
    assert result.attempts == 1
    assert sleeps.delays == []
