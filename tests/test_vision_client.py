"""Tests for the Trio vision client, driven through httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from baywatch.adapters.vision import TrioVisionClient, VisionAPIError, parse_digest_line

BASE = "https://trio.test/api"


def _client(handler) -> TrioVisionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TrioVisionClient(BASE, "secret-key", client=http)


class TestParseDigestLine:
    def test_data_line(self) -> None:
        assert parse_digest_line('data: {"summary": "calm"}') == {"summary": "calm"}

    def test_non_data_line(self) -> None:
        assert parse_digest_line("event: ping") is None
        assert parse_digest_line("") is None

    def test_bad_json(self) -> None:
        assert parse_digest_line("data: {not json") is None

    def test_non_object_json(self) -> None:
        assert parse_digest_line("data: [1, 2]") is None


class TestTrioVisionClient:
    @pytest.mark.asyncio
    async def test_check_once_sends_bearer_and_body(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"triggered": True, "explanation": "3 people", "latency_ms": 812})

        client = _client(handler)
        result = await client.check_once("https://stream", "Is anyone swimming?")
        assert result.triggered is True
        assert result.explanation == "3 people"
        assert seen["auth"] == "Bearer secret-key"
        assert seen["path"] == "/api/check-once"
        assert seen["body"] == {"stream_url": "https://stream", "condition": "Is anyone swimming?"}

    @pytest.mark.asyncio
    async def test_non_2xx_raises_vision_api_error(self) -> None:
        client = _client(lambda r: httpx.Response(429, text="rate limited"))
        with pytest.raises(VisionAPIError) as info:
            await client.check_once("https://stream", "x")
        assert info.value.status_code == 429
        assert "rate limited" in info.value.body

    @pytest.mark.asyncio
    async def test_start_continuous_monitor(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["webhook_url"] == "https://me/api/webhooks/trio"
            return httpx.Response(200, json={"job_id": "job-123", "status": "running"})

        started = await _client(handler).start_continuous_monitor(
            "https://stream", "cond", "https://me/api/webhooks/trio",
        )
        assert started.job_id == "job-123"

    @pytest.mark.asyncio
    async def test_list_jobs_filters_and_parses(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["status"] == "running"
            return httpx.Response(200, json={"jobs": [
                {"job_id": "j1", "status": "running", "job_type": "live-monitor", "unknown": 1},
                {"job_id": "j2", "status": "running"},
            ]})

        jobs = await _client(handler).list_jobs(status="running")
        assert [j.job_id for j in jobs] == ["j1", "j2"]

    @pytest.mark.asyncio
    async def test_cancel_all_counts_successes(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"jobs": [
                    {"job_id": "ok", "status": "running"},
                    {"job_id": "bad", "status": "running"},
                ]})
            if request.url.path.endswith("/bad"):
                return httpx.Response(500, text="boom")
            return httpx.Response(200, json={"success": True})

        assert await _client(handler).cancel_all_running_jobs() == 1

    @pytest.mark.asyncio
    async def test_prepare_stream(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"url": "https://stream"}
            return httpx.Response(200, json={"success": True, "embed_url": "https://embed"})

        prepared = await _client(handler).prepare_stream("https://stream")
        assert prepared.success is True
        assert prepared.embed_url == "https://embed"

    @pytest.mark.asyncio
    async def test_narrative_digest_streams_lines(self) -> None:
        body = b'data: {"job_id": "dig-1"}\n\ndata: {"summary": "Beach is quiet"}\n'

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/live-digest"
            return httpx.Response(200, content=body)

        stream = await _client(handler).start_narrative_digest("https://stream", 3, 30)
        lines = [line async for line in stream.lines()]
        await stream.aclose()
        await stream.aclose()
        assert 'data: {"summary": "Beach is quiet"}' in lines

    @pytest.mark.asyncio
    async def test_narrative_digest_error_raises(self) -> None:
        client = _client(lambda r: httpx.Response(409, text="job slot busy"))
        with pytest.raises(VisionAPIError) as info:
            await client.start_narrative_digest("https://stream", 3, 30)
        assert info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_get_job_and_validate_stream(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                assert request.url.path == "/api/jobs/job-9"
                return httpx.Response(200, json={
                    "job_id": "job-9", "status": "stopped",
                    "stats": {"checks_performed": 40, "auto_stopped": True, "reason": "timeout"},
                })
            return httpx.Response(200, json={"valid": True, "is_live": True, "platform": "youtube"})

        client = _client(handler)
        job = await client.get_job("job-9")
        assert job.stats.auto_stopped is True
        validation = await client.validate_stream("https://stream")
        assert validation.is_live is True
