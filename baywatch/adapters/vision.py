"""TrioVisionClient — HTTP client for the Trio video-analysis API.

Endpoints used:
    POST   /check-once          single condition check (no job slot)
    POST   /live-monitor        continuous monitor, results via webhook
    POST   /live-digest         narrative digest, SSE-style response
    GET    /jobs                list jobs (status / type / limit filters)
    GET    /jobs/{id}           job detail
    DELETE /jobs/{id}           cancel job
    POST   /streams/validate    stream metadata
    POST   /prepare-stream      cache a stream and get embed info

Every non-2xx response raises VisionAPIError.  Transport failures surface
as httpx.HTTPError.  Callers decide whether a failure matters.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from baywatch.adapters.base import DigestStream, VisionService
from baywatch.domain.vision import (
    CheckOnceResult,
    JobInfo,
    PreparedStream,
    StartedJob,
    StreamValidation,
)

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "


class VisionAPIError(Exception):
    """Raised when the vision API answers with a non-success status."""

    def __init__(self, method: str, path: str, status_code: int, body: str) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(f"Trio API error {status_code} on {method} {path}: {body[:200]}")


def parse_digest_line(line: str) -> dict[str, Any] | None:
    """Decode one ``data: {...}`` line of a digest stream.

    Returns None for lines without the data prefix, invalid JSON, or JSON
    that is not an object.  Never raises.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    try:
        data = json.loads(line[len(SSE_DATA_PREFIX):])
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class HttpDigestStream(DigestStream):
    """Digest stream backed by an open streaming httpx response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._closed = False

    async def lines(self) -> AsyncIterator[str]:
        async for line in self._response.aiter_lines():
            yield line

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


class TrioVisionClient(VisionService):
    """Async Trio API client.

    Args:
        base_url: API root, e.g. ``https://trio.machinefi.com/api``.
        api_key: Bearer token.
        timeout: Per-request timeout in seconds (streams are read without one).
        client: Optional pre-built httpx.AsyncClient (tests inject a
            MockTransport here).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Plumbing ─────────────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._client.request(
            method,
            f"{self._base_url}{path}",
            headers=self._headers(),
            json=json_body,
            params=params,
        )
        if response.is_error:
            logger.error("%s %s -> %d: %s", method, path, response.status_code, response.text[:200])
            raise VisionAPIError(method, path, response.status_code, response.text)
        if not response.content:
            return {}
        return response.json()

    # ── Monitoring ───────────────────────────────────────────────────────

    async def check_once(self, stream_url: str, condition: str) -> CheckOnceResult:
        data = await self._request(
            "POST", "/check-once",
            json_body={"stream_url": stream_url, "condition": condition},
        )
        return CheckOnceResult.model_validate(data)

    async def start_continuous_monitor(
        self, stream_url: str, condition: str, webhook_url: str,
    ) -> StartedJob:
        """Start a live-monitor job.  Consumes the job slot; auto-stops remotely."""
        data = await self._request(
            "POST", "/live-monitor",
            json_body={
                "stream_url": stream_url,
                "condition": condition,
                "webhook_url": webhook_url,
            },
        )
        return StartedJob.model_validate(data)

    async def start_narrative_digest(
        self,
        stream_url: str,
        window_minutes: int,
        capture_interval_seconds: int,
    ) -> DigestStream:
        """Start a live-digest job and return its open event stream.

        The status is checked before returning, so a rejected start raises
        here rather than on the first read.
        """
        path = "/live-digest"
        request = self._client.build_request(
            "POST",
            f"{self._base_url}{path}",
            headers=self._headers(),
            json={
                "stream_url": stream_url,
                "window_minutes": window_minutes,
                "capture_interval_seconds": capture_interval_seconds,
            },
            timeout=httpx.Timeout(self._timeout, read=None),
        )
        response = await self._client.send(request, stream=True)
        if response.is_error:
            body = (await response.aread()).decode(errors="replace")
            await response.aclose()
            logger.error("POST %s -> %d: %s", path, response.status_code, body[:200])
            raise VisionAPIError("POST", path, response.status_code, body)
        return HttpDigestStream(response)

    # ── Jobs ─────────────────────────────────────────────────────────────

    async def list_jobs(
        self,
        status: Optional[str] = None,
        job_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[JobInfo]:
        params: dict[str, Any] = {}
        if status:
            params["status"] = status
        if job_type:
            params["type"] = job_type
        if limit:
            params["limit"] = limit
        data = await self._request("GET", "/jobs", params=params or None)
        return [JobInfo.model_validate(j) for j in data.get("jobs", [])]

    async def get_job(self, job_id: str) -> JobInfo:
        data = await self._request("GET", f"/jobs/{job_id}")
        return JobInfo.model_validate(data)

    async def cancel_job(self, job_id: str) -> None:
        await self._request("DELETE", f"/jobs/{job_id}")

    async def cancel_all_running_jobs(self) -> int:
        """Cancel every running job.  Individual cancel failures are logged."""
        jobs = await self.list_jobs(status="running")
        cancelled = 0
        for job in jobs:
            try:
                await self.cancel_job(job.job_id)
                cancelled += 1
            except (VisionAPIError, httpx.HTTPError) as exc:
                logger.warning("Failed to cancel job %s: %s", job.job_id, exc)
        return cancelled

    # ── Streams ──────────────────────────────────────────────────────────

    async def validate_stream(self, stream_url: str) -> StreamValidation:
        data = await self._request(
            "POST", "/streams/validate", json_body={"stream_url": stream_url},
        )
        return StreamValidation.model_validate(data)

    async def prepare_stream(self, stream_url: str) -> PreparedStream:
        data = await self._request("POST", "/prepare-stream", json_body={"url": stream_url})
        return PreparedStream.model_validate(data)
