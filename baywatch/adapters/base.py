"""Abstract contracts for the external services the orchestrator consumes.

Architectural rules:
    1. Clients never touch the ZoneStore.  They return domain objects and
       the orchestrator decides what to do with them.
    2. Vision calls may raise (transport or remote-status errors); the
       orchestrator treats every failure as non-fatal.
    3. Environmental fetches degrade to missing readings wherever a partial
       answer is possible, and raise EnvironmentalUnavailableError only when
       every source failed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from baywatch.domain.environment import EnvironmentalData
from baywatch.domain.vision import (
    CheckOnceResult,
    JobInfo,
    PreparedStream,
    StartedJob,
    StreamValidation,
)
from baywatch.domain.zone import ZoneConfig


class DigestStream(ABC):
    """An open narrative-digest response, read line by line."""

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """Decoded text lines, in arrival order."""
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Close the underlying stream.  Safe to call more than once."""
        ...


class VisionService(ABC):
    """Contract for the video-analysis API (one concurrent job slot)."""

    @abstractmethod
    async def check_once(self, stream_url: str, condition: str) -> CheckOnceResult:
        """Single synchronous condition check.  Consumes no job slot."""
        ...

    @abstractmethod
    async def start_continuous_monitor(
        self, stream_url: str, condition: str, webhook_url: str,
    ) -> StartedJob:
        ...

    @abstractmethod
    async def start_narrative_digest(
        self,
        stream_url: str,
        window_minutes: int,
        capture_interval_seconds: int,
    ) -> DigestStream:
        ...

    @abstractmethod
    async def list_jobs(
        self,
        status: Optional[str] = None,
        job_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[JobInfo]:
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> JobInfo:
        ...

    @abstractmethod
    async def cancel_job(self, job_id: str) -> None:
        ...

    @abstractmethod
    async def cancel_all_running_jobs(self) -> int:
        """Cancel every running job; return how many were cancelled."""
        ...

    @abstractmethod
    async def validate_stream(self, stream_url: str) -> StreamValidation:
        ...

    @abstractmethod
    async def prepare_stream(self, stream_url: str) -> PreparedStream:
        ...


class EnvironmentalService(ABC):
    """Contract for the buoy and tide data provider."""

    @abstractmethod
    async def fetch_environmental(self, zone: ZoneConfig) -> EnvironmentalData:
        """Fetch buoy and tide readings for *zone*; either may be None.

        Raises:
            EnvironmentalUnavailableError: no source answered.
        """
        ...


class EnvironmentalUnavailableError(Exception):
    """Every source for a zone failed; there is nothing to report."""
