"""Firecrawl extraction client.

Hides the service's own async job/poll protocol behind single awaitable
calls. HTTP goes through one ``requests.Session`` run in a worker thread so
the dispatcher's event loop is never blocked; waits between poll attempts go
through a CancellationToken.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import requests

from src.core.cancellation import CancellationToken
from src.core.config import settings
from src.core.errors import (
    ConfigurationError,
    ExtractionFailed,
    ExtractionTimeout,
    ServiceError,
)
from src.core.program_schema import (
    AGENT_SCHEMA,
    EXTRACT_PROMPT,
    PROGRAM_SCHEMA,
    collect_citations,
)
from src.dtos.program_dto import ExtractedProgram

logger = logging.getLogger(__name__)


class ExtractionClient(Protocol):
    async def extract_one(
        self, url: str, token: CancellationToken | None = None
    ) -> ExtractedProgram: ...

    async def extract_from_prompt(
        self,
        prompt: str,
        max_credits: int | None = None,
        token: CancellationToken | None = None,
    ) -> list[ExtractedProgram]: ...

    async def discover_urls(
        self, crawl_url: str, token: CancellationToken | None = None
    ) -> list[str]: ...


class FirecrawlClient:
    """Client for the Firecrawl extract, agent and crawl endpoints."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
        max_poll_attempts: int | None = None,
        agent_max_poll_attempts: int | None = None,
        crawl_poll_interval: float | None = None,
        crawl_max_poll_attempts: int | None = None,
        crawl_page_limit: int | None = None,
    ) -> None:
        key = api_key or settings.FIRECRAWL_API_KEY
        if not key:
            raise ConfigurationError("FIRECRAWL_API_KEY is not configured")

        self.base_url = (base_url or settings.FIRECRAWL_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
        )
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.poll_interval = (
            settings.EXTRACT_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        )
        self.max_poll_attempts = max_poll_attempts or settings.EXTRACT_MAX_POLL_ATTEMPTS
        self.agent_max_poll_attempts = (
            agent_max_poll_attempts or settings.AGENT_MAX_POLL_ATTEMPTS
        )
        self.crawl_poll_interval = (
            settings.CRAWL_POLL_INTERVAL_SECONDS
            if crawl_poll_interval is None
            else crawl_poll_interval
        )
        self.crawl_max_poll_attempts = (
            crawl_max_poll_attempts or settings.CRAWL_MAX_POLL_ATTEMPTS
        )
        self.crawl_page_limit = crawl_page_limit or settings.CRAWL_PAGE_LIMIT

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise ServiceError(f"Firecrawl request failed: {e}") from e

        if not response.ok:
            raise ServiceError(
                f"Firecrawl API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(
                "Firecrawl returned a non-JSON response",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def _call(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, payload)

    async def _poll(
        self,
        path: str,
        *,
        label: str,
        interval: float,
        max_attempts: int,
        token: CancellationToken,
    ) -> dict[str, Any]:
        """
        Poll a job status endpoint until it completes, fails or runs out of attempts.

        Returns:
            The final status payload (status == "completed" with data)

        Raises:
            ExtractionFailed: Service reported status "failed"
            ExtractionTimeout: max_attempts polls without completion
            OperationCancelled: token cancelled during a wait
        """
        for attempt in range(1, max_attempts + 1):
            await token.sleep(interval)
            status = await self._call("GET", path)
            state = status.get("status")
            logger.debug("%s status (attempt %d/%d): %s", label, attempt, max_attempts, state)

            if state == "completed" and status.get("data") is not None:
                return status
            if state == "failed":
                raise ExtractionFailed(f"{label} failed", body=str(status.get("error") or ""))

        raise ExtractionTimeout(
            f"{label} timed out after {max_attempts} attempts", attempts=max_attempts
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def extract_one(
        self, url: str, token: CancellationToken | None = None
    ) -> ExtractedProgram:
        """
        Extract structured program data from a single URL.

        Args:
            url: Page to extract
            token: Optional cancellation token for the poll waits

        Returns:
            ExtractedProgram with whatever fields the service found

        Raises:
            ServiceError: HTTP failure or success=false
            ExtractionFailed: Async job reported failure
            ExtractionTimeout: Async job did not finish in time
        """
        token = token or CancellationToken()
        result = await self._call(
            "POST",
            "/extract",
            {"urls": [url], "schema": PROGRAM_SCHEMA, "prompt": EXTRACT_PROMPT},
        )
        if not result.get("success"):
            raise ServiceError("Firecrawl extraction failed", body=str(result))

        data = result.get("data")
        if result.get("id") and not data:
            logger.debug("Extract job %s started for %s, polling", result["id"], url)
            status = await self._poll(
                f"/extract/{result['id']}",
                label="Extract job",
                interval=self.poll_interval,
                max_attempts=self.max_poll_attempts,
                token=token,
            )
            data = status["data"]

        if not isinstance(data, dict):
            raise ServiceError("Firecrawl returned no program data", body=str(result))
        return ExtractedProgram.model_validate(data)

    async def extract_from_prompt(
        self,
        prompt: str,
        max_credits: int | None = None,
        token: CancellationToken | None = None,
    ) -> list[ExtractedProgram]:
        """
        Run a free-form agent prompt and return every program it found.

        Each record carries the citation URLs the agent attached to its fields.
        """
        token = token or CancellationToken()
        payload: dict[str, Any] = {"prompt": prompt, "schema": AGENT_SCHEMA}
        if max_credits is not None:
            payload["maxCredits"] = max_credits

        result = await self._call("POST", "/agent", payload)
        if not result.get("success"):
            raise ServiceError("Firecrawl agent request failed", body=str(result))

        data = result.get("data")
        if result.get("id") and not data:
            logger.info("Agent job %s started, polling", result["id"])
            status = await self._poll(
                f"/agent/{result['id']}",
                label="Agent job",
                interval=self.poll_interval,
                max_attempts=self.agent_max_poll_attempts,
                token=token,
            )
            data = status["data"]

        programs = data.get("programs") if isinstance(data, dict) else None
        if not isinstance(programs, list):
            raise ServiceError("Agent response did not include a programs list", body=str(data))

        records: list[ExtractedProgram] = []
        for raw in programs:
            if not isinstance(raw, dict):
                continue
            record = ExtractedProgram.model_validate(raw)
            record.citations = collect_citations(raw)
            records.append(record)
        return records

    async def discover_urls(
        self, crawl_url: str, token: CancellationToken | None = None
    ) -> list[str]:
        """
        Crawl *crawl_url* and return the discovered page URLs.

        Follows the status endpoint's ``next`` links when results are paginated.
        URLs are de-duplicated in discovery order.
        """
        token = token or CancellationToken()
        started = await self._call(
            "POST",
            "/crawl",
            {
                "url": crawl_url,
                "limit": self.crawl_page_limit,
                "scrapeOptions": {"formats": ["markdown"]},
            },
        )
        if not started.get("success") or not started.get("id"):
            raise ServiceError("Failed to start crawl job", body=str(started))

        status = await self._poll(
            f"/crawl/{started['id']}",
            label="Crawl job",
            interval=self.crawl_poll_interval,
            max_attempts=self.crawl_max_poll_attempts,
            token=token,
        )

        pages = list(status.get("data") or [])
        next_url = status.get("next")
        while next_url:
            token.raise_if_cancelled()
            page = await self._call("GET", next_url)
            pages.extend(page.get("data") or [])
            next_url = page.get("next")

        urls = []
        for page in pages:
            source = (page.get("metadata") or {}).get("sourceURL")
            if source:
                urls.append(source)
        return list(dict.fromkeys(urls))


def get_extraction_client(api_key: str | None = None) -> FirecrawlClient:
    """Build a client from settings (raises ConfigurationError without a key)."""
    return FirecrawlClient(api_key=api_key)
