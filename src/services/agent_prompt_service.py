"""
Stored prompt-driven extraction runs.

Running a prompt asks the extraction agent for every matching program,
normalizes and saves each one (citations kept on the record), and stores a
summary of the run on the prompt.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from src.core.cancellation import CancellationToken
from src.core.errors import StorageError
from src.core.extraction_client import ExtractionClient, get_extraction_client
from src.dtos.agent_prompt_dto import AgentPromptCreate
from src.dtos.program_dto import ExtractedProgram
from src.entities.agent_prompt import AgentPrompt
from src.entities.base import utcnow
from src.repositories.agent_prompt_repo import AgentPromptRepository
from src.services.program_normalizer import normalize
from src.services.program_store import ProgramStore

logger = logging.getLogger(__name__)

PROMPT_ACTIVE = "active"
PROMPT_PROCESSING = "processing"
PROMPT_ERRORED = "errored"


class AgentPromptService:
    def __init__(
        self,
        session: Session,
        client: ExtractionClient | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.session = session
        self._client = client
        self.token = token or CancellationToken()
        self.prompt_repo = AgentPromptRepository(session)
        self.store = ProgramStore(session)

    @property
    def client(self) -> ExtractionClient:
        if self._client is None:
            self._client = get_extraction_client()
        return self._client

    def create(self, data: AgentPromptCreate) -> AgentPrompt:
        return self.prompt_repo.create(AgentPrompt(**data.model_dump()))

    def list_prompts(self, status: str | None = None, limit: int = 100) -> list[AgentPrompt]:
        return self.prompt_repo.list_prompts(status=status, limit=limit)

    async def run(self, prompt_id: int) -> dict[str, Any] | None:
        """
        Run a stored prompt and save the programs it returns.

        Args:
            prompt_id: AgentPrompt id

        Returns:
            Run summary (total, created, updated, failed, errors), or None
            if the prompt does not exist

        Raises:
            Exception: The agent call or the run itself failed; the prompt
                is marked errored with the failure recorded in last_run
        """
        prompt = self.prompt_repo.get_by_id(prompt_id)
        if prompt is None:
            return None

        self.prompt_repo.apply(prompt, {"status": PROMPT_PROCESSING})
        logger.info("Running agent prompt %s: %r", prompt.id, prompt.title)

        stats: dict[str, Any] = {"total": 0, "created": 0, "updated": 0, "failed": 0, "errors": []}
        try:
            records = await self.client.extract_from_prompt(
                prompt.prompt, max_credits=prompt.max_credits, token=self.token
            )
            self._save_all(records, stats)
        except Exception as e:
            logger.exception("Agent prompt %s failed", prompt.id)
            stats["failed"] += 1
            stats["errors"].append({"error": str(e)})
            self._finish(prompt, PROMPT_ERRORED, stats)
            raise

        logger.info(
            "Agent prompt %s complete: %d total, %d created, %d updated, %d failed",
            prompt.id,
            stats["total"],
            stats["created"],
            stats["updated"],
            stats["failed"],
        )
        self._finish(prompt, PROMPT_ACTIVE, stats)
        return stats

    def _save_all(self, records: list[ExtractedProgram], stats: dict[str, Any]) -> None:
        stats["total"] = len(records)
        for raw in records:
            result = normalize(raw)
            if not result.ok:
                stats["failed"] += 1
                stats["errors"].append(
                    {"name": raw.name, "error": "; ".join(map(str, result.errors))}
                )
                continue
            try:
                outcome = self.store.save(result.record, citations=raw.citations)
            except StorageError as e:
                stats["failed"] += 1
                stats["errors"].append({"name": raw.name, "error": str(e)})
                continue
            stats[outcome.action] += 1

    def _finish(self, prompt: AgentPrompt, status: str, stats: dict[str, Any]) -> None:
        last_run = {"timestamp": utcnow().isoformat(), **stats}
        if not last_run["errors"]:
            del last_run["errors"]
        self.prompt_repo.apply(prompt, {"status": status, "last_run": last_run})
