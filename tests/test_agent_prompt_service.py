"""
Tests for stored agent prompts: creation, listing and prompt-driven runs.
"""

from unittest.mock import patch

import pytest

from src.core.errors import ExtractionTimeout
from src.dtos.agent_prompt_dto import AgentPromptCreate
from src.dtos.program_dto import ExtractedProgram
from src.entities.program import Program
from src.services.agent_prompt_service import AgentPromptService


@pytest.fixture
def service(db_session, extraction_client):
    return AgentPromptService(db_session, client=extraction_client)


@pytest.fixture
def prompt(service):
    return service.create(
        AgentPromptCreate(title="Dallas groups", prompt="Find peer groups in Dallas", max_credits=25)
    )


class TestPrompts:
    def test_create_defaults_to_draft(self, prompt):
        assert prompt.id is not None
        assert prompt.status == "draft"
        assert prompt.last_run is None

    def test_list_filters_by_status(self, service, prompt):
        service.create(AgentPromptCreate(title="Live", prompt="Find forums", status="active"))

        assert [p.title for p in service.list_prompts(status="active")] == ["Live"]
        assert len(service.list_prompts()) == 2


class TestRun:
    @pytest.mark.asyncio
    async def test_missing_prompt(self, service):
        assert await service.run(404) is None

    @pytest.mark.asyncio
    async def test_second_run_updates_existing_program(self, service, prompt, extraction_client, program_data, db_session):
        extraction_client.extract_from_prompt.return_value = [
            ExtractedProgram.model_validate(program_data)
        ]

        first = await service.run(prompt.id)
        second = await service.run(prompt.id)

        assert (first["created"], first["updated"]) == (1, 0)
        assert (second["created"], second["updated"]) == (0, 1)
        assert "errors" not in prompt.last_run
        assert prompt.status == "active"
        assert db_session.query(Program).count() == 1

    @pytest.mark.asyncio
    async def test_invalid_records_counted(self, service, prompt, extraction_client):
        extraction_client.extract_from_prompt.return_value = [
            ExtractedProgram(name="No Address Fellowship", city="Austin")
        ]

        stats = await service.run(prompt.id)

        assert stats["failed"] == 1
        assert stats["errors"][0]["name"] == "No Address Fellowship"
        assert "Missing required field: address" in stats["errors"][0]["error"]
        assert prompt.last_run["failed"] == 1

    @pytest.mark.asyncio
    async def test_agent_failure_marks_errored(self, service, prompt, extraction_client):
        extraction_client.extract_from_prompt.side_effect = ExtractionTimeout(
            "Agent job timed out", attempts=150
        )

        with pytest.raises(ExtractionTimeout):
            await service.run(prompt.id)

        assert prompt.status == "errored"
        assert prompt.last_run["errors"] == [{"error": "Agent job timed out"}]

    @pytest.mark.asyncio
    async def test_passes_credit_limit(self, service, prompt, extraction_client):
        await service.run(prompt.id)

        extraction_client.extract_from_prompt.assert_awaited_once()
        call = extraction_client.extract_from_prompt.call_args
        assert call.args == ("Find peer groups in Dallas",)
        assert call.kwargs["max_credits"] == 25

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_leave_prompt_processing(self, service, prompt, extraction_client, program_data):
        extraction_client.extract_from_prompt.return_value = [
            ExtractedProgram.model_validate(program_data)
        ]

        with patch.object(service.store, "save", side_effect=RuntimeError("connection reset")):
            with pytest.raises(RuntimeError):
                await service.run(prompt.id)

        assert prompt.status == "errored"
        assert prompt.last_run["errors"] == [{"error": "connection reset"}]
