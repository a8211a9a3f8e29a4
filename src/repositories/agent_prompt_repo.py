from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.entities.agent_prompt import AgentPrompt
from src.repositories.base_repo import BaseRepository


class AgentPromptRepository(BaseRepository[AgentPrompt]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=AgentPrompt)

    def list_prompts(self, status: str | None = None, limit: int = 100) -> List[AgentPrompt]:
        stmt = select(AgentPrompt).order_by(AgentPrompt.id).limit(limit)
        if status:
            stmt = stmt.where(AgentPrompt.status == status)
        return list(self.session.execute(stmt).scalars().all())
