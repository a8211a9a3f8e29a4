"""
Repository for directory program records.
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.entities.program import Program
from src.repositories.base_repo import BaseRepository


class ProgramRepository(BaseRepository[Program]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=Program)

    def find_duplicate(self, name: str, city: str, state: str) -> Optional[Program]:
        """Existing program with the same (name, city, state) dedup key."""
        stmt = (
            select(Program)
            .where(Program.name == name, Program.city == city, Program.state == state)
            .order_by(Program.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def create_program(
        self, fields: dict[str, Any], *, draft: bool = True, commit: bool = True
    ) -> Program:
        program = Program(status="draft" if draft else "published", **fields)
        return self.create(program, commit=commit)

    def update_program(
        self, program: Program, fields: dict[str, Any], *, commit: bool = True
    ) -> Program:
        return self.apply(program, fields, commit=commit)
