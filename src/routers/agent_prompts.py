from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.core.database import get_db
from src.core.security import verify_api_key
from src.dtos.agent_prompt_dto import AgentPromptCreate, AgentPromptRead
from src.services.agent_prompt_service import AgentPromptService

router = APIRouter(prefix="/api/agent-prompts", tags=["agent-prompts"])


@router.post(
    "",
    status_code=201,
    response_model=AgentPromptRead,
    response_model_by_alias=True,
)
async def create_prompt(
    body: AgentPromptCreate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return AgentPromptService(db).create(body)


@router.get("", response_model=list[AgentPromptRead], response_model_by_alias=True)
async def list_prompts(status: str | None = None, db: Session = Depends(get_db)):
    return AgentPromptService(db).list_prompts(status=status)


@router.post("/{prompt_id}/run")
async def run_prompt(
    prompt_id: int,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    result = await AgentPromptService(db).run(prompt_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Agent prompt not found")
    return {"success": True, **result}
