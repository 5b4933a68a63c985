from fastapi import APIRouter

from app.api.deps import CurrentAgent, MotiveCatalog
from app.schemas.closure_motive import ClosureMotiveResponse

router = APIRouter()


@router.get("", response_model=list[ClosureMotiveResponse])
async def list_closure_motives(
    catalog: MotiveCatalog,
    current_agent: CurrentAgent,
):
    """Closure motive catalog for the manual override selector."""
    return await catalog.list_motives()
