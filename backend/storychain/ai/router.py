"""AI assist router.

Endpoints:
    POST /api/ai/continue-story - Suggest the next line of a story
"""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from storychain.config import get_config

from .service import AIUnavailableError, AIUpstreamError, StoryContinuationService

router = APIRouter(prefix="/api/ai", tags=["ai"])


class ContinueStoryRequest(BaseModel):
    storyContext: str = ""


class ContinueStoryResponse(BaseModel):
    continuation: str


def _service() -> StoryContinuationService:
    return StoryContinuationService(get_config())


@router.post("/continue-story", response_model=ContinueStoryResponse)
async def continue_story(request: ContinueStoryRequest) -> ContinueStoryResponse:
    if not request.storyContext.strip():
        raise HTTPException(status_code=400, detail="Story context is required")
    try:
        text = await _service().continue_story(request.storyContext)
    except AIUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AIUpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ContinueStoryResponse(continuation=text)
