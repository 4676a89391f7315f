"""Password strength checker router.

Endpoints:
    POST   /api/check-password              - Analyze (optionally save) a password
    GET    /api/password-history            - Saved analyses, newest first
    DELETE /api/password-history/{id}       - Delete one saved analysis
    DELETE /api/password-history            - Delete all saved analyses
"""
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from storychain.db import get_database
from storychain.errors import NotFoundError

from .analyzer import PasswordAnalysis, analyze_password
from .service import DeleteResult, PasswordHistoryService, SavedAnalysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["passwords"])


class PasswordCheckRequest(BaseModel):
    password: Optional[str] = Field(default=None, max_length=128)
    save: bool = False


def _service() -> PasswordHistoryService:
    return PasswordHistoryService(get_database())


@router.post("/check-password", response_model=None)
def check_password(request: PasswordCheckRequest) -> Union[SavedAnalysis, PasswordAnalysis, dict]:
    """Score a password; empty input yields ``{"empty": true}``."""
    analysis = analyze_password(request.password)
    if analysis is None:
        return {"empty": True}
    if request.save:
        return _service().save(request.password, analysis)
    return analysis


@router.get("/password-history", response_model=List[SavedAnalysis])
def password_history(limit: int = Query(10, ge=1, le=100)) -> List[SavedAnalysis]:
    return _service().recent(limit)


@router.delete("/password-history/{analysis_id}", response_model=DeleteResult)
def delete_analysis(analysis_id: int) -> DeleteResult:
    try:
        _service().delete(analysis_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DeleteResult(deleted=1)


@router.delete("/password-history", response_model=DeleteResult)
def clear_history() -> DeleteResult:
    return DeleteResult(deleted=_service().clear())
