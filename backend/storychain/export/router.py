"""Export router.

Endpoints:
    POST /api/export/pdf    - Download a chain as PDF
    POST /api/export/image  - Download a chain as PNG

Rendering is CPU-bound, so the endpoint is a plain ``def`` and runs in the
threadpool.
"""
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from storychain.db import get_database
from storychain.stories.schemas import MAX_CHAIN_ID
from storychain.stories.service import StoryService

from .renderers import StoryImageRenderer, StoryPDFRenderer, export_filename

router = APIRouter(prefix="/api/export", tags=["export"])

_FORMATS = {
    "pdf": (StoryPDFRenderer, "application/pdf", "pdf"),
    "image": (StoryImageRenderer, "image/png", "png"),
}


class ExportRequest(BaseModel):
    chainId: int = Field(..., ge=1, le=MAX_CHAIN_ID)
    title: str = Field(default="Untitled Story", max_length=200)


@router.post("/{export_format}")
def export_chain(export_format: str, request: ExportRequest) -> Response:
    if export_format not in _FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {export_format}")

    stories = StoryService(get_database()).chain(request.chainId)
    if not stories:
        raise HTTPException(status_code=404, detail="Story chain not found")

    renderer_cls, media_type, extension = _FORMATS[export_format]
    title = request.title.strip() or "Untitled Story"
    content = renderer_cls().render(title, stories)
    filename = export_filename(title, extension)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
