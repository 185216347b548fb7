"""Content router: mind maps, reports, presentations and podcast scripts for an uploaded file."""

from fastapi import APIRouter, Depends, Request

from server.models.requests import ContentRequest
from shared.dependencies.auth import verify_api_key
from shared.models.content import GeneratedDocument, PodcastScript

content_router = APIRouter(prefix="/content", tags=["Content"], dependencies=[Depends(verify_api_key)])


async def _load(request: Request, body: ContentRequest) -> tuple[str, str]:
    text, name = await request.app.state.services.content.load_document(body.file_id, body.owner_id)
    return text, body.title or name


@content_router.post("/mindmap")
async def handle_mind_map(request: Request, body: ContentRequest) -> dict:
    text, title = await _load(request, body)
    return await request.app.state.services.content.generate_mind_map(text, title)


@content_router.post("/report", response_model=GeneratedDocument)
async def handle_report(request: Request, body: ContentRequest) -> GeneratedDocument:
    text, title = await _load(request, body)
    return await request.app.state.services.content.generate_report(text, title)


@content_router.post("/presentation", response_model=GeneratedDocument)
async def handle_presentation(request: Request, body: ContentRequest) -> GeneratedDocument:
    text, title = await _load(request, body)
    return await request.app.state.services.content.generate_presentation(text, title)


@content_router.post("/podcast", response_model=PodcastScript)
async def handle_podcast(request: Request, body: ContentRequest) -> PodcastScript:
    text, title = await _load(request, body)
    return await request.app.state.services.content.generate_podcast_script(text, title)
