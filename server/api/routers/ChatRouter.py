"""Chat router: the four answer modes."""

from fastapi import APIRouter, Depends, Request

from server.models.requests import AgenticRequest, DeepSearchRequest, RagChatRequest, StandardChatRequest
from server.models.responses import ChatResponse
from shared.dependencies.auth import verify_api_key

chat_router = APIRouter(prefix="/chat", tags=["Chat"], dependencies=[Depends(verify_api_key)])


@chat_router.post("/standard", response_model=ChatResponse)
async def handle_standard(request: Request, body: StandardChatRequest) -> ChatResponse:
    history = [turn.model_dump() for turn in body.history]
    answer = await request.app.state.services.chat.answer_standard(body.query, history=history, system_prompt=body.system_prompt)
    return ChatResponse.from_answer(answer)


@chat_router.post("/rag", response_model=ChatResponse)
async def handle_rag(request: Request, body: RagChatRequest) -> ChatResponse:
    """Answer from one uploaded document; low-confidence retrieval falls back as configured."""
    request.app.state.logging.info("RAG query owner=%s file=%s query=%r", body.owner_id, body.file_id, body.query[:80])
    answer = await request.app.state.services.chat.answer_rag(
        body.query, owner_id=body.owner_id, file_id=body.file_id, allow_deep_search=body.allow_deep_search
    )
    return ChatResponse.from_answer(answer)


@chat_router.post("/deep-search", response_model=ChatResponse)
async def handle_deep_search(request: Request, body: DeepSearchRequest) -> ChatResponse:
    history = [turn.model_dump() for turn in body.history]
    answer = await request.app.state.services.chat.answer_deep_search(body.query, history=history)
    return ChatResponse.from_answer(answer)


@chat_router.post("/agentic", response_model=ChatResponse)
async def handle_agentic(request: Request, body: AgenticRequest) -> ChatResponse:
    answer = await request.app.state.services.chat.answer_agentic(body.query, owner_id=body.owner_id)
    return ChatResponse.from_answer(answer)
