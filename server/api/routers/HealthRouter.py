from fastapi import APIRouter, Request

health_router = APIRouter(tags=["Health"])


@health_router.get("/healthz")
async def handle_health(request: Request) -> dict:
    """Liveness plus the indexed chunk count; no backend is contacted besides the vector store."""
    services = request.app.state.services
    return {"status": "ok", "indexed_chunks": await services.vector_index.count()}
