"""FastAPI application entry point for the document chat API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.ChatRouter import chat_router
from server.api.routers.ContentRouter import content_router
from server.api.routers.FileRouter import file_router
from server.api.routers.HealthRouter import health_router
from server.api.services.AppServices import AppServices
from server.models.responses import ErrorResponse
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.websearch.WebSearchClientManager import WebSearchClientManager
from shared.exceptions.errors import ChatCoreError, ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

load_dotenv()
logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = logging
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    services = AppServices(
        helper_config=app.state.config,
        llm_client=LLMClientManager(app.state.config).get_client(),
        embed_client=EmbedClientManager(app.state.config).get_client(),
        rag_client=RAGClientManager(app.state.config).get_client(),
        web_search_client=WebSearchClientManager(app.state.config).get_client(),
    )
    await services.boot()
    app.state.services = services

    app.state.logging.info("Document chat API ready.")
    yield

    # Shutdown
    await services.close()
    app.state.logging.info("Document chat API shut down.")


def register_routes(app: FastAPI) -> None:
    """Attach routers and the error handler; shared with test apps that skip the lifespan."""

    @app.exception_handler(ChatCoreError)
    async def handle_chat_core_error(request: Request, exc: ChatCoreError) -> JSONResponse:
        kind = exc.kind.value if isinstance(exc, ProviderError) else None
        if exc.status_code >= 500:
            request.app.state.logging.error("%s: %s", exc.__class__.__name__, exc.message)
        body = ErrorResponse(error=exc.__class__.__name__, message=exc.message, kind=kind)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        request.app.state.logging.error("Unhandled %s on %s: %s", exc.__class__.__name__, request.url.path, exc)
        body = ErrorResponse(error="InternalError", message="An unexpected error occurred.")
        return JSONResponse(status_code=500, content=body.model_dump())

    app.include_router(health_router)
    app.include_router(file_router)
    app.include_router(chat_router)
    app.include_router(content_router)


app = FastAPI(
    title="Document Chat",
    description="Document-augmented chat: RAG, deep web search and agentic tasks over uploaded files.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_routes(app)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting document chat API v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
