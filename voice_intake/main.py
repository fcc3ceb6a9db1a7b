"""FastAPI application entry point for the voice order intake service."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_intake.api.conversations import create_conversations_router
from voice_intake.core.config import get_settings
from voice_intake.core.errors import (
    ConversationNotFound,
    InvalidTransition,
    conversation_not_found_handler,
    invalid_transition_handler,
    unhandled_exception_handler,
)
from voice_intake.core.logging import configure_logging, request_id_middleware
from voice_intake.core.metrics import MetricsCollector
from voice_intake.dialogue.service import DialogueService
from voice_intake.memory.store import InMemoryConversationStore
from voice_intake.tools.orders import OrderSubmitter

settings = get_settings()
logger = logging.getLogger("voice_intake.app")

store = InMemoryConversationStore()
metrics = MetricsCollector()
submitter = OrderSubmitter.from_settings(settings)
dialogue_service = DialogueService(
    store,
    submitter,
    metrics=metrics,
    close_delay_seconds=settings.close_delay_seconds,
)

app = FastAPI(title=settings.app_name, version="0.1.0", docs_url="/docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

app.include_router(create_conversations_router(dialogue_service))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return basic service status for monitoring."""

    return {"status": "ok"}


@app.on_event("startup")
async def startup() -> None:
    level = configure_logging(settings.log_level)
    logger.info("Logging configured at %s level for %s environment", logging.getLevelName(level), settings.environment)
    logger.info("Orders will be submitted to %s", settings.orders_endpoint)


app.add_exception_handler(ConversationNotFound, conversation_not_found_handler)
app.add_exception_handler(InvalidTransition, invalid_transition_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/metrics", tags=["metrics"])
async def metrics_endpoint() -> dict:
    snapshot = metrics.snapshot()
    return {
        "utterances": snapshot.utterances,
        "prompts": snapshot.prompts,
        "submissions": snapshot.submissions,
        "active_conversations": len(dialogue_service),
    }
