import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import get_assistant
from src.api.routes.conversations import router as conversations_router
from src.api.routes.extraction import router as extraction_router
from src.api.routes.messages import router as messages_router
from src.config import settings
from src.conversation.store import run_periodic_sweep

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store = get_assistant().flow.store
    sweeper = asyncio.create_task(run_periodic_sweep(store, settings.sweep_interval_seconds))
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title="Task Assistant API",
    description="Turns chat messages into tasks and calendar events",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(messages_router)
app.include_router(conversations_router)
app.include_router(extraction_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
