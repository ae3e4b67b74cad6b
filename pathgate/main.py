from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from pathgate.config import Settings
from pathgate.controllers import v1
from pathgate.db import init_db
from pathgate.logger import setup_logging

settings = Settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db, settings)
    logger.info("pathgate started, timezone %s", settings.timezone)
    yield


app = FastAPI(
    title="Pathgate Entitlement API",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(v1.router)

Instrumentator().instrument(app).expose(app)
