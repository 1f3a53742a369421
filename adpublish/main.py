import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adpublish.async_db import create_tables
from adpublish.publish_api import publish_router
from adpublish.services.publishing.scheduler import start_scheduler, stop_scheduler
from adpublish.settings import settings

logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title="Ad Publisher", version="0.1.0", lifespan=lifespan)
app.include_router(publish_router)
