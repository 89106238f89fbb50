from fastapi import FastAPI
import config
from logging_config import setup_logging

from routers.chat import router as chat_router
from routers.health import router as health_router
from routers.prompt import router as prompt_router
from routers.voice import router as voice_router


def create_app() -> FastAPI:
    config.load_config()

    setup_logging(config.LOG_PATH)

    app = FastAPI(title="frontdesk")
    app.include_router(health_router)
    app.include_router(prompt_router)
    app.include_router(chat_router)
    app.include_router(voice_router)

    return app
