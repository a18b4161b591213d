"""
FastAPI application entrypoint.
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from ambient.config import Settings
from ambient.coordinator import EmotionCoordinator
from ambient.storage import KeyValueStore, store_from_settings
from api.routes import router

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def create_app(coordinator: EmotionCoordinator | None = None,
               store: KeyValueStore | None = None,
               settings: Settings | None = None) -> FastAPI:
    """
    Build the app. Collaborators default to the real camera/DeepFace/audio
    stack configured from Settings.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        coord = coordinator or EmotionCoordinator.from_settings(settings)
        app.state.coordinator = coord
        app.state.store = store or store_from_settings(settings.STORE_PATH)
        await coord.startup()
        try:
            yield
        finally:
            await coord.shutdown()

    app = FastAPI(title="Emotion Ambient Player API", version="1.0.0", lifespan=lifespan)
    app.include_router(router)

    @app.get("/health")
    def health() -> dict:
        """
        Health check endpoint.

        Returns:
            dict: Simple status payload.
        """
        return {"status": "ok"}

    return app


app = create_app()
