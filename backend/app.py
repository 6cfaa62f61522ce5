import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.routes import router
from storyteller.config import Settings, load_settings
from storyteller.hub import StorytellerHub

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_CONFIG = Path(__file__).parent.parent / "storyteller.json"


def create_app(settings: Settings | None = None, hub: StorytellerHub | None = None) -> FastAPI:
    if hub is None:
        if settings is None:
            settings = load_settings(Path(os.getenv("STORYTELLER_CONFIG", str(DEFAULT_CONFIG))))
        hub = StorytellerHub(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await hub.start()
        try:
            yield
        finally:
            await hub.stop()

    app = FastAPI(title="Storyteller Hub", lifespan=lifespan)
    app.state.hub = hub
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses STORYTELLER_CONFIG env var or default)
app = create_app()
