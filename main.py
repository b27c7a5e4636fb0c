from datetime import timedelta
from fastapi import FastAPI
from contextlib import asynccontextmanager
from studybot.core.config import settings
from studybot.core.db.base import async_session_maker
from studybot.core.db_services import FlashcardGenerationService
from studybot.core.errors import register_error_handlers
from studybot.core.logging import get_logger, setup_logging
from studybot.apis.auth import router as auth_router
from studybot.apis.user_profile.main import router as user_profile_router
from studybot.apis.flashcards.main import router as flashcards_router
from studybot.apis.subjects.main import router as subjects_router
from studybot.apis.quiz.main import router as quiz_router

import uvicorn
from fastapi.middleware.cors import CORSMiddleware

logger = get_logger(__name__)


async def reconcile_abandoned_generations() -> int:
    async with async_session_maker() as session:
        return await FlashcardGenerationService(session).reconcile_pending(
            older_than=timedelta(minutes=settings.generation.pending_ttl_minutes)
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Generations interrupted by a restart hold a quota slot until reconciled
    await reconcile_abandoned_generations()
    yield


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(user_profile_router)
    app.include_router(subjects_router)
    app.include_router(flashcards_router)
    app.include_router(quiz_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        logger.error(f"An error occurred when starting the server: {e}.")
