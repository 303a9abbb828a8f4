import uvicorn
from fastapi import FastAPI

from lms_quiz.api.routes.health import router as health_router
from lms_quiz.api.routes.internal_attempts import router as internal_attempts_router
from lms_quiz.core.config import get_settings
from lms_quiz.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    app = FastAPI(
        title="LMS Quiz Attempts API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(internal_attempts_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "lms_quiz.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
