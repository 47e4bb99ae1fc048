import logging
import time
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import Settings, get_settings
from .core.database import check_db_connection, create_db_engine, create_session_factory, init_db
from .core.rabbitmq import RabbitMQPublisher
from .routers import tasks

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    publisher: Optional[RabbitMQPublisher] = None
) -> FastAPI:
    """Build the Task Service application with its store and publisher"""
    settings = settings or get_settings()

    # Configure logging
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Task Service",
        description="Microservice for task records and task-created events",
        version=__version__
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = create_db_engine(settings.database_url, echo=settings.debug)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.publisher = publisher or RabbitMQPublisher.from_settings(settings)

    app.include_router(
        tasks.router,
        prefix=settings.api_prefix + "/tasks",
        tags=["tasks"]
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies get the same shape as missing fields"""
        logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid request body"}
        )

    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup"""
        logger.info("Starting Task Service...")
        if init_db(app.state.engine):
            logger.info("Database initialized successfully")
        else:
            logger.error("Database initialization failed")

        try:
            if app.state.publisher.connect():
                logger.info("RabbitMQ connection established")
            else:
                logger.warning("RabbitMQ connection failed - events will not be published")
        except Exception as e:
            logger.error(f"Startup error connecting to RabbitMQ: {e}")

        logger.info("Task Service startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info("Shutting down Task Service...")
        app.state.publisher.close()
        app.state.engine.dispose()
        logger.info("Task Service shutdown completed")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "running",
            "message": "Task Service is operational"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        db_healthy = check_db_connection(app.state.engine)
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "healthy" if db_healthy else "unhealthy",
            "database": "connected" if db_healthy else "disconnected",
            "rabbitmq": app.state.publisher.state.value,
            "timestamp": time.time()
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("task_service.app.main:app", host="0.0.0.0", port=get_settings().port)
