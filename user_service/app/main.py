import logging
import time
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .core.config import get_settings
from .core.database import Base, check_db_connection, create_db_engine, create_session_factory
from .models import user  # noqa: F401
from .routers import users

logger = logging.getLogger(__name__)


def create_tables(engine) -> bool:
    """Create database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        return False


def create_app(settings=None) -> FastAPI:
    """Build the User Service application with its store"""
    settings = settings or get_settings()

    # Configure logging
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="User Service",
        description="Microservice for user records",
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

    app.include_router(users.router, prefix="/users", tags=["users"])

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
        """Initialize database on startup"""
        logger.info("Starting User Service...")
        if create_tables(app.state.engine):
            logger.info("Database initialized successfully")
        else:
            logger.error("Database initialization failed")
        logger.info("User Service startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info("Shutting down User Service...")
        app.state.engine.dispose()
        logger.info("User Service shutdown completed")

    @app.get("/")
    def read_root():
        """Root endpoint"""
        return {"message": "User Service is running!", "service": settings.service_name}

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        db_healthy = check_db_connection(app.state.engine)
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "healthy" if db_healthy else "unhealthy",
            "database": "connected" if db_healthy else "disconnected",
            "timestamp": time.time()
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("user_service.app.main:app", host="0.0.0.0", port=get_settings().port)
