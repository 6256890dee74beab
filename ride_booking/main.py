import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ride_booking.config import settings
from ride_booking.engine import BookingEngine, build_engine
from ride_booking.bookings import router as bookings_router
from ride_booking.catalog import router as catalog_router
from ride_booking.fares import router as fares_router
from ride_booking.sessions import router as sessions_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(engine: Optional[BookingEngine] = None, run_sweeper: bool = True) -> FastAPI:
    """Build the API around ``engine`` (a default engine is built on startup)"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = engine or build_engine()
        sweeper = None
        if run_sweeper:
            sweeper = asyncio.create_task(app.state.engine.run_expiry_sweeper())
        logger.info("%s started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
        try:
            yield
        finally:
            if sweeper:
                app.state.engine.stop_sweeper()
                sweeper.cancel()
                try:
                    await sweeper
                except asyncio.CancelledError:
                    pass
            logger.info("%s stopped", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Ride booking engine API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        catalog_router,
        prefix=settings.API_V1_STR,
        tags=["Trips"]
    )

    app.include_router(
        fares_router,
        prefix=f"{settings.API_V1_STR}/fares",
        tags=["Fares & Discounts"]
    )

    app.include_router(
        sessions_router,
        prefix=f"{settings.API_V1_STR}/sessions",
        tags=["Booking Sessions"]
    )

    app.include_router(
        bookings_router,
        prefix=f"{settings.API_V1_STR}/bookings",
        tags=["Bookings"]
    )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": "Ride Booking Engine API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
