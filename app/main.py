from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.database import get_db_client
from app.dependencies import catalog_service, expiry_sweeper
from app.exception_handlers import register_exception_handlers
from app.logger_config import logger
from app.routers import admin, event, event_seat, holder, seat_booking, seat_holding
from app.seed import seed_demo_data


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting SeatLock with the {settings.store_backend} store")
    if settings.seed_demo_data:
        await run_in_threadpool(seed_demo_data, catalog_service)
    if settings.sweeper_enabled:
        expiry_sweeper.start()
    yield
    await expiry_sweeper.stop()


# Create FastAPI app
app = FastAPI(
    title="SeatLock - Seat Reservation Core",
    description="Seat holds, automatic expiry and idempotent settlement for timed events",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(event.router)
app.include_router(event_seat.router)
app.include_router(seat_holding.router)
app.include_router(seat_booking.router)
app.include_router(holder.router)
app.include_router(admin.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "SeatLock",
        "version": "1.0.0",
        "store": settings.store_backend
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Welcome to SeatLock - Seat Reservation Core",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/db-test")
async def test_database():
    """Test DynamoDB connection"""
    if settings.store_backend != "dynamodb":
        return {"status": "skipped", "store": settings.store_backend}
    return await run_in_threadpool(get_db_client().test_connection)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
