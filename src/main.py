import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.config import settings
from src.database import Base, engine
from src.exceptions import BookingEngineError
from src.routes import router as fares_router
from src.schedules import router as sailings_router
from src.bookings import router as bookings_router
from src.refunds import router as refunds_router
from src.manifests import router as manifests_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Ferry booking engine API: fares, seat allocation, bookings, reschedules and refunds",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # React dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BookingEngineError)
def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    """Errors that escape a router still get the structured payload"""
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict()})

# Include routers
app.include_router(
    fares_router,
    prefix=f"{settings.API_V1_STR}/fares",
    tags=["Fares"]
)

app.include_router(
    sailings_router,
    prefix=f"{settings.API_V1_STR}/sailings",
    tags=["Sailings"]
)

app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings & Reschedules"]
)

app.include_router(
    refunds_router,
    prefix=f"{settings.API_V1_STR}/refunds",
    tags=["Refunds"]
)

app.include_router(
    manifests_router,
    prefix=f"{settings.API_V1_STR}/manifests",
    tags=["Manifests"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Ferry Booking Engine API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

@app.get(f"{settings.API_V1_STR}/health")
def api_health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
