"""
RouteWise API - Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from routewise.utils.config import settings

# Create FastAPI app
app = FastAPI(
    title="RouteWise API",
    description="Conversational road-trip planning with daily driving limits",
    version="1.0.0"
)

# CORS middleware - allow frontend to call our API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Local development
        "http://localhost:3001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "RouteWise API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "api": "ok",
        "environment": settings.environment,
        "maps_configured": bool(settings.google_maps_api_key),
    }


# Import and include routers
from routewise.routes.trips import router as trips_router
app.include_router(trips_router)
