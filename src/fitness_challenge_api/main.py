"""Main FastAPI application."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fitness_challenge_api.api.routes import router
from fitness_challenge_api.api.cron_routes import router as cron_router
from fitness_challenge_api.config import settings

app = FastAPI(title="Fitness Challenge API")

# Configure CORS to allow requests from the UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.SITE_URL, "http://localhost:3000", "http://localhost:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(cron_router)
