# mentorbook/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mentorbook.api import auth, availability, connection, cron, mentor, session
from mentorbook.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Schema is managed by alembic; see alembic/versions.
app = FastAPI(title="MentorBook API", debug=settings.DEBUG)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.APP_BASE_URL,
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(auth.router)          # /auth/*
app.include_router(mentor.router)        # /mentors/*
app.include_router(availability.router)  # /availability/*
app.include_router(connection.router)    # /connections/*
app.include_router(session.router)       # /sessions/*
app.include_router(cron.router)          # /internal/cron/*


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "message": "MentorBook API is running",
        "version": "0.1.0",
    }
