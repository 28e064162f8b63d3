"""
Exam Sessions API: Main Application
FastAPI application for the exam attempt lifecycle: starting attempts,
auto-saving answers, submission and scoring, proctoring violations, and results.
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from database.database import engine, Base
from routers import attempts, auth_student, results

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s  %(levelname)s  %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables."""
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Exam Sessions API",
    description="Exam attempt lifecycle, scoring, analytics and proctoring log",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(auth_student.router)       # /auth/student/me
app.include_router(attempts.router)           # /attempts/*
app.include_router(results.router)            # /results/*


@app.get("/")
def root():
    return {
        "name": "Exam Sessions API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "attempts": "/attempts",
            "results": "/results",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "exam-sessions-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
