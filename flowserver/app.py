"""FastAPI application for saving and publishing process graphs."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowserver import process_db
from flowserver.db import init_all
from flowserver.logging_config import configure_logging
from flowserver.workflow_routes import router as workflow_router

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and initialize database tables on startup."""
    configure_logging()
    init_all()
    yield


app = FastAPI(
    title="Flowgraph API",
    description="API server that stores process graphs and publishes them as work items",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(workflow_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "db": str(process_db.FLOW_DB_PATH),
        "endpoints": {
            "workflow": "/api/workflow/{project_id}",
            "publish": "/api/workflow/{project_id}/publish",
            "tasks": "/api/workflow/{project_id}/tasks",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
