"""
FastAPI Service for Agent Run Traces
Ingests run traces from agent frameworks and serves them back with analytics
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from ..config import ServiceConfig, configure_logging, load_config
from ..errors import FieldError, NotFoundError, StorageError, ValidationError
from ..pipeline import ingest_trace_async, load_run_analytics_async
from ..storage.store import RunQuery, TraceStore, create_store
from ..trace.schemas import RUN_PAYLOAD_SCHEMA, Framework, RunStatus

logger = logging.getLogger(__name__)


def get_store(request: Request) -> TraceStore:
    return request.app.state.store


def create_app(store: Optional[TraceStore] = None, config: Optional[ServiceConfig] = None) -> FastAPI:
    """
    Build the API application.
    The store is initialized when the app starts and closed when it stops.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        app.state.store.initialize()
        logger.info("Runscope API started")
        yield
        app.state.store.close()
        logger.info("Runscope API stopped")

    app = FastAPI(
        title="Runscope Agent Trace API",
        description="Record agent runs with their steps and tool calls, and inspect them with analytics",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.config = config
    app.state.store = store or create_store(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error mapping: domain errors -> HTTP status classes

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": str(exc), "details": [e.to_dict() for e in exc.errors]}
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal error"})

    # REST API Endpoints

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/api/schema")
    async def get_trace_schema():
        """Return the JSON schema accepted by the ingest endpoint"""
        return RUN_PAYLOAD_SCHEMA

    @app.post("/api/ingest", status_code=201)
    async def ingest(request: Request):
        """Validate and store one run trace"""
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError([FieldError(path="", message=f"request body is not valid JSON: {e}")])

        run = await ingest_trace_async(get_store(request), payload)
        logger.info(f"Ingested run {run.id} ({run.framework.value}, {len(run.steps)} steps)")
        return {"id": run.id}

    @app.get("/api/runs")
    async def list_runs(
        request: Request,
        status: Optional[RunStatus] = None,
        framework: Optional[Framework] = None,
        q: Optional[str] = None,
        limit: Optional[int] = Query(default=None, ge=1, le=1000)
    ):
        """List runs, newest first, with optional filtering"""
        query = RunQuery(status=status, framework=framework, q=q, limit=limit)
        runs = await get_store(request).list_runs_async(query)
        return {"runs": [r.to_dict() for r in runs]}

    @app.get("/api/runs/{run_id}")
    async def get_run(request: Request, run_id: str):
        """Get a run with its tags, steps and tool calls"""
        run = await get_store(request).get_run_async(run_id)
        return run.to_dict()

    @app.get("/api/runs/{run_id}/analytics")
    async def get_run_analytics(request: Request, run_id: str):
        """Get a run together with its derived timing and success analytics"""
        run, analytics = await load_run_analytics_async(get_store(request), run_id)
        return {"run": run.to_dict(), "analytics": analytics.to_dict()}

    @app.delete("/api/runs/{run_id}")
    async def delete_run(request: Request, run_id: str):
        """Delete a run and everything it owns; tags are kept"""
        await get_store(request).delete_run_async(run_id)
        return {"ok": True}

    return app


app = create_app()


def main():
    """Run the API server"""
    config = load_config()
    configure_logging(config.log_level)
    uvicorn.run(
        "runscope.api.service:app",
        host=config.host,
        port=config.port
    )


if __name__ == "__main__":
    main()
