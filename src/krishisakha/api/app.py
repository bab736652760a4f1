"""FastAPI application exposing the Krishi Sakha advisory pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from krishisakha.api.schemas import AdviceRequest, AdviceResponse, HistoryItem, HistoryResponse, SourceModel
from krishisakha.config import Settings, get_settings
from krishisakha.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from krishisakha.models import AdvisoryResponse
from krishisakha.nlp import InvalidQuery
from krishisakha.services.advisory import AdvisoryPipeline
from krishisakha.storage import HistoryRecorder, HistoryStore, InMemoryHistoryStore, QueryRecord


@dataclass(frozen=True)
class AppDependencies:
    pipeline: AdvisoryPipeline
    history: HistoryStore
    recorder: HistoryRecorder


def _build_dependencies(settings: Settings) -> AppDependencies:
    history = InMemoryHistoryStore()
    recorder = HistoryRecorder(
        history,
        max_attempts=settings.history_max_attempts,
        retry_delay=settings.history_retry_delay_seconds,
    )
    return AppDependencies(pipeline=AdvisoryPipeline.from_settings(settings), history=history, recorder=recorder)


def _to_response_model(response: AdvisoryResponse, record_id: str | None) -> AdviceResponse:
    return AdviceResponse(
        query=response.query,
        answer=response.answer_text,
        sources=[
            SourceModel(
                source=source.source,
                type=source.type,
                confidence=source.confidence,
                freshness=source.freshness,
                citation=source.citation,
            )
            for source in response.sources
        ],
        confidence=response.confidence,
        factual_basis=response.factual_basis,
        language=response.language,
        detected_language=response.detected_language,
        grounded=response.grounded,
        disclaimer=response.disclaimer,
        generated_content=list(response.generated_content),
        record_id=record_id,
    )


class RateLimiter:
    """Sliding-window request limit per client address and path."""

    def __init__(self, requests: int, window_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self.requests = requests
        self.window = window_seconds
        self._clock = clock
        self._buckets: dict[str, list[float]] = {}

    def __call__(self, request: Request) -> None:
        client_ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "-")
        if not self.allow(f"{client_ip}:{request.url.path}"):
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")

    def allow(self, key: str) -> bool:
        now = self._clock()
        cutoff = now - self.window
        # Buckets whose newest hit has expired are dropped entirely.
        for stale in [name for name, hits in self._buckets.items() if not hits or hits[-1] < cutoff]:
            del self._buckets[stale]
        bucket = self._buckets.setdefault(key, [])
        while bucket and bucket[0] < cutoff:
            bucket.pop(0)
        if len(bucket) >= self.requests:
            return False
        bucket.append(now)
        return True

    def __len__(self) -> int:
        return len(self._buckets)


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or _build_dependencies(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="Krishi Sakha API", version="0.1.0")
    app.state.dependencies = deps

    # Optional CORS
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    # Security dependencies
    def require_api_key(request: Request) -> None:
        expected = settings.api_key
        if not expected:
            return
        provided = request.headers.get("X-API-Key")
        if provided != expected:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    rate_limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)
    app.state.rate_limiter = rate_limiter

    def require_user(x_user_id: str | None = Header(default=None)) -> str:
        user_id = (x_user_id or "").strip()
        if not user_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-ID header")
        return user_id

    @app.exception_handler(InvalidQuery)
    async def handle_invalid_query(request: Request, exc: InvalidQuery) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.info("advice.invalid_query", correlation_id=correlation_id)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message, "correlation_id": correlation_id},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "correlation_id": correlation_id},
        )

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    @app.post("/advice", response_model=AdviceResponse)
    async def advise(
        payload: AdviceRequest,
        background_tasks: BackgroundTasks,
        x_user_id: str | None = Header(default=None),
        deps: AppDependencies = Depends(get_dependencies),
        _auth: None = Depends(require_api_key),
        _rl: None = Depends(rate_limiter),
    ) -> AdviceResponse:
        response = await deps.pipeline.advise(payload.question, language=payload.language)
        record_id = None
        user_id = (x_user_id or "").strip()
        if user_id:
            record = QueryRecord.from_response(user_id, payload.question, response)
            background_tasks.add_task(deps.recorder.write, record)
            record_id = record.record_id
        return _to_response_model(response, record_id)

    @app.get("/history", response_model=HistoryResponse)
    async def list_history(
        limit: int | None = None,
        user_id: str = Depends(require_user),
        deps: AppDependencies = Depends(get_dependencies),
        _auth: None = Depends(require_api_key),
    ) -> HistoryResponse:
        effective = settings.history_limit if limit is None else max(0, min(limit, 100))
        records = deps.history.list_recent(user_id, effective)
        return HistoryResponse(
            items=[
                HistoryItem(
                    record_id=record.record_id,
                    query_text=record.query_text,
                    original_query_text=record.original_query_text,
                    detected_language=record.detected_language,
                    language=record.language,
                    advice=record.advice,
                    confidence=record.confidence,
                    factual_basis=record.factual_basis,
                    created_at=record.created_at,
                )
                for record in records
            ]
        )

    @app.delete("/history/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_history(
        record_id: str,
        user_id: str = Depends(require_user),
        deps: AppDependencies = Depends(get_dependencies),
        _auth: None = Depends(require_api_key),
    ) -> Response:
        if not deps.history.delete(record_id, user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="History record not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from krishisakha import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    return app


app = create_app()
