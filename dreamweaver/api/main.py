"""
Dream journal HTTP API.

Dream writes go to the relational store first; vector side effects are
scheduled as background tasks and never delay or fail the response.
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional
import hmac
import sqlite3
import time
import uuid

from fastapi import FastAPI, HTTPException, Depends, Header, Request, BackgroundTasks
from fastapi.responses import JSONResponse

from .schemas import (
    DreamCreateRequest,
    DreamUpdateRequest,
    DreamResponse,
    DreamListResponse,
    SimilarRequest,
    SimilarDreamResponse,
    SimilarResponse,
    AdminRequest,
    SyncPublicResponse,
    DriftResponse,
    HealthResponse
)
from ..core.dao import (
    create_dream,
    get_dream,
    list_dreams,
    list_public_dreams,
    update_dream,
    delete_dream,
    get_dream_count
)
from ..core.db import init_db, health_check
from ..core.config import (
    VERSION,
    API_HOST,
    API_PORT,
    EMBED_PROVIDER,
    VECTOR_PROVIDER,
    debug_enabled,
    get_admin_secret,
    get_correction_mode,
    validate_vector_config
)
from ..core.corrections import run_drift_audit, sync_public_dreams
from ..core.schema import Dream, DreamAnalysis, DreamSymbol
from ..core.search_service import SimilaritySearchError, find_similar_dreams
from ..core.vectorization import DreamVectorizationService
from ..vector.errors import VectorServiceError
from ..util.logging import logger


# Edits to these fields change what gets embedded
EMBEDDED_FIELDS = ('content', 'mood', 'clarity')

# Columns that may not be cleared with an explicit null
NON_NULLABLE_FIELDS = ('content', 'mood', 'clarity', 'is_recurring', 'is_public')


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    for issue in validate_vector_config():
        logger.warning(f"Vector configuration issue: {issue}")
    app.state.vectorization_service = DreamVectorizationService.from_config()
    logger.info(f"Vector backends ready: embeddings={EMBED_PROVIDER}, store={VECTOR_PROVIDER}")
    yield


app = FastAPI(
    title="Dream Weaver API",
    version=VERSION,
    description="Dream journal with semantic similarity over private and public dreams",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan
)


def get_vectorization_service(request: Request) -> DreamVectorizationService:
    """The service built at startup."""
    service = getattr(request.app.state, "vectorization_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Vectorization service not initialized")
    return service


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Identity supplied by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def _check_admin_secret(secret: str):
    expected = get_admin_secret()
    if not expected or not hmac.compare_digest(secret.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _run_vector_task(operation: str, dream_id: str, func, *args):
    """Run a vector side effect; failures are logged and left for drift correction."""
    try:
        result = func(*args)
    except Exception as e:
        logger.error(f"Vector task {operation} for dream '{dream_id}' raised: {e}")
        return

    if not result.success:
        logger.log_vector_operation(operation, dream_id, {"error": (result.error or "")[:200]}, status="failed")


def _to_analysis(model) -> Optional[DreamAnalysis]:
    if model is None:
        return None
    return DreamAnalysis(
        emotional_analysis=model.emotional_analysis or "",
        creative_story=model.creative_story or "",
        themes=list(model.themes or []),
        symbols=[DreamSymbol(name=s.name, meaning=s.meaning, type=s.type) for s in model.symbols or []]
    )


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    dream_count = get_dream_count() if db_health else 0

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        dream_count=dream_count,
        embedding_provider=EMBED_PROVIDER,
        vector_store=VECTOR_PROVIDER,
        config_issues=validate_vector_config()
    )


@app.post("/dreams", response_model=DreamResponse, status_code=201)
def create_dream_endpoint(request: DreamCreateRequest, background_tasks: BackgroundTasks,
                          user_id: str = Depends(get_current_user),
                          service: DreamVectorizationService = Depends(get_vectorization_service)):
    """Record a dream and index it in the background."""
    dream_id = request.id or str(uuid.uuid4())
    if get_dream(dream_id) is not None:
        raise HTTPException(status_code=409, detail=f"Dream already exists: {dream_id}")

    dream = Dream(
        id=dream_id,
        owner_id=user_id,
        content=request.content,
        mood=request.mood,
        clarity=request.clarity,
        timestamp=request.timestamp or int(time.time() * 1000),
        is_recurring=request.is_recurring,
        is_public=request.is_public,
        reality_connection=request.reality_connection,
        image_url=request.image_url,
        analysis=_to_analysis(request.analysis)
    )

    try:
        created = create_dream(dream)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail=f"Dream already exists: {dream_id}")

    # vectorize also mirrors public dreams
    background_tasks.add_task(_run_vector_task, "vectorize", created.id, service.vectorize, created, user_id)
    return DreamResponse.from_dream(created)


@app.get("/dreams", response_model=DreamListResponse)
def list_dreams_endpoint(user_id: str = Depends(get_current_user)):
    """The caller's dreams, newest first."""
    return DreamListResponse(dreams=[DreamResponse.from_dream(d) for d in list_dreams(user_id)])


# Defined before /dreams/{dream_id} so "public" is not taken as an id
@app.get("/dreams/public", response_model=DreamListResponse)
def list_public_dreams_endpoint(limit: int = 10):
    """Public feed across all users."""
    if limit < 1:
        raise HTTPException(status_code=400, detail="limit must be positive")
    return DreamListResponse(dreams=[DreamResponse.from_dream(d) for d in list_public_dreams(limit)])


@app.get("/dreams/{dream_id}", response_model=DreamResponse)
def get_dream_endpoint(dream_id: str, user_id: str = Depends(get_current_user)):
    dream = get_dream(dream_id)
    if dream is None or (dream.owner_id != user_id and not dream.is_public):
        raise HTTPException(status_code=404, detail="Dream not found")
    return DreamResponse.from_dream(dream)


@app.put("/dreams/{dream_id}", response_model=DreamResponse)
def update_dream_endpoint(dream_id: str, request: DreamUpdateRequest, background_tasks: BackgroundTasks,
                          user_id: str = Depends(get_current_user),
                          service: DreamVectorizationService = Depends(get_vectorization_service)):
    """
    Partially update a dream.

    Content, mood, clarity or analysis edits re-vectorize the dream; a
    visibility change publishes or unpublishes it. Other edits leave the
    index alone.
    """
    existing = get_dream(dream_id, user_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Dream not found")

    changes = request.model_dump(exclude_unset=True, exclude={"analysis"})
    changes = {k: v for k, v in changes.items() if v is not None or k not in NON_NULLABLE_FIELDS}

    analysis = None
    if request.analysis is not None:
        analysis = request.analysis.model_dump(exclude_unset=True, exclude={"symbols"})
        if request.analysis.symbols is not None:
            analysis["symbols"] = [DreamSymbol(name=s.name, meaning=s.meaning, type=s.type)
                                   for s in request.analysis.symbols]

    updated = update_dream(dream_id, user_id, changes, analysis)
    if updated is None:
        raise HTTPException(status_code=404, detail="Dream not found")

    embedded_changed = analysis is not None or any(
        field in changes and changes[field] != getattr(existing, field) for field in EMBEDDED_FIELDS
    )
    visibility_changed = updated.is_public != existing.is_public

    if embedded_changed:
        background_tasks.add_task(_run_vector_task, "vectorize", dream_id, service.vectorize, updated, user_id)
    # A public dream re-vectorized above is already mirrored
    if visibility_changed and not (embedded_changed and updated.is_public):
        background_tasks.add_task(_run_vector_task, "set_public_visibility", dream_id,
                                  service.set_public_visibility, updated, user_id, updated.is_public)

    return DreamResponse.from_dream(updated)


@app.delete("/dreams/{dream_id}")
def delete_dream_endpoint(dream_id: str, background_tasks: BackgroundTasks,
                          user_id: str = Depends(get_current_user),
                          service: DreamVectorizationService = Depends(get_vectorization_service)):
    """Delete a dream and drop its vectors in the background."""
    existing = get_dream(dream_id, user_id)
    if existing is None or not delete_dream(dream_id, user_id):
        raise HTTPException(status_code=404, detail="Dream not found")

    background_tasks.add_task(_run_vector_task, "remove", dream_id, service.remove, dream_id, user_id)
    if existing.is_public:
        background_tasks.add_task(_run_vector_task, "remove_public", dream_id, service.remove_public, dream_id)

    return {"success": True, "id": dream_id}


@app.post("/dreams/similar", response_model=SimilarResponse)
def similar_dreams_endpoint(request: SimilarRequest, user_id: str = Depends(get_current_user),
                            service: DreamVectorizationService = Depends(get_vectorization_service)):
    """Dreams semantically close to a draft or an existing dream."""
    try:
        similar = find_similar_dreams(
            service,
            owner_id=user_id,
            query_text=request.dream_content,
            limit=request.limit,
            include_public=request.include_public,
            exclude_id=request.dream_id
        )
    except SimilaritySearchError as e:
        raise HTTPException(status_code=500, detail={"error": "Vector search failed", "details": str(e)})

    dreams = [
        SimilarDreamResponse(**DreamResponse.from_dream(s.dream).model_dump(), similarity_score=s.similarity_score)
        for s in similar
    ]
    return SimilarResponse(dreams=dreams, count=len(dreams))


@app.post("/admin/sync-public", response_model=SyncPublicResponse)
def sync_public_endpoint(request: AdminRequest,
                         service: DreamVectorizationService = Depends(get_vectorization_service)):
    """Re-mirror every public dream into the public namespace."""
    _check_admin_secret(request.secret)

    outcome = sync_public_dreams(service)
    return SyncPublicResponse(
        success=not outcome["errors"],
        synced=len(outcome["synced"]),
        errors=outcome["errors"]
    )


@app.post("/admin/drift", response_model=DriftResponse)
def drift_endpoint(request: AdminRequest,
                   service: DreamVectorizationService = Depends(get_vectorization_service)):
    """Audit the vector index against the dream store and run corrections."""
    _check_admin_secret(request.secret)

    mode = request.mode or get_correction_mode()
    try:
        findings, results = run_drift_audit(service, owner_id=request.owner_id, mode=mode)
    except VectorServiceError as e:
        raise HTTPException(status_code=503, detail=f"Drift audit failed: {e}")

    return DriftResponse(
        mode=mode,
        findings=[asdict(f) for f in findings],
        results=[asdict(r) for r in results]
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    content = {"detail": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def run():
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run("dreamweaver.api.main:app", host=API_HOST, port=API_PORT, log_level="debug" if debug_enabled() else "info")
