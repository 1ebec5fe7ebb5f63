"""API routes for file search management."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from file_search_proxy.core.client import get_genai_client
from file_search_proxy.core.config import Settings, get_settings
from file_search_proxy.core.exceptions import ValidationError
from file_search_proxy.core.logging import get_logger
from file_search_proxy.core.models import CHUNKING_PRESETS, GEMINI_MODELS
from file_search_proxy.schemas.file_search import (
    ChunkingPreset,
    ChunkingPresetListResponse,
    CreateStoreRequest,
    DocumentListResponse,
    DocumentResponse,
    FilterCheckRequest,
    FilterCheckResponse,
    MessageResponse,
    ModelInfo,
    ModelListResponse,
    Operation,
    OperationStatusResponse,
    QueryHistoryResponse,
    QueryRequest,
    QueryResponse,
    StoreListResponse,
    StoreResponse,
    UploadResponse,
)
from file_search_proxy.services.file_search_service import FileSearchService
from file_search_proxy.services.metadata_filter import build_filter, condition_errors, is_valid_filter
from file_search_proxy.services.operation_poller import reported_progress, wait_for_operation
from file_search_proxy.services.policies import ensure_document_deletable
from file_search_proxy.services.queries import FILTER_HINT, QueryExecutor
from file_search_proxy.services.query_history import QueryHistory
from file_search_proxy.services.uploads import UploadOrchestrator, parse_upload_config

logger = get_logger(__name__)

router = APIRouter(tags=["file-search"])


def get_service(settings: Settings = Depends(get_settings)) -> FileSearchService:
    return FileSearchService(get_genai_client(), settings)


@lru_cache
def get_history() -> QueryHistory:
    settings = get_settings()
    return QueryHistory(settings.query_history_file, settings.query_history_limit)


def _status(operation: Operation) -> OperationStatusResponse:
    return OperationStatusResponse(
        operation=operation,
        progress=reported_progress(operation),
        is_done=operation.done,
        has_error=operation.error is not None,
    )


# --- stores ---------------------------------------------------------------
@router.get("/stores", response_model=StoreListResponse)
async def list_stores(service: FileSearchService = Depends(get_service)) -> StoreListResponse:
    stores = await run_in_threadpool(service.list_stores)
    return StoreListResponse(stores=stores)


@router.post("/stores", response_model=StoreResponse, status_code=201)
async def create_store(
    payload: CreateStoreRequest,
    service: FileSearchService = Depends(get_service),
) -> StoreResponse:
    store = await run_in_threadpool(service.create_store, payload.display_name)
    return StoreResponse(store=store)


@router.get("/stores/{store_id}", response_model=StoreResponse)
async def get_store(store_id: str, service: FileSearchService = Depends(get_service)) -> StoreResponse:
    store = await run_in_threadpool(service.get_store, store_id)
    return StoreResponse(store=store)


@router.delete("/stores/{store_id}", response_model=MessageResponse)
async def delete_store(store_id: str, service: FileSearchService = Depends(get_service)) -> MessageResponse:
    await run_in_threadpool(service.delete_store, store_id)
    return MessageResponse(message="Store deleted successfully")


# --- documents ------------------------------------------------------------
@router.get("/stores/{store_id}/documents", response_model=DocumentListResponse)
async def list_documents(store_id: str, service: FileSearchService = Depends(get_service)) -> DocumentListResponse:
    documents = await run_in_threadpool(service.list_documents, store_id)
    return DocumentListResponse(documents=documents)


@router.get("/stores/{store_id}/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    store_id: str,
    document_id: str,
    service: FileSearchService = Depends(get_service),
) -> DocumentResponse:
    document = await run_in_threadpool(service.get_document, service.document_name(store_id, document_id))
    return DocumentResponse(document=document)


@router.delete("/stores/{store_id}/documents/{document_id}", response_model=MessageResponse)
async def delete_document(
    store_id: str,
    document_id: str,
    guard: bool = Query(False, description="Only allow deleting documents whose ingestion failed"),
    service: FileSearchService = Depends(get_service),
) -> MessageResponse:
    document_name = service.document_name(store_id, document_id)
    if guard:
        document = await run_in_threadpool(service.get_document, document_name)
        ensure_document_deletable(document)
    await run_in_threadpool(service.delete_document, document_name)
    return MessageResponse(message="Document deleted successfully")


# --- uploads and operations -----------------------------------------------
@router.post(
    "/stores/{store_id}/upload",
    response_model=None,
    status_code=202,
    responses={200: {"model": OperationStatusResponse}, 202: {"model": UploadResponse}},
)
async def upload_file(
    store_id: str,
    response: Response,
    file: Optional[UploadFile] = File(None),
    config: Optional[str] = Form(None),
    wait: bool = Query(False, description="Block until ingestion finishes"),
    service: FileSearchService = Depends(get_service),
    settings: Settings = Depends(get_settings),
):
    if file is None or not file.filename:
        raise ValidationError("No file provided", details="File is required in FormData")

    try:
        upload_config = parse_upload_config(config)
        await file.seek(0)
        orchestrator = UploadOrchestrator(service, max_bytes=settings.max_upload_bytes)
        operation = await run_in_threadpool(
            orchestrator.upload, file.file, file.filename, store_id, upload_config
        )
    finally:
        await file.close()

    if not wait:
        return UploadResponse(operation=operation)

    logger.info("Waiting for %s to finish", operation.name)
    finished = await wait_for_operation(
        lambda name: run_in_threadpool(service.get_operation, name),
        operation,
        interval=settings.poll_interval_seconds,
        timeout=settings.poll_timeout_seconds,
    )
    response.status_code = 200
    return _status(finished)


@router.get("/operations/{operation_id:path}", response_model=OperationStatusResponse)
async def get_operation(
    operation_id: str,
    service: FileSearchService = Depends(get_service),
) -> OperationStatusResponse:
    operation = await run_in_threadpool(service.get_operation, operation_id)
    return _status(operation)


# --- queries --------------------------------------------------------------
@router.post("/queries", response_model=QueryResponse)
async def query_stores(
    payload: QueryRequest,
    service: FileSearchService = Depends(get_service),
    history: QueryHistory = Depends(get_history),
) -> QueryResponse:
    executor = QueryExecutor(service, history)
    return await run_in_threadpool(executor.execute, payload)


@router.get("/queries/history", response_model=QueryHistoryResponse)
async def list_query_history(history: QueryHistory = Depends(get_history)) -> QueryHistoryResponse:
    return QueryHistoryResponse(history=history.items())


@router.delete("/queries/history", response_model=MessageResponse)
async def clear_query_history(history: QueryHistory = Depends(get_history)) -> MessageResponse:
    history.clear()
    return MessageResponse(message="Query history cleared")


@router.post("/filters/check", response_model=FilterCheckResponse)
async def check_filter(payload: FilterCheckRequest) -> FilterCheckResponse:
    """Render structured conditions (or take a raw string) and report whether it is usable."""
    if payload.conditions is not None:
        filter_text = build_filter(payload.conditions)
        errors = condition_errors(payload.conditions)
    else:
        filter_text = (payload.filter or "").strip()
        errors = []
    if not is_valid_filter(filter_text):
        errors.append(FILTER_HINT)
    return FilterCheckResponse(filter=filter_text, valid=not errors, errors=errors)


# --- catalogue ------------------------------------------------------------
@router.get("/models", response_model=ModelListResponse)
async def list_models(settings: Settings = Depends(get_settings)) -> ModelListResponse:
    models = [ModelInfo(**model) for model in GEMINI_MODELS]
    return ModelListResponse(models=models, default_model=settings.default_model)


@router.get("/chunking-presets", response_model=ChunkingPresetListResponse)
async def list_chunking_presets() -> ChunkingPresetListResponse:
    presets = [ChunkingPreset(name=name, **preset) for name, preset in CHUNKING_PRESETS.items()]
    return ChunkingPresetListResponse(presets=presets)
