"""Service layer wrapping Gemini File Search stores, documents, operations and queries."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import httpx
from google import genai
from google.genai import errors, types

from file_search_proxy.core.config import Settings, get_settings
from file_search_proxy.core.exceptions import (
    FileSearchError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
    ValidationError,
)
from file_search_proxy.core.logging import get_logger
from file_search_proxy.schemas.file_search import (
    CustomMetadataItem,
    Document,
    DocumentState,
    Operation,
    OperationError,
    QueryRequest,
    QueryResponse,
    Store,
    UploadConfig,
)

logger = get_logger(__name__)

STORE_PREFIX = "fileSearchStores/"
OPERATION_MARKER = "operations/"

PAID_MODEL_MESSAGE = (
    "This model requires a paid API key. Please upgrade your API key or select a "
    "different model (Gemini 2.5 Flash, Pro, or Flash Lite)."
)
QUOTA_MESSAGE = "API quota exceeded. Please try again later or upgrade your API plan."


def translate_error(action: str, exc: Exception) -> FileSearchError:
    """Map an SDK or transport failure onto the application's error types."""

    if isinstance(exc, FileSearchError):
        return exc

    if isinstance(exc, errors.APIError):
        message = exc.message or str(exc)
        if exc.code == 404:
            return NotFoundError(f"Failed to {action}: {message}", 404, exc.details)
        if exc.code == 429 or exc.status == "RESOURCE_EXHAUSTED":
            if "free_tier" in message and "limit: 0" in message:
                return QuotaExceededError(PAID_MODEL_MESSAGE, 429, exc.details)
            return QuotaExceededError(QUOTA_MESSAGE, 429, exc.details)
        return UpstreamError(f"Failed to {action}: {message}", exc.code or 500, exc.details)

    if isinstance(exc, httpx.TimeoutException):
        return UpstreamError(f"Failed to {action}: request timed out", 504)

    return UpstreamError(f"Failed to {action}: {exc}", 500)


@contextmanager
def remote_call(action: str) -> Iterator[None]:
    try:
        yield
    except Exception as exc:
        error = translate_error(action, exc)
        if error is exc:
            raise
        logger.warning("%s failed: %s", action, error.message)
        raise error from exc


class FileSearchService:
    """Wrap Gemini File Search interactions in a reusable service.

    Every method is a single remote call; nothing is cached. Failures come
    out as :class:`FileSearchError` subclasses.
    """

    def __init__(self, client: genai.Client, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    # --- stores ----------------------------------------------------------
    def create_store(self, display_name: str) -> Store:
        """Create a new file search store."""

        if not display_name or not display_name.strip():
            raise ValidationError("Display name is required")
        if len(display_name) > 100:
            raise ValidationError("Display name too long")

        with remote_call("create store"):
            store = self.client.file_search_stores.create(config={"display_name": display_name})
        logger.info("Created store %s", store.name)
        return self._to_store(store, fallback_display_name=display_name)

    def list_stores(self) -> List[Store]:
        """Return all available file search stores in upstream order."""

        with remote_call("list stores"):
            return [self._to_store(store) for store in self.client.file_search_stores.list()]

    def get_store(self, store_name: str) -> Store:
        with remote_call("get store"):
            store = self.client.file_search_stores.get(name=self._normalize_store_name(store_name))
        return self._to_store(store)

    def get_store_or_none(self, store_name: str) -> Optional[Store]:
        try:
            return self.get_store(store_name)
        except NotFoundError:
            return None

    def delete_store(self, store_name: str) -> str:
        """Delete a store and, with it, every document it holds."""

        store_resource = self._normalize_store_name(store_name)
        with remote_call("delete store"):
            self.client.file_search_stores.delete(name=store_resource, config={"force": True})
        logger.info("Deleted store %s", store_resource)
        return store_resource

    # --- documents -------------------------------------------------------
    def list_documents(self, store_name: str) -> List[Document]:
        with remote_call("list documents"):
            documents = self.client.file_search_stores.documents.list(
                parent=self._normalize_store_name(store_name)
            )
            return [self._to_document(doc) for doc in documents]

    def get_document(self, document_name: str) -> Document:
        with remote_call("get document"):
            doc = self.client.file_search_stores.documents.get(name=document_name)
        return self._to_document(doc)

    def get_document_or_none(self, document_name: str) -> Optional[Document]:
        try:
            return self.get_document(document_name)
        except NotFoundError:
            return None

    def delete_document(self, document_name: str) -> str:
        """Delete a document regardless of its state; the remote API decides."""

        with remote_call("delete document"):
            self.client.file_search_stores.documents.delete(name=document_name)
        logger.info("Deleted document %s", document_name)
        return document_name

    # --- uploads and operations ------------------------------------------
    def upload_file(self, file_path: str, store_name: str, config: UploadConfig) -> Operation:
        """Start ingesting a local file into a store.

        Returns the pending operation immediately; completion is observed by
        polling :meth:`get_operation`.
        """

        store_resource = self._normalize_store_name(store_name)
        with remote_call("upload file"):
            operation = self.client.file_search_stores.upload_to_file_search_store(
                file=file_path,
                file_search_store_name=store_resource,
                config=self._upload_config_to_api(config),
            )
        result = self._to_operation(operation)
        logger.info("Upload of %r to %s started as %s", config.display_name, store_resource, result.name)
        return result

    def get_operation(self, operation_name: str) -> Operation:
        name = self._normalize_operation_name(operation_name)
        with remote_call("get operation"):
            operation = self.client.operations.get(types.UploadToFileSearchStoreOperation(name=name))
        if operation is None:
            raise NotFoundError(f"Failed to get operation: {name} not found", 404)
        return self._to_operation(operation)

    # --- queries ---------------------------------------------------------
    def query(self, request: QueryRequest) -> QueryResponse:
        """Ask a grounded question against one or more stores."""

        file_search = types.FileSearch(
            file_search_store_names=[self._normalize_store_name(name) for name in request.store_names],
        )
        if request.metadata_filter and request.metadata_filter.strip():
            file_search.metadata_filter = request.metadata_filter

        model = request.model or self.settings.default_model
        config = types.GenerateContentConfig(tools=[types.Tool(file_search=file_search)])

        with remote_call("query stores"):
            response = self.client.models.generate_content(
                model=model,
                contents=request.question,
                config=config,
            )
        return QueryResponse(
            answer=getattr(response, "text", "") or "",
            grounding_metadata=self._grounding_metadata(response),
            model=model,
        )

    # --- conversions -----------------------------------------------------
    @staticmethod
    def _timestamp(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    @classmethod
    def _to_store(cls, store: Any, fallback_display_name: Optional[str] = None) -> Store:
        name = getattr(store, "name", None) or ""
        return Store(
            name=name,
            display_name=getattr(store, "display_name", None) or fallback_display_name or name,
            create_time=cls._timestamp(getattr(store, "create_time", None)),
            update_time=cls._timestamp(getattr(store, "update_time", None)),
        )

    @staticmethod
    def _to_state(raw_state: Any) -> DocumentState:
        state = str(getattr(raw_state, "value", raw_state) or "")
        if "ACTIVE" in state:
            return DocumentState.ACTIVE
        if "FAILED" in state:
            return DocumentState.FAILED
        return DocumentState.PENDING

    @classmethod
    def _to_document(cls, doc: Any) -> Document:
        name = getattr(doc, "name", None) or ""
        size = getattr(doc, "size_bytes", None)
        metadata = getattr(doc, "custom_metadata", None)
        return Document(
            name=name,
            display_name=getattr(doc, "display_name", None) or name,
            state=cls._to_state(getattr(doc, "state", None)),
            size_bytes=int(size) if size is not None else None,
            mime_type=getattr(doc, "mime_type", None),
            create_time=cls._timestamp(getattr(doc, "create_time", None)),
            update_time=cls._timestamp(getattr(doc, "update_time", None)),
            custom_metadata=[
                CustomMetadataItem(
                    key=getattr(item, "key", None) or "",
                    string_value=getattr(item, "string_value", None),
                    numeric_value=getattr(item, "numeric_value", None),
                )
                for item in metadata
            ]
            if metadata
            else None,
        )

    @staticmethod
    def _dump(value: Any) -> Optional[Dict[str, Any]]:
        if value is None:
            return None
        if hasattr(value, "model_dump"):
            return value.model_dump(mode="json", by_alias=True, exclude_none=True)
        return dict(value)

    @classmethod
    def _to_operation(cls, operation: Any) -> Operation:
        error = getattr(operation, "error", None)
        return Operation(
            name=getattr(operation, "name", None) or "",
            done=bool(getattr(operation, "done", False)),
            metadata=cls._dump(getattr(operation, "metadata", None)),
            response=cls._dump(getattr(operation, "response", None)),
            error=OperationError(
                code=error.get("code"),
                message=error.get("message") or "Operation failed",
                details=error.get("details"),
            )
            if error
            else None,
        )

    @classmethod
    def _grounding_metadata(cls, response: Any) -> Optional[Dict[str, Any]]:
        try:
            candidate = response.candidates[0]
        except (AttributeError, IndexError, TypeError):
            return None
        return cls._dump(getattr(candidate, "grounding_metadata", None))

    @staticmethod
    def _upload_config_to_api(config: UploadConfig) -> Dict[str, Any]:
        api_config: Dict[str, Any] = {"display_name": config.display_name}

        if config.chunking_config:
            white_space = config.chunking_config.white_space_config
            api_config["chunking_config"] = {
                "white_space_config": {
                    "max_tokens_per_chunk": white_space.max_tokens_per_chunk,
                    "max_overlap_tokens": white_space.max_overlap_tokens,
                }
            }

        if config.custom_metadata:
            api_config["custom_metadata"] = [
                item.model_dump(exclude_none=True) for item in config.custom_metadata
            ]

        return api_config

    # --- helpers ---------------------------------------------------------
    @staticmethod
    def _normalize_store_name(store_name: str) -> str:
        """Ensure store resource name has the expected prefix."""
        if store_name.startswith(STORE_PREFIX):
            return store_name
        return f"{STORE_PREFIX}{store_name}"

    @staticmethod
    def _normalize_operation_name(operation_name: str) -> str:
        """Accept ``abc``, ``operations/abc`` or a fully nested operation name."""
        if OPERATION_MARKER in operation_name:
            return operation_name
        return f"{OPERATION_MARKER}{operation_name}"

    @classmethod
    def document_name(cls, store_name: str, document_id: str) -> str:
        """Build ``fileSearchStores/<store>/documents/<doc>`` from route ids."""
        if "/documents/" in document_id:
            return document_id
        return f"{cls._normalize_store_name(store_name)}/documents/{document_id.split('/')[-1]}"
