"""Pydantic schemas for request and response payloads."""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- stores ---------------------------------------------------------------
class Store(CamelModel):
    name: str = Field(..., description="Full resource name of the store")
    display_name: str = Field(..., description="Human-friendly store label")
    create_time: Optional[str] = Field(None, description="Creation timestamp from the API")
    update_time: Optional[str] = Field(None, description="Last update timestamp from the API")


class StoreListResponse(CamelModel):
    stores: List[Store]


class StoreResponse(CamelModel):
    store: Store


class CreateStoreRequest(CamelModel):
    display_name: str = Field(..., min_length=1, max_length=100, description="Display name for the store")

    @field_validator("display_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Display name is required")
        return value


class MessageResponse(CamelModel):
    message: str


# --- documents ------------------------------------------------------------
class DocumentState(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


# The dashboard only lets users remove documents that failed ingestion
DELETABLE_STATES = (DocumentState.FAILED,)


class CustomMetadataItem(CamelModel):
    key: str = Field(..., min_length=1)
    string_value: Optional[str] = None
    numeric_value: Optional[float] = None


class Document(CamelModel):
    name: str
    display_name: str
    state: DocumentState = DocumentState.PENDING
    size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    create_time: Optional[str] = None
    update_time: Optional[str] = None
    custom_metadata: Optional[List[CustomMetadataItem]] = None

    @computed_field
    @property
    def deletable(self) -> bool:
        """Presentation hint; the API itself deletes documents in any state."""
        return self.state in DELETABLE_STATES


class DocumentListResponse(CamelModel):
    documents: List[Document]


class DocumentResponse(CamelModel):
    document: Document


# --- uploads --------------------------------------------------------------
class WhiteSpaceConfig(CamelModel):
    max_tokens_per_chunk: int = Field(..., ge=200, le=800)
    max_overlap_tokens: int = Field(..., ge=20, le=50)


class ChunkingConfig(CamelModel):
    white_space_config: WhiteSpaceConfig


class UploadConfig(CamelModel):
    display_name: str = Field(..., min_length=1)
    chunking_config: Optional[ChunkingConfig] = None
    custom_metadata: Optional[List[CustomMetadataItem]] = None


# --- operations -----------------------------------------------------------
class OperationError(CamelModel):
    code: Optional[int] = None
    message: str = ""
    details: Optional[List[Any]] = None


class Operation(CamelModel):
    name: str
    done: bool = False
    metadata: Optional[Dict[str, Any]] = None
    response: Optional[Dict[str, Any]] = None
    error: Optional[OperationError] = None


class UploadResponse(CamelModel):
    operation: Operation


class OperationStatusResponse(CamelModel):
    operation: Operation
    progress: Optional[float] = None
    is_done: bool
    has_error: bool


# --- queries --------------------------------------------------------------
class QueryRequest(CamelModel):
    question: str = Field(..., min_length=1, max_length=10000, description="Question to answer")
    store_names: List[str] = Field(..., min_length=1, description="Stores to search, in order")
    metadata_filter: Optional[str] = Field(None, description='e.g. category = "books" AND year > 2023')
    model: Optional[str] = Field(None, description="Override the default Gemini model")

    @field_validator("store_names")
    @classmethod
    def _no_empty_names(cls, value: List[str]) -> List[str]:
        if any(not name for name in value):
            raise ValueError("Store names must not be empty")
        return value


class QueryResponse(CamelModel):
    answer: str
    grounding_metadata: Optional[Dict[str, Any]] = None
    model: str


class QueryHistoryItem(QueryResponse):
    question: str
    timestamp: str
    store_names: List[str]


class QueryHistoryResponse(CamelModel):
    history: List[QueryHistoryItem]


# --- metadata filters -----------------------------------------------------
FilterOperator = Literal["=", "!=", ">", "<", ">=", "<="]
FilterLogic = Literal["AND", "OR"]


class FilterCondition(CamelModel):
    """One ``field operator value`` term.

    ``logic`` joins this condition to the one before it and is ignored on
    the first emitted condition.
    """

    field: str = ""
    operator: FilterOperator = "="
    value: str = ""
    logic: FilterLogic = "AND"


class FilterCheckRequest(CamelModel):
    filter: Optional[str] = Field(None, description="Filter string to check")
    conditions: Optional[List[FilterCondition]] = Field(None, description="Conditions to render and check")


class FilterCheckResponse(CamelModel):
    filter: str
    valid: bool
    errors: List[str]


# --- misc -----------------------------------------------------------------
class ModelInfo(CamelModel):
    value: str
    label: str
    description: str
    tier: str
    pricing_tier: str
    is_default: bool = False


class ModelListResponse(CamelModel):
    models: List[ModelInfo]
    default_model: str


class ChunkingPreset(CamelModel):
    name: str
    max_tokens_per_chunk: int
    max_overlap_tokens: int
    description: str


class ChunkingPresetListResponse(CamelModel):
    presets: List[ChunkingPreset]


class HealthResponse(CamelModel):
    status: str
    api_key_configured: bool
