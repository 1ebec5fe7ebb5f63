"""Grounded question answering over one or more stores."""
from __future__ import annotations

from typing import Optional

from file_search_proxy.core.exceptions import ValidationError
from file_search_proxy.core.logging import get_logger
from file_search_proxy.schemas.file_search import QueryRequest, QueryResponse
from file_search_proxy.services.file_search_service import FileSearchService
from file_search_proxy.services.metadata_filter import is_valid_filter
from file_search_proxy.services.query_history import QueryHistory

logger = get_logger(__name__)

MAX_QUESTION_LENGTH = 10000
FILTER_HINT = 'Filter must follow the format: key = "value" or key > number'


def validate_query(request: QueryRequest) -> None:
    if not request.question or not request.question.strip():
        raise ValidationError("Question is required")
    if len(request.question) > MAX_QUESTION_LENGTH:
        raise ValidationError("Question too long")
    if not request.store_names:
        raise ValidationError("At least one store name is required")
    if request.metadata_filter and not is_valid_filter(request.metadata_filter):
        raise ValidationError("Invalid metadata filter syntax", details=FILTER_HINT)


class QueryExecutor:
    """Validate a query, run it remotely and remember the answer."""

    def __init__(self, service: FileSearchService, history: Optional[QueryHistory] = None):
        self.service = service
        self.history = history

    def execute(self, request: QueryRequest) -> QueryResponse:
        validate_query(request)
        logger.info("Querying %d store(s) with %s", len(request.store_names), request.model or "default model")
        response = self.service.query(request)
        if self.history is not None:
            self.history.record(request, response)
        return response
