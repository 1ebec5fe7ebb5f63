"""Upload orchestration: validate the configuration, stage the bytes, start ingestion."""
from __future__ import annotations

import json
import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

from pydantic import ValidationError as SchemaError

from file_search_proxy.core.exceptions import ValidationError
from file_search_proxy.core.logging import get_logger
from file_search_proxy.schemas.file_search import Operation, UploadConfig
from file_search_proxy.services.file_search_service import FileSearchService

logger = get_logger(__name__)

MIN_TOKENS_PER_CHUNK = 200
MAX_TOKENS_PER_CHUNK = 800
MIN_OVERLAP_TOKENS = 20
MAX_OVERLAP_TOKENS = 50

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def parse_upload_config(raw_config: Optional[str]) -> UploadConfig:
    """Parse the ``config`` form field of a multipart upload."""

    if raw_config is None or not raw_config.strip():
        raise ValidationError("Invalid configuration", details="config is required")
    try:
        data = json.loads(raw_config)
    except json.JSONDecodeError as exc:
        raise ValidationError("Invalid config JSON", details=str(exc)) from exc
    try:
        return UploadConfig.model_validate(data)
    except SchemaError as exc:
        raise ValidationError("Invalid configuration", details=json.loads(exc.json(include_url=False))) from exc


def validate_upload_config(config: UploadConfig) -> None:
    """Reject configurations the remote API would refuse.

    Raises:
        ValidationError: on a blank display name, out-of-range chunking,
            an overlap not below the chunk size, a duplicate metadata key,
            or a metadata item without exactly one value.
    """

    if not config.display_name or not config.display_name.strip():
        raise ValidationError("Display name is required")

    if config.chunking_config:
        white_space = config.chunking_config.white_space_config
        max_tokens = white_space.max_tokens_per_chunk
        overlap = white_space.max_overlap_tokens

        if overlap >= max_tokens:
            raise ValidationError("maxOverlapTokens must be less than maxTokensPerChunk")
        if not MIN_TOKENS_PER_CHUNK <= max_tokens <= MAX_TOKENS_PER_CHUNK:
            raise ValidationError(
                f"maxTokensPerChunk must be between {MIN_TOKENS_PER_CHUNK} and {MAX_TOKENS_PER_CHUNK}"
            )
        if not MIN_OVERLAP_TOKENS <= overlap <= MAX_OVERLAP_TOKENS:
            raise ValidationError(
                f"maxOverlapTokens must be between {MIN_OVERLAP_TOKENS} and {MAX_OVERLAP_TOKENS}"
            )

    seen = set()
    for item in config.custom_metadata or []:
        if item.key in seen:
            raise ValidationError(f"Duplicate metadata key: {item.key}")
        seen.add(item.key)

        has_string = item.string_value is not None
        has_numeric = item.numeric_value is not None
        if has_string and has_numeric:
            raise ValidationError(f'Metadata key "{item.key}" cannot have both string and numeric values')
        if not has_string and not has_numeric:
            raise ValidationError(f'Metadata key "{item.key}" must have either a string or numeric value')


@contextmanager
def staged_file(source: BinaryIO, filename: str) -> Iterator[str]:
    """Copy ``source`` to a temporary file and yield its path.

    The file is removed on exit whether or not the body raised. A failed
    removal is logged and does not replace the error in flight.
    """

    suffix = "-" + _UNSAFE_CHARS.sub("_", os.path.basename(filename) or "upload")
    temp_file_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            temp_file_path = tmp.name
            shutil.copyfileobj(source, tmp)
        yield temp_file_path
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            try:
                os.remove(temp_file_path)
            except OSError:
                logger.exception("Failed to clean up temp file %s", temp_file_path)


class UploadOrchestrator:
    """Validate, stage and submit a file; returns the pending operation."""

    def __init__(self, service: FileSearchService, max_bytes: Optional[int] = None):
        self.service = service
        self.max_bytes = max_bytes

    def upload(self, source: BinaryIO, filename: str, store_name: str, config: UploadConfig) -> Operation:
        validate_upload_config(config)

        with staged_file(source, filename) as path:
            size = os.path.getsize(path)
            if self.max_bytes is not None and size > self.max_bytes:
                raise ValidationError(
                    "File too large", details=f"{size} bytes exceeds the limit of {self.max_bytes} bytes"
                )
            logger.debug("Staged %s (%d bytes) at %s", filename, size, path)
            return self.service.upload_file(path, store_name, config)
