"""Dashboard-level rules that the remote API does not enforce."""
from file_search_proxy.core.exceptions import ValidationError
from file_search_proxy.schemas.file_search import DELETABLE_STATES, Document


def can_delete_document(document: Document) -> bool:
    return document.state in DELETABLE_STATES


def ensure_document_deletable(document: Document) -> None:
    """Refuse to delete documents that are still ingesting or already active."""
    if not can_delete_document(document):
        raise ValidationError(
            f"Only failed documents can be deleted; {document.display_name} is {document.state.value}",
            details={"name": document.name, "state": document.state.value},
        )
