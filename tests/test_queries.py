import json

import pytest

from file_search_proxy.core.exceptions import QuotaExceededError, ValidationError
from file_search_proxy.schemas.file_search import Document, DocumentState, QueryRequest, QueryResponse
from file_search_proxy.services.file_search_service import PAID_MODEL_MESSAGE
from file_search_proxy.services.policies import can_delete_document, ensure_document_deletable
from file_search_proxy.services.queries import FILTER_HINT, QueryExecutor, validate_query
from file_search_proxy.services.query_history import QueryHistory

from conftest import api_error


def make_request(**overrides) -> QueryRequest:
    data = {"question": "What is in the report?", "store_names": ["abc"]}
    data.update(overrides)
    return QueryRequest(**data)


def test_executor_returns_answer_and_records_history(service, history):
    response = QueryExecutor(service, history).execute(make_request())

    assert response.answer == "The answer."
    assert len(history) == 1
    item = history.items()[0]
    assert item.question == "What is in the report?"
    assert item.store_names == ["abc"]
    assert item.model == "gemini-2.5-flash"
    assert item.timestamp.endswith("+00:00")


def test_invalid_filter_is_rejected_before_any_network_call(service, fake_client, history):
    request = make_request(metadata_filter="category electronics")

    with pytest.raises(ValidationError) as exc_info:
        QueryExecutor(service, history).execute(request)

    assert exc_info.value.message == "Invalid metadata filter syntax"
    assert exc_info.value.details == FILTER_HINT
    assert fake_client.models.calls == []
    assert len(history) == 0


def test_blank_question_is_rejected(service, fake_client):
    with pytest.raises(ValidationError, match="Question is required"):
        QueryExecutor(service).execute(make_request(question="   "))

    assert fake_client.models.calls == []


def test_missing_store_names_are_rejected():
    request = QueryRequest.model_construct(question="q", store_names=[], metadata_filter=None, model=None)

    with pytest.raises(ValidationError, match="At least one store name is required"):
        validate_query(request)


def test_quota_errors_are_not_recorded(service, fake_client, history):
    fake_client.models.error = api_error(429, "Quota exceeded for free_tier, limit: 0", "RESOURCE_EXHAUSTED")

    with pytest.raises(QuotaExceededError) as exc_info:
        QueryExecutor(service, history).execute(make_request(model="gemini-3-pro-preview"))

    assert exc_info.value.status_code == 429
    assert exc_info.value.message == PAID_MODEL_MESSAGE
    assert len(history) == 0


def answer(text: str) -> QueryResponse:
    return QueryResponse(answer=text, model="gemini-2.5-flash")


def test_history_is_newest_first_and_capped():
    history = QueryHistory(limit=50)

    for number in range(51):
        history.record(make_request(question=f"q{number}"), answer(f"a{number}"))

    items = history.items()
    assert len(items) == 50
    assert items[0].question == "q50"
    assert items[-1].question == "q1"


def test_history_persists_to_file(tmp_path):
    path = tmp_path / "history" / "queries.json"
    history = QueryHistory(str(path))
    history.record(make_request(), answer("first"))
    history.record(make_request(), answer("second"))

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert [entry["answer"] for entry in stored] == ["second", "first"]
    assert stored[0]["storeNames"] == ["abc"]

    reloaded = QueryHistory(str(path))
    assert [item.answer for item in reloaded.items()] == ["second", "first"]


def test_history_clear_removes_file(tmp_path):
    path = tmp_path / "queries.json"
    history = QueryHistory(str(path))
    history.record(make_request(), answer("first"))

    history.clear()

    assert history.items() == []
    assert not path.exists()


def test_corrupt_history_file_starts_empty(tmp_path):
    path = tmp_path / "queries.json"
    path.write_text("{not json", encoding="utf-8")

    assert QueryHistory(str(path)).items() == []


@pytest.mark.parametrize(
    "state, allowed",
    [(DocumentState.FAILED, True), (DocumentState.ACTIVE, False), (DocumentState.PENDING, False)],
)
def test_only_failed_documents_are_deletable(state, allowed):
    document = Document(name="fileSearchStores/abc/documents/d", display_name="d.pdf", state=state)

    assert can_delete_document(document) is allowed
    assert document.deletable is allowed


def test_guard_reports_document_state():
    document = Document(name="fileSearchStores/abc/documents/d", display_name="d.pdf", state=DocumentState.ACTIVE)

    with pytest.raises(ValidationError) as exc_info:
        ensure_document_deletable(document)

    assert exc_info.value.details == {"name": document.name, "state": "ACTIVE"}
