"""
Pytest configuration and shared fixtures.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from docsearch.services.hybrid_search import (
    ConceptExtractor, CorpusIndex, Document, Entity, ExtractionResult, HybridSearchService,
    InMemoryDocumentSource, Intent, PersonalizationLayer, Visibility
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class StubExtractor(ConceptExtractor):
    """Concept extractor with scripted behavior."""

    def __init__(self,
                 result: Optional[ExtractionResult] = None,
                 delay: float = 0.0,
                 error: Optional[Exception] = None):
        self.result = result or ExtractionResult.success(None, ())
        self.delay = delay
        self.error = error
        self.calls = []

    async def classify_intent_and_entities(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_document(doc_id: str, title: str = "", **kwargs) -> Document:
    kwargs.setdefault('owner_id', 'alice')
    kwargs.setdefault('visibility', Visibility.PUBLIC)
    kwargs.setdefault('created_at', NOW - timedelta(days=10))
    return Document(id=doc_id, title=title, **kwargs)


# ============================================================
# Document Fixtures
# ============================================================


@pytest.fixture
def budget_doc():
    return make_document(
        "budget",
        "Quarterly Budget Report",
        description="Spending plan for the quarter",
        keywords=["finance", "budget"],
        document_type="report",
        entities=[Entity("project", "Apollo")],
    )


@pytest.fixture
def numbers_doc():
    return make_document(
        "q3",
        "Q3 Numbers",
        description="Spreadsheet of third quarter figures",
        keywords=["finance", "forecast"],
        document_type="spreadsheet",
    )


@pytest.fixture
def private_doc():
    return make_document(
        "private",
        "Confidential Salary Review",
        description="Annual compensation review",
        keywords=["salary", "hr"],
        visibility=Visibility.OWNER_ONLY,
        owner_id="alice",
    )


@pytest.fixture
def contract_doc():
    return make_document(
        "contract",
        "Vendor Contract",
        description="Signed supplier agreement",
        keywords=["legal", "vendor"],
        owner_id="bob",
        visibility=Visibility.ALLOW_LIST,
        allowed_users=["carol"],
        document_type="contract",
    )


@pytest.fixture
def meeting_doc():
    return make_document(
        "meeting",
        "Weekly Meeting Minutes",
        description="Notes from the team sync",
        keywords=["meeting", "team"],
        owner_id="bob",
        created_at=NOW - timedelta(days=400),
    )


@pytest.fixture
def corpus(budget_doc, numbers_doc, private_doc, contract_doc, meeting_doc):
    return [budget_doc, numbers_doc, private_doc, contract_doc, meeting_doc]


@pytest.fixture
def index(corpus):
    corpus_index = CorpusIndex(max_documents=1000)
    corpus_index.build_full(corpus)
    return corpus_index


# ============================================================
# Service Fixtures
# ============================================================


@pytest.fixture
def stub_extractor():
    return StubExtractor()


@pytest.fixture
def build_service(corpus, stub_extractor):
    """Factory for initialized services; pass initialize=False for a cold one."""

    async def _build(documents=None, extractor=None, initialize=True, available=True):
        source = InMemoryDocumentSource(corpus if documents is None else documents, available=available)
        service = HybridSearchService(
            source,
            concept_extractor=extractor or stub_extractor,
            index=CorpusIndex(max_documents=1000),
            personalization=PersonalizationLayer(history_size=100),
        )
        if initialize:
            await service.initialize()
        return service

    return _build


@pytest.fixture
def task_extraction():
    return ExtractionResult.success(Intent.TASK, [Entity("project", "Apollo")])
