"""
In-memory corpus index for hybrid search.

Holds the lexical postings (term -> documents) and the semantic concept
vectors (document -> concept weights). Readers work on an immutable
IndexSnapshot; every write builds a new snapshot and publishes it with a
single reference assignment, so a reader never sees a half-applied
upsert or removal and never waits for a writer.
"""

import math
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from ....shared import get_logger, get_metrics, get_settings, timed_operation
from ..models import Document
from .tokenizer import analyze, analyze_many, concept_key

ConceptVector = Mapping[str, float]


@dataclass(frozen=True)
class PostingEntry:
    """Term frequencies of one term in one document, per field group."""
    doc_id: str
    title_tf: int = 0
    keyword_tf: int = 0
    description_tf: int = 0

    @property
    def weight(self) -> int:
        return 3 * self.title_tf + 2 * self.keyword_tf + self.description_tf


@dataclass(frozen=True)
class IndexedDocument:
    """A document together with its analyzed fields."""
    document: Document
    title_stems: Tuple[str, ...]
    description_stems: Tuple[str, ...]
    summary_stems: Tuple[str, ...]
    keyword_stems: Tuple[Tuple[str, ...], ...]
    postings: Mapping[str, PostingEntry]
    concept_vector: Optional[ConceptVector] = None

    @property
    def terms(self) -> FrozenSet[str]:
        return frozenset(self.postings)

    @property
    def flat_keyword_stems(self) -> Tuple[str, ...]:
        return tuple(s for kw in self.keyword_stems for s in kw)


def build_concept_vector(concepts: Iterable[str]) -> Dict[str, float]:
    """
    Weight concepts by rank: 1/(rank+1).

    Concepts are normalized with concept_key; a repeated concept keeps
    the weight of its first rank. Empty input gives an empty mapping.
    """
    vector: Dict[str, float] = {}
    for rank, concept in enumerate(concepts):
        key = concept_key(concept)
        if key and key not in vector:
            vector[key] = 1.0 / (rank + 1)
    return vector


def cosine_similarity(a: ConceptVector, b: ConceptVector) -> float:
    """Cosine similarity of two sparse vectors over the union of their keys."""
    if not a or not b:
        return 0.0
    small, large = (a, b) if len(a) <= len(b) else (b, a)
    dot = sum(weight * large[key] for key, weight in small.items() if key in large)
    if dot == 0:
        return 0.0
    norm_a = math.sqrt(sum(w * w for w in a.values()))
    norm_b = math.sqrt(sum(w * w for w in b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return min(1.0, dot / (norm_a * norm_b))


def index_document(document: Document) -> IndexedDocument:
    """Analyze one document into postings and a concept vector."""
    title_stems = tuple(analyze(document.title))
    description_stems = tuple(analyze(document.description))
    summary_stems = tuple(analyze(document.summary))
    keyword_stems = analyze_many(document.keywords)

    title_tf = Counter(title_stems)
    keyword_tf = Counter(s for kw in keyword_stems for s in kw)
    description_tf = Counter(description_stems) + Counter(summary_stems)

    postings = {
        term: PostingEntry(
            doc_id=document.id,
            title_tf=title_tf.get(term, 0),
            keyword_tf=keyword_tf.get(term, 0),
            description_tf=description_tf.get(term, 0),
        )
        for term in set(title_tf) | set(keyword_tf) | set(description_tf)
    }

    vector = build_concept_vector(document.keywords)

    return IndexedDocument(
        document=document,
        title_stems=title_stems,
        description_stems=description_stems,
        summary_stems=summary_stems,
        keyword_stems=keyword_stems,
        postings=postings,
        # No keywords means no vector entry at all
        concept_vector=vector or None,
    )


@dataclass(frozen=True)
class IndexSnapshot:
    """
    One self-consistent generation of the index.

    Never mutated after publication; writers copy the containers they
    change.
    """
    generation: int = 0
    documents: Mapping[str, IndexedDocument] = field(default_factory=dict)
    postings: Mapping[str, Mapping[str, PostingEntry]] = field(default_factory=dict)
    vectors: Mapping[str, ConceptVector] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self.documents

    def get(self, doc_id: str) -> Optional[IndexedDocument]:
        return self.documents.get(doc_id)

    def lexical_candidates(self, terms: Iterable[str]) -> FrozenSet[str]:
        """
        Union of the documents matching any term (OR semantics).

        A multi-word term matches a document that has every one of its
        stems posted. Unknown terms contribute nothing.
        """
        matched = set()
        for term in terms:
            stems = analyze(term)
            if not stems:
                continue
            doc_sets = [self.postings.get(s) for s in stems]
            if any(not docs for docs in doc_sets):
                continue
            docs = set(doc_sets[0])
            for other in doc_sets[1:]:
                docs.intersection_update(other)
            matched |= docs
        return frozenset(matched)

    def semantic_candidates(self,
                            query_vector: ConceptVector,
                            threshold: float = 0.3,
                            limit: Optional[int] = 20,
                            accept: Optional[Callable[[str], bool]] = None) -> List[Tuple[str, float]]:
        """
        Documents whose concept vector is similar to the query vector.

        Keeps similarities >= threshold (zero similarity is never kept),
        sorted descending, at most `limit` entries. `accept` filters
        documents before the limit is applied.
        """
        if not query_vector:
            return []

        scored = []
        for doc_id, vector in self.vectors.items():
            similarity = cosine_similarity(query_vector, vector)
            if similarity <= 0 or similarity < threshold:
                continue
            if accept is not None and not accept(doc_id):
                continue
            scored.append((doc_id, similarity))

        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored[:limit] if limit is not None else scored


class CorpusIndex:
    """
    Owner of the current index snapshot.

    Lifecycle: build_full once at startup (and on rebuild), then upsert
    and remove as documents change. Writers serialize on one lock;
    readers call snapshot() and never lock.

    Writes that commit while a full build is running are logged and
    replayed onto the new snapshot before it is published.
    """

    def __init__(self, max_documents: Optional[int] = None):
        self.logger = get_logger(__name__)
        self.metrics = get_metrics()
        self.max_documents = get_settings().index_max_documents if max_documents is None else max_documents

        self._write_lock = threading.Lock()
        self._build_lock = threading.Lock()
        # (doc_id, entry) writes seen during a build; entry None is a removal
        self._pending: Optional[List[Tuple[str, Optional[IndexedDocument]]]] = None
        self._snapshot = IndexSnapshot()
        self._ready = False

        self.logger.info(f"Corpus index created (max_documents={self.max_documents})")

    @property
    def is_ready(self) -> bool:
        """True once a full build has succeeded."""
        return self._ready

    @property
    def generation(self) -> int:
        return self._snapshot.generation

    def snapshot(self) -> IndexSnapshot:
        """Current snapshot; stays valid and unchanged for as long as the caller holds it."""
        return self._snapshot

    @timed_operation('index_build_duration')
    def build_full(self, documents: Iterable[Document]) -> int:
        """
        Replace the whole index with the given documents.

        At most max_documents are indexed; the tail is skipped with a
        warning. Upserts and removals committed while the documents are
        being read and indexed win over the build's copy. Returns the
        number of documents in the published snapshot.
        """
        with self._build_lock:
            self.begin_build()
            try:
                return self._build(documents)
            finally:
                self.abort_build()

    def begin_build(self) -> None:
        """
        Start logging writes for replay onto the next full build.

        Call before reading the documents the build will receive, so a
        change committed in between is not lost. build_full calls it too.
        """
        with self._write_lock:
            if self._pending is None:
                self._pending = []

    def abort_build(self) -> None:
        """Stop logging writes; the current snapshot already holds them."""
        with self._write_lock:
            self._pending = None

    def _build(self, documents: Iterable[Document]) -> int:
        batch = []
        skipped = 0
        for document in documents:
            if len(batch) < self.max_documents:
                batch.append(document)
            else:
                skipped += 1

        if skipped:
            self.logger.warning(
                f"Full index build capped at {self.max_documents} documents; "
                f"{skipped} document(s) not indexed"
            )

        indexed = {}
        for document in batch:
            indexed[document.id] = index_document(document)

        postings: Dict[str, Dict[str, PostingEntry]] = {}
        vectors: Dict[str, ConceptVector] = {}
        for doc_id, entry in indexed.items():
            for term, posting in entry.postings.items():
                postings.setdefault(term, {})[doc_id] = posting
            if entry.concept_vector:
                vectors[doc_id] = entry.concept_vector

        with self._write_lock:
            snapshot = IndexSnapshot(
                generation=self._snapshot.generation + 1,
                documents=indexed,
                postings=postings,
                vectors=vectors,
            )
            replayed = len(self._pending)
            for doc_id, entry in self._pending:
                snapshot = self._apply(snapshot, doc_id, entry)
            self._pending = None
            self._snapshot = snapshot
            self._ready = True

        if replayed:
            self.logger.info(f"Replayed {replayed} concurrent write(s) onto the rebuilt index")
        self.metrics.record_index_change('build', len(snapshot))
        self.logger.info(
            f"Index built: {len(snapshot)} documents, {len(snapshot.postings)} terms, "
            f"{len(snapshot.vectors)} concept vectors (generation {snapshot.generation})"
        )
        return len(snapshot)

    def upsert(self, document: Document) -> IndexSnapshot:
        """Re-index one document (remove-then-insert) and publish a new snapshot."""
        entry = index_document(document)

        with self._write_lock:
            if self._pending is not None:
                self._pending.append((document.id, entry))
            self._snapshot = self._apply(self._snapshot, document.id, entry)
            snapshot = self._snapshot

        self.metrics.record_index_change('upserts', len(snapshot))
        self.logger.debug(f"Upserted document {document.id} (generation {snapshot.generation})")
        return snapshot

    def remove(self, doc_id: str) -> bool:
        """Drop a document's postings and concept vector. Returns False if it was not indexed."""
        with self._write_lock:
            # A build in progress may have read the document already
            if self._pending is not None:
                self._pending.append((doc_id, None))
            if doc_id not in self._snapshot.documents:
                return False
            self._snapshot = self._apply(self._snapshot, doc_id, None)
            snapshot = self._snapshot

        self.metrics.record_index_change('removals', len(snapshot))
        self.logger.debug(f"Removed document {doc_id} (generation {snapshot.generation})")
        return True

    @classmethod
    def _apply(cls,
               current: IndexSnapshot,
               doc_id: str,
               entry: Optional[IndexedDocument]) -> IndexSnapshot:
        """Next snapshot with doc_id replaced by entry, or dropped when entry is None."""
        previous = current.documents.get(doc_id)
        postings = cls._replace_postings(current, doc_id, previous, entry)

        documents = dict(current.documents)
        vectors = dict(current.vectors)
        if entry is None:
            documents.pop(doc_id, None)
            vectors.pop(doc_id, None)
        else:
            documents[doc_id] = entry
            if entry.concept_vector:
                vectors[doc_id] = entry.concept_vector
            else:
                vectors.pop(doc_id, None)

        return IndexSnapshot(
            generation=current.generation + 1,
            documents=documents,
            postings=postings,
            vectors=vectors,
        )

    @staticmethod
    def _replace_postings(current: IndexSnapshot,
                          doc_id: str,
                          previous: Optional[IndexedDocument],
                          entry: Optional[IndexedDocument]) -> Dict[str, Mapping[str, PostingEntry]]:
        """Copy the posting map, rewriting only the lists for terms the document had or has."""
        postings = dict(current.postings)
        old_terms = previous.terms if previous else frozenset()
        new_terms = entry.terms if entry else frozenset()

        for term in old_terms | new_terms:
            plist = dict(postings.get(term, {}))
            plist.pop(doc_id, None)
            if term in new_terms:
                plist[doc_id] = entry.postings[term]
            if plist:
                postings[term] = plist
            else:
                postings.pop(term, None)
        return postings

    # Convenience reads against the current snapshot

    def lexical_candidates(self, terms: Iterable[str]) -> FrozenSet[str]:
        return self._snapshot.lexical_candidates(terms)

    def semantic_candidates(self,
                            query_vector: ConceptVector,
                            threshold: float = 0.3,
                            limit: Optional[int] = 20) -> List[Tuple[str, float]]:
        return self._snapshot.semantic_candidates(query_vector, threshold, limit)

    def get_stats(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        return {
            'ready': self._ready,
            'generation': snapshot.generation,
            'documents': len(snapshot.documents),
            'terms': len(snapshot.postings),
            'concept_vectors': len(snapshot.vectors),
        }

    def shutdown(self) -> None:
        """Drop all index state; the index must be rebuilt before serving again."""
        with self._write_lock:
            self._snapshot = IndexSnapshot(generation=self._snapshot.generation + 1)
            self._ready = False
        self.logger.info("Corpus index shut down")
