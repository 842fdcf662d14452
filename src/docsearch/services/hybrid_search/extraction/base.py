"""
Concept-extraction collaborator contract.

The collaborator classifies a query's intent and extracts its entities.
It is unreliable by contract (slow, unavailable, or returning garbage),
so every call produces an ExtractionResult instead of raising, and the
fallback values are explicit.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from ....shared import get_logger, get_metrics
from ..models import Entity, Intent

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction call: a value or an error, never both."""
    intent: Optional[Intent] = None
    entities: Tuple[Entity, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, intent: Optional[Intent], entities: Iterable[Entity] = ()) -> "ExtractionResult":
        return cls(intent=intent, entities=tuple(entities))

    @classmethod
    def failure(cls, error: str) -> "ExtractionResult":
        return cls(error=error)

    def intent_or(self, default: Intent = Intent.GENERAL) -> Intent:
        """The classified intent, or `default` on failure or an unrecognized label."""
        if self.ok and self.intent is not None:
            return self.intent
        return default

    def entities_or_empty(self) -> Tuple[Entity, ...]:
        return self.entities if self.ok else ()


def parse_extraction_payload(payload: Any) -> ExtractionResult:
    """
    Turn a collaborator JSON payload into an ExtractionResult.

    Accepted shape: {"intent": "...", "entities": [{"type": ..., "name": ...} | "name", ...]}.
    "type" is accepted in place of "intent". An unrecognized intent label
    leaves intent unset; malformed entity items are skipped.
    """
    if not isinstance(payload, dict):
        return ExtractionResult.failure("extraction payload is not an object")

    intent = Intent.from_label(payload.get('intent', payload.get('type')))

    raw_entities = payload.get('entities') or []
    if not isinstance(raw_entities, list):
        return ExtractionResult.failure("extraction entities is not a list")

    entities = []
    for item in raw_entities:
        if isinstance(item, str) and item.strip():
            entities.append(Entity(type='concept', name=item.strip()))
        elif isinstance(item, dict):
            name = item.get('name')
            if isinstance(name, str) and name.strip():
                entity_type = item.get('type') or 'concept'
                entities.append(Entity(type=str(entity_type).strip().lower(), name=name.strip()))

    return ExtractionResult.success(intent, entities)


class ConceptExtractor(ABC):
    """
    Abstract base for concept-extraction collaborators.
    """

    configured = True

    @abstractmethod
    async def classify_intent_and_entities(self, text: str) -> ExtractionResult:
        """
        Classify the intent of `text` and extract its entities.

        Args:
            text: Cleaned query text

        Returns:
            ExtractionResult; implementations report failures through it
        """
        pass

    def get_info(self) -> Dict[str, Any]:
        return {'extractor': type(self).__name__}


class NullConceptExtractor(ConceptExtractor):
    """Extractor used when no collaborator is configured; always falls back."""

    configured = False

    async def classify_intent_and_entities(self, text: str) -> ExtractionResult:
        return ExtractionResult.failure("concept extraction not configured")


async def extract_with_timeout(extractor: ConceptExtractor,
                               text: str,
                               timeout: float) -> ExtractionResult:
    """
    Call the collaborator with a bounded wait.

    Timeouts and errors the collaborator raises despite its contract
    become failure results; the query pipeline then uses the fallback.
    """
    if not extractor.configured:
        return await extractor.classify_intent_and_entities(text)

    try:
        result = await asyncio.wait_for(extractor.classify_intent_and_entities(text), timeout=timeout)
    except asyncio.TimeoutError:
        result = ExtractionResult.failure(f"concept extraction timed out after {timeout:.1f}s")
        get_metrics().record_extraction_failure('timeout')
    except Exception as e:
        result = ExtractionResult.failure(f"concept extraction failed: {e}")
        get_metrics().record_extraction_failure(type(e).__name__)
    else:
        if not isinstance(result, ExtractionResult):
            result = ExtractionResult.failure("concept extractor returned an unexpected value")
        elif not result.ok:
            get_metrics().record_extraction_failure('error_result')

    if not result.ok:
        logger.warning(f"Using local fallback for query concepts: {result.error}")
    return result
