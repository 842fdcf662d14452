"""
Gemini-backed concept extraction.

Asks the model for a JSON object with the query intent and entities.
The blocking SDK call runs in a worker thread so the event loop keeps
serving other queries while it waits.
"""

import asyncio
from typing import Any, Dict, Optional

from ....shared import AIError, ModelClient, get_logger, get_model_client
from .base import ConceptExtractor, ExtractionResult, parse_extraction_payload

EXTRACTION_PROMPT = """Classify the intent of the search query below and extract its named entities.

Intent categories:
- task: task management (create, view, complete tasks)
- document: document analysis or summarization
- search: looking for documents or material
- schedule: meetings, calendar, dates
- conversation: asking the assistant for help, explanations or recommendations
- file: saving, uploading, downloading or exporting files
- general: anything else

Query: "{query}"

Respond with JSON only, in this shape:
{{"intent": "<category>", "entities": [{{"type": "<person|project|organization|date|topic|...>", "name": "<entity>"}}]}}
"""


class GeminiConceptExtractor(ConceptExtractor):
    """
    Concept extractor using the shared Gemini ModelClient.
    """

    def __init__(self,
                 model_client: Optional[ModelClient] = None,
                 model_name: Optional[str] = None,
                 max_tokens: int = 256):
        self.logger = get_logger(__name__)
        self.model_client = model_client or get_model_client()
        self.model_name = model_name
        self.max_tokens = max_tokens

    @property
    def configured(self) -> bool:
        return bool(getattr(self.model_client, 'configured', False))

    async def classify_intent_and_entities(self, text: str) -> ExtractionResult:
        if not self.configured:
            return ExtractionResult.failure("Gemini model client is not configured")

        prompt = EXTRACTION_PROMPT.format(query=text.replace('"', "'"))

        try:
            payload = await asyncio.to_thread(
                self.model_client.generate_json,
                prompt,
                model_name=self.model_name,
                max_tokens=self.max_tokens,
                temperature=0.1,
            )
        except AIError as e:
            return ExtractionResult.failure(str(e))

        result = parse_extraction_payload(payload)
        if result.ok:
            self.logger.debug(
                f"Extracted intent={result.intent} entities={len(result.entities)} for '{text}'"
            )
        return result

    def get_info(self) -> Dict[str, Any]:
        return {
            'extractor': type(self).__name__,
            'configured': self.configured,
            'model': self.model_name or self.model_client.settings.default_llm_model,
            'client': self.model_client.get_stats(),
        }
