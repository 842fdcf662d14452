"""
Centralized model client for AI operations.

Wraps the Gemini API used for intent and entity extraction. Callers
treat every method here as unreliable and may fail with AIError.
"""

import json
import re
import threading
import time
from typing import Dict, Any, Optional
from functools import lru_cache

import google.generativeai as genai

from ...config.settings import get_settings
from ...exceptions import AIError, ConfigurationError


class ModelClient:
    """
    Centralized client for AI model operations.

    Configures Gemini once per process and keeps per-model
    instances and request statistics.
    """

    _instance: Optional["ModelClient"] = None
    _lock = threading.RLock()
    _initialized = False

    def __new__(cls) -> "ModelClient":
        """Singleton pattern for model client."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.settings = get_settings()
        self._models: Dict[str, Any] = {}
        self._request_counts: Dict[str, int] = {}
        self._last_request_times: Dict[str, float] = {}
        self.configured = False

        if self.settings.gemini_api_key:
            self._init_gemini()

        self._initialized = True

    def _init_gemini(self):
        """Initialize Gemini AI client."""
        try:
            genai.configure(api_key=self.settings.gemini_api_key)
            self.configured = True
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize Gemini: {e}")

    def get_gemini_model(self, model_name: Optional[str] = None) -> Any:
        """
        Get or create Gemini model instance.

        Args:
            model_name: Gemini model name

        Returns:
            Gemini model instance
        """
        if not self.configured:
            raise AIError("Gemini is not configured (GEMINI_API_KEY missing)")

        model_name = model_name or self.settings.default_llm_model
        with self._lock:
            model = self._models.get(model_name)
            if model is None:
                try:
                    model = genai.GenerativeModel(model_name=model_name)
                except Exception as e:
                    raise AIError(f"Failed to create Gemini model {model_name}: {e}")
                self._models[model_name] = model
            return model

    def generate_json(self,
                     prompt: str,
                     model_name: Optional[str] = None,
                     max_tokens: int = 512,
                     temperature: float = 0.1) -> Dict[str, Any]:
        """
        Generate JSON response using specified model.

        Args:
            prompt: Text prompt (should request JSON format)
            model_name: Model to use
            max_tokens: Maximum response tokens
            temperature: Generation temperature

        Returns:
            Parsed JSON response
        """
        if "JSON" not in prompt.upper():
            prompt += "\n\nPlease respond with valid JSON only."

        model_name = model_name or self.settings.default_llm_model

        try:
            model = self.get_gemini_model(model_name)

            generation_config = genai.types.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                response_mime_type="application/json"
            )

            response = model.generate_content(
                prompt,
                generation_config=generation_config
            )

            if not response.text:
                raise AIError("Empty response from model")

            result = self._parse_json(response.text)
            self._update_request_stats(model_name)
            return result

        except AIError:
            raise
        except Exception as e:
            raise AIError(f"JSON generation failed: {e}")

    @staticmethod
    def _parse_json(text: str) -> Dict[str, Any]:
        try:
            result = json.loads(text)
        except json.JSONDecodeError as e:
            # Models sometimes wrap the object in prose or code fences
            json_match = re.search(r'\{.*\}', text, re.DOTALL)
            if not json_match:
                raise AIError(f"Invalid JSON response: {e}")
            try:
                result = json.loads(json_match.group())
            except json.JSONDecodeError as inner:
                raise AIError(f"Invalid JSON response: {inner}")

        if not isinstance(result, dict):
            raise AIError("JSON response is not an object")
        return result

    def _update_request_stats(self, model_name: str):
        self._request_counts[model_name] = self._request_counts.get(model_name, 0) + 1
        self._last_request_times[model_name] = time.time()

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {
            'configured': self.configured,
            'models_loaded': list(self._models),
            'request_counts': self._request_counts.copy(),
            'seconds_since_last_request': {
                k: time.time() - v for k, v in self._last_request_times.items()
            }
        }


# Global instance
_model_client = None
_client_lock = threading.Lock()


@lru_cache()
def get_model_client() -> ModelClient:
    """
    Get the global model client instance.

    Returns:
        ModelClient singleton instance
    """
    global _model_client

    if _model_client is None:
        with _client_lock:
            if _model_client is None:
                _model_client = ModelClient()

    return _model_client
