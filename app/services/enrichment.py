"""
AI Enrichment Service

Turns a raw YouTube title + description into a clean EnrichedMovie using
the Gemini generateContent REST API. Optionally grounds the answer with
Google Search.
"""

import json
import re
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..core.exceptions import EnrichmentError
from ..core.logging import get_logger
from ..models.movie import EnrichedMovie, MovieCategory

logger = get_logger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

CATEGORIES = ", ".join(f"'{c.value}'" for c in MovieCategory)

SYSTEM_INSTRUCTION = f"""You catalog full-length movies published on YouTube.
Clean the YouTube title: drop promotional noise such as "LATEST MOVIE 2024" and keep only the official film title.
Reply with one JSON object and nothing else, with these fields:
- "title": official title; sequels must include "Part N".
- "seriesTitle": the series name without the part; equals "title" for standalone films.
- "partNumber": integer part number, 1 for a first or standalone film.
- "description": a 30-40 word summary.
- "stars": the 3-4 lead actors.
- "genre": one primary genre.
- "category": exactly one of {CATEGORIES}."""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "seriesTitle": {"type": "STRING"},
        "partNumber": {"type": "INTEGER"},
        "description": {"type": "STRING"},
        "stars": {"type": "ARRAY", "items": {"type": "STRING"}},
        "genre": {"type": "STRING"},
        "category": {"type": "STRING", "enum": [c.value for c in MovieCategory]},
    },
    "required": ["title", "seriesTitle", "partNumber", "description", "stars", "genre", "category"],
}

FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model reply.

    Grounded (web search) replies cannot use JSON mode, so the object may
    arrive wrapped in a code fence or surrounded by prose.
    """
    fenced = FENCED_JSON.search(text)
    if fenced:
        text = fenced.group(1)

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in model reply")

    data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("model reply is not a JSON object")
    return data


class EnrichmentService:
    """Async client for the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        web_search: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.web_search = settings.gemini_web_search if web_search is None else web_search
        self.timeout = timeout or settings.enrichment_timeout_seconds
        self.transport = transport

        if not self.api_key:
            logger.warning("gemini_api_key_not_set")

    def _build_request(self, title: str, description: str) -> Dict[str, Any]:
        prompt = (
            f'Enrich this movie data. YouTube Title: "{title}". '
            f'YouTube Description: "{description}"'
        )
        body: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if self.web_search:
            body["tools"] = [{"google_search": {}}]
        else:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            }
        return body

    async def enrich(self, title: str, description: str = "") -> EnrichedMovie:
        """
        Normalize one video's metadata.

        Raises:
            EnrichmentError: transport failure, non-200, or a reply that is
            not a valid EnrichedMovie (including an unknown category)
        """
        if not self.api_key:
            raise EnrichmentError("Gemini API key is not configured")

        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    json=self._build_request(title, description or ""),
                    headers={"x-goog-api-key": self.api_key},
                )
        except httpx.HTTPError as e:
            logger.warning("enrichment_request_error", title=title, error=str(e))
            raise EnrichmentError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.warning("enrichment_request_failed", title=title, status=response.status_code)
            raise EnrichmentError(f"Gemini returned HTTP {response.status_code}")

        try:
            parts = response.json()["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
            enriched = EnrichedMovie.model_validate(extract_json_object(text))
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            logger.warning("enrichment_response_invalid", title=title, error=str(e))
            raise EnrichmentError(f"Unusable Gemini reply: {e}") from e

        logger.info("enrichment_completed", source_title=title, title=enriched.title)
        return enriched


_enrichment_service: Optional[EnrichmentService] = None


def get_enrichment_service() -> EnrichmentService:
    """Get singleton EnrichmentService instance."""
    global _enrichment_service
    if _enrichment_service is None:
        _enrichment_service = EnrichmentService()
    return _enrichment_service
