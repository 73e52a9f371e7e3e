from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from .exceptions import InsightError
from .models import Article

logger = logging.getLogger(__name__)

SENTIMENTS = ("Positive", "Neutral", "Negative")
CATEGORIES = ("News", "Politics", "Sports", "Business", "Technology", "Entertainment")


class JsonBackend(Protocol):
    def complete_json(self, prompt: str) -> Any:  # pragma: no cover - interface
        ...


@dataclass
class InsightOptions:
    provider: str = "gemini"  # "gemini" | "openai"
    model: Optional[str] = None
    max_titles: int = 100
    max_content_chars: int = 10000
    timeout_sec: float = 30.0


def _load_json(text: Optional[str]) -> Any:
    if not text:
        raise InsightError("Empty response from insight service")
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        return json.loads(text)
    except ValueError as e:
        raise InsightError(f"Insight service returned invalid JSON: {e}") from e


class GeminiBackend:
    def __init__(self, *, api_key: Optional[str], model: Optional[str], timeout_sec: float) -> None:
        try:
            import google.generativeai as genai  # type: ignore
        except Exception as e:  # pragma: no cover - optional dep
            raise RuntimeError("google-generativeai package is required for Gemini insights. Install with `pip install google-generativeai`.") from e
        key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        if not key:
            raise RuntimeError("GOOGLE_API_KEY (or GEMINI_API_KEY) not set.")
        genai.configure(api_key=key)
        self._model_name = model or os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self._timeout = timeout_sec
        self._genai = genai

    def complete_json(self, prompt: str) -> Any:
        try:
            model = self._genai.GenerativeModel(self._model_name)
            resp = model.generate_content(
                prompt,
                generation_config={"response_mime_type": "application/json"},
                request_options={"timeout": self._timeout},
            )
            text = getattr(resp, "text", None)
        except Exception as e:
            raise InsightError(f"Gemini request failed: {e}") from e
        return _load_json(text)


class OpenAIBackend:
    def __init__(self, *, api_key: Optional[str], model: Optional[str], timeout_sec: float) -> None:
        try:
            from openai import OpenAI  # type: ignore
        except Exception as e:  # pragma: no cover - optional dep
            raise RuntimeError("openai package is required for OpenAI insights. Install with `pip install openai`. ") from e
        key = api_key or os.getenv("OPENAI_API_KEY")
        if not key:
            raise RuntimeError("OPENAI_API_KEY not set.")
        self._client = OpenAI(api_key=key)
        self._model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self._timeout = timeout_sec

    def complete_json(self, prompt: str) -> Any:
        try:
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": "You are a news analyst. Reply with JSON only, no prose, no code fences."},
                    {"role": "user", "content": prompt},
                ],
                timeout=self._timeout,
            )
            content = resp.choices[0].message.content if resp and resp.choices else None
        except Exception as e:
            raise InsightError(f"OpenAI request failed: {e}") from e
        return _load_json(content)


def build_backend(options: Optional[InsightOptions] = None) -> JsonBackend:
    options = options or InsightOptions()
    provider = (options.provider or "").lower()
    if provider == "openai":
        return OpenAIBackend(api_key=os.getenv("OPENAI_API_KEY"), model=options.model, timeout_sec=options.timeout_sec)
    if provider in {"gemini", "google", "googleai"}:
        return GeminiBackend(api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"), model=options.model, timeout_sec=options.timeout_sec)
    raise ValueError(f"Unknown insight provider: {options.provider!r}")


def headline_titles(articles: Iterable[Article], limit: int = 80) -> List[str]:
    return [a.title for a in list(articles)[:limit]]


def timed_titles(articles: Iterable[Article], limit: int = 80) -> List[str]:
    """Titles prefixed with their UTC publish time, for the sentiment timeline."""
    return [f"[{a.published_at.strftime('%d %H:%M')}] {a.title}" for a in list(articles)[:limit]]


def _records(data: Any, keys: Sequence[str]) -> List[Dict[str, Any]]:
    if not isinstance(data, list):
        raise InsightError("Expected a JSON array from insight service")
    out = []
    for row in data:
        if not isinstance(row, dict) or any(k not in row for k in keys):
            raise InsightError(f"Insight record missing one of {list(keys)}: {row!r}")
        out.append(row)
    return out


class InsightClient:
    """
    Request/response wrapper around a generative model that answers in JSON.

    Each call sends one prompt and validates the shape of the reply. Failures raise
    InsightError so callers can show an error local to the feature that asked.
    """

    def __init__(self, backend: Optional[JsonBackend] = None, options: Optional[InsightOptions] = None) -> None:
        self.options = options or InsightOptions()
        self._backend = backend or build_backend(self.options)

    def _headlines(self, titles: Sequence[str], sep: str = "\n- ") -> str:
        return sep.join(titles[: self.options.max_titles])

    def _ask(self, prompt: str) -> Any:
        logger.debug("Insight request (%d chars)", len(prompt))
        return self._backend.complete_json(prompt)

    def summarize_article(self, title: str, content: str) -> Dict[str, Any]:
        data = self._ask(
            f'Summarize the news article titled "{title}".\n\n'
            f"Article content:\n{content[: self.options.max_content_chars]}\n\n"
            "Return a JSON object with 'summary' (at most 3 sentences), 'keyPoints' "
            f"(3-5 strings) and 'sentiment' (one of {', '.join(SENTIMENTS)})."
        )
        if not isinstance(data, dict) or any(k not in data for k in ("summary", "keyPoints", "sentiment")):
            raise InsightError("Article summary is missing required fields")
        return data

    def trend_report(self, titles: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            "Identify the 3-4 dominant news topics in these headlines.\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return a JSON array of objects with 'mainTopic' (short title), 'description' "
            "(1-2 sentences) and 'keyThemes' (3-4 related keywords or entities)."
        )
        return _records(data, ("mainTopic", "description", "keyThemes"))

    def trending_keywords(self, titles: Sequence[str]) -> List[str]:
        data = self._ask(
            "Extract the top 20 trending keywords, entities, people or events from these "
            "headlines. Prefer proper nouns; skip generic words such as news, today, latest, live, update.\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return a JSON array of strings."
        )
        if not isinstance(data, list) or not all(isinstance(k, str) for k in data):
            raise InsightError("Expected a JSON array of strings")
        return data

    def personalities(self, titles: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            "Identify the 4-6 most mentioned public figures in these headlines.\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return a JSON array of objects with 'name', 'role', 'context' (max 6 words), "
            f"'sentiment' (one of {', '.join(SENTIMENTS)}) and 'imageUrl' (empty string if unknown)."
        )
        return _records(data, ("name", "role", "context", "sentiment"))

    def sentiment_timeline(self, timed: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            "Analyze the sentiment of these timestamped headlines over time.\n\n"
            f"Data (time - headline):\n{self._headlines(timed, sep=chr(10))}\n\n"
            "Split the covered time range into 5 equal intervals. For each give a short "
            "'timeLabel' and the percentage of 'positive', 'neutral' and 'negative' headlines. "
            "Return a JSON array."
        )
        return _records(data, ("timeLabel", "positive", "neutral", "negative"))

    def categories(self, titles: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            f"Categorize these headlines into: {', '.join(CATEGORIES)}.\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return a JSON array of objects with 'category' and 'count'."
        )
        return _records(data, ("category", "count"))

    def topic_clusters(self, titles: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            "Group these headlines into distinct topic clusters (at most 8).\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return a JSON array of objects with 'topic' and 'count'."
        )
        return _records(data, ("topic", "count"))

    def locations(self, titles: Sequence[str]) -> List[Dict[str, Any]]:
        data = self._ask(
            "Extract the cities, states and countries mentioned in these headlines and count "
            "them. Prefer specific places over the country when both appear.\n\n"
            f"Headlines:\n- {self._headlines(titles)}\n\n"
            "Return the top 12 as a JSON array of objects with 'location' and 'count'."
        )
        return _records(data, ("location", "count"))
