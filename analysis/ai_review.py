"""
Claude-powered content operations:
  1. Rubric review of a single article (structured JSON scores)
  2. Free-form editorial assistance (drafting, rewriting, headline ideas)
"""

import json
import logging
import re
from typing import Callable, Optional

import anthropic

from config import require_env
from errors import AIResponseParseError, UpstreamError

logger = logging.getLogger(__name__)

MAX_TEXT_CHARS = 12_000

_REVIEW_FORMAT = """{
  "score": 75,
  "seoScore": 70,
  "qualityScore": 80,
  "productScore": 65,
  "summary": "Two-sentence overall assessment",
  "strengths": ["Strength 1", "Strength 2", "Strength 3"],
  "weaknesses": ["Weakness 1", "Weakness 2"],
  "seoImprovements": ["Concrete SEO tip 1", "Concrete SEO tip 2", "Concrete SEO tip 3"],
  "contentImprovements": ["Content suggestion 1", "Content suggestion 2"],
  "keywordSuggestions": ["Keyword 1", "Keyword 2", "Keyword 3"],
  "keywordAnalysis": {
    "focusKeyword": "%(focus)s",
    "inTitle": true,
    "inMetaDesc": true,
    "inH2": true,
    "inFirst100Words": true,
    "inSlug": true,
    "occurrences": 5,
    "density": "0.8%%",
    "verdict": "Keyword well placed / missing from key positions / etc.",
    "suggestedKeyword": "If no focus keyword is set: suggestion here"
  },
  "metaTitleSuggestion": "Optimised meta title (max 60 chars, focus keyword first)",
  "metaDescriptionSuggestion": "Meta description (max 155 chars, includes focus keyword)"
}"""


# ── Helpers ───────────────────────────────────────────────────────────────────

def _truncate(text: str, max_chars: int = MAX_TEXT_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "\n[... truncated ...]"


def strip_code_fences(raw: str) -> str:
    return re.sub(r"```(?:json)?", "", raw or "").strip()


def parse_review(raw: str) -> dict:
    cleaned = strip_code_fences(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Claude returned invalid JSON: %s", exc)
        logger.debug("Raw Claude response: %.300s", cleaned)
        raise AIResponseParseError(cleaned) from exc


def _keyword_block(focus: str) -> str:
    if not focus:
        return ("NOTE: no focus keyword is set in Yoast. Suggest a suitable focus keyword "
                "in keywordAnalysis.suggestedKeyword.")
    return f"""IMPORTANT — FOCUS KEYWORD: "{focus}"
The editor set this focus keyword in Yoast SEO. Check specifically:
- Does it appear in the H1/title?
- Does it appear in the meta description?
- Does it appear in at least one H2?
- Does it appear in the first 100 words?
- How often does it occur overall? (ideal density: 0.5-1.5%)
- Are there sensible variations/synonyms in the text?
- Is it part of the URL slug?
Report the result in "keywordAnalysis"."""


def build_review_prompt(article: dict, brand: str, language: str,
                        max_chars: int = MAX_TEXT_CHARS) -> tuple:
    """Return (system, user) messages for the article review."""
    seo = article.get("seo") or {}
    focus = seo.get("focusKeyword", "")
    structure = article.get("structure") or {}

    system = f"""You are an SEO and content expert for {brand}, a German trading and finance platform.
Review the following article and score it on a 0-100 scale. Write all free text in {language}.
Reply with ONLY the JSON object: no markdown, no backticks.

{_keyword_block(focus)}

JSON format:
{_REVIEW_FORMAT % {"focus": focus or "(none set)"}}

Criteria:
- SEO: keyword optimisation (focus keyword!), heading hierarchy, meta potential, internal linking, search intent
- Quality: readability, added value, structure, depth of analysis, E-E-A-T signals
- Product fit: relevance for {brand} users, premium conversion potential, CTA opportunities

Context: {brand} runs a free and a premium tier. Content should inform AND convert."""

    lines = [
        f"Title: {article.get('title', '')}",
        f"URL: {article.get('url', '')}",
        f"Slug: {article.get('slug', '')}",
        f"Focus keyword (Yoast): {focus}" if focus else "Focus keyword: NOT SET",
    ]
    if seo.get("seoTitle"):
        lines.append(f"Yoast meta title: {seo['seoTitle']}")
    if seo.get("seoDescription"):
        lines.append(f"Yoast meta description: {seo['seoDescription']}")
    lines.append(f"Words: {article.get('wordCount', 0)}")
    lines.append(
        f"H2: {structure.get('h2Count', 0)} | H3: {structure.get('h3Count', 0)} | "
        f"Images: {structure.get('hasImages', False)} | "
        f"Internal links: {structure.get('internalLinks', 0)} | "
        f"External links: {structure.get('externalLinks', 0)}"
    )
    headings = "\n".join(f"{h['level']}: {h['text']}" for h in article.get("headings", []))
    user = "\n".join(lines) + f"\n\nHeadings:\n{headings}\n\nFull text:\n{_truncate(article.get('content', ''), max_chars)}"
    return system, user


# ── Client ────────────────────────────────────────────────────────────────────

class AIClient:
    """Claude Messages API wrapper. The SDK client is created on first use."""

    def __init__(self, ai_config: dict, client_factory: Optional[Callable] = None):
        self._config = ai_config
        self._client_factory = client_factory or (
            lambda: anthropic.Anthropic(api_key=require_env("ANTHROPIC_API_KEY"))
        )
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def _complete(self, model: str, max_tokens: int, system: str, user: str) -> str:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APIStatusError as exc:
            raise UpstreamError("Claude API", exc.status_code, str(exc)) from exc
        except anthropic.APIConnectionError as exc:
            raise UpstreamError("Claude API", None, str(exc)) from exc
        return "".join(getattr(block, "text", "") for block in message.content)

    def review(self, article: dict) -> dict:
        cfg = self._config
        system, user = build_review_prompt(
            article,
            brand=cfg.get("brand", "the site"),
            language=cfg.get("language", "English"),
            max_chars=cfg.get("max_text_chars", MAX_TEXT_CHARS),
        )
        logger.info("Requesting AI review for post %s (%d words)",
                    article.get("id"), article.get("wordCount", 0))
        raw = self._complete(cfg["review_model"], cfg.get("review_max_tokens", 2000), system, user)
        return parse_review(raw)

    def assist(self, prompt: str, mode: Optional[str] = None) -> dict:
        cfg = self._config
        system = (
            f"You are an experienced financial editor at {cfg.get('brand', 'the site')}, "
            f"a German finance and trading portal. Answer in {cfg.get('language', 'English')}. "
            "Be precise and professional."
        )
        text = self._complete(cfg["assist_model"], cfg.get("assist_max_tokens", 4000), system, prompt)
        return {"text": text, "mode": mode}
