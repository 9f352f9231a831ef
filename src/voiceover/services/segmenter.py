"""Script segmentation through the Anthropic Messages API.

The model is asked to split a script into chunks that each sound complete
when spoken on their own, and to answer with a bare JSON array of strings.
Replies wrapped in a Markdown code fence are tolerated.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping, Sequence

import httpx

from ..config import Settings
from ..errors import (
    ConfigurationError,
    SegmentationParseError,
    SegmentationShapeError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

SEGMENTATION_INSTRUCTIONS = """
You are an expert text-to-speech script segmentation assistant. Your job is to split scripts into chunks that flow naturally when spoken aloud.

CRITICAL CONTEXT:
Each chunk you create will be spoken as a SEPARATE audio file by an AI voice. Your segmentation directly impacts how natural and coherent the final audio sounds. Poor splits create jarring transitions.

YOUR MISSION:
Create chunks based PURELY on meaning, context, and natural speech flow. Ignore line counts or character limits - focus ONLY on what makes sense to speak together.

ABSOLUTE RULES FOR SPLITTING:

1. SEMANTIC COMPLETENESS - Each chunk MUST be a complete unit of meaning:
   ✓ Complete sentences or paragraphs that express one full idea
   ✓ Dialogue exchanges (question + answer together)
   ✓ Lists or enumerated items (keep the whole list together)
   ✓ Cause and effect statements (keep together)
   ✓ Introductions with their explanations
   ✓ Examples with their context

   ✗ NEVER split mid-sentence
   ✗ NEVER separate a question from its answer
   ✗ NEVER break up a thought or explanation
   ✗ NEVER split a list across chunks

2. NATURAL SPEECH BOUNDARIES - Only split where a speaker would naturally pause:
   ✓ Between different topics or subjects
   ✓ Between paragraphs or major sections
   ✓ Between different speakers in dialogue
   ✓ After complete statements that stand alone
   ✓ At scene transitions or time shifts

   ✗ NEVER split where it would sound awkward if spoken
   ✗ NEVER break between dependent clauses
   ✗ NEVER split descriptions from what they describe

3. CONTEXTUAL AWARENESS - Think like a voice actor:
   • Would this chunk sound complete if someone only heard this part?
   • Does this chunk have enough context to understand on its own?
   • Would a pause here sound natural in speech?
   • Are related ideas grouped together?

4. SIZE FLEXIBILITY:
   • Chunks can be SHORT (1-2 sentences) if that's a complete thought
   • Chunks can be LONG (multiple paragraphs) if they belong together
   • Prioritize MEANING over size - never sacrifice flow for arbitrary length
   • Better to have fewer, longer chunks than many choppy ones

EXAMPLES:

BAD SPLIT (breaks meaning):
Chunk 1: "Scientists recently discovered that the new treatment"
Chunk 2: "can reduce symptoms by up to 80 percent in clinical trials."

GOOD SPLIT (complete thoughts):
Chunk 1: "Scientists recently discovered that the new treatment can reduce symptoms by up to 80 percent in clinical trials."
Chunk 2: "The breakthrough came after five years of research and testing."

BAD SPLIT (separates dialogue):
Chunk 1: "The reporter asked, 'What are your plans for the future?'"
Chunk 2: "The CEO responded, 'We're focusing on sustainable growth.'"

GOOD SPLIT (keeps exchange together):
Chunk 1: "The reporter asked, 'What are your plans for the future?' The CEO responded, 'We're focusing on sustainable growth.'"
Chunk 2: "This strategy represents a major shift in company policy."

OUTPUT FORMAT:
Return ONLY a raw JSON array of strings - no markdown, no code fences, no explanations.

["First complete chunk", "Second complete chunk", "Third complete chunk"]

FINAL CHECK before returning:
✓ Would each chunk sound complete and natural if spoken aloud?
✓ Are all related ideas grouped together?
✓ Are splits only at natural speech boundaries?
✓ Does each chunk have enough context to make sense?
""".strip()

_LEADING_FENCE = re.compile(r"\A```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```\Z")


def build_segmentation_prompt(text: str) -> str:
    """Return the user message: fixed instructions followed by ``text`` verbatim."""

    return f"{SEGMENTATION_INSTRUCTIONS}\n\nText to split:\n{text}"


def strip_code_fences(reply: str) -> str:
    """Remove a leading and trailing Markdown code fence, if present."""

    stripped = reply.strip()
    while True:
        unwrapped = _LEADING_FENCE.sub("", stripped, count=1)
        unwrapped = _TRAILING_FENCE.sub("", unwrapped, count=1).strip()
        if unwrapped == stripped:
            return stripped
        stripped = unwrapped


def parse_segments(reply: str) -> list[str]:
    """Parse a model reply into the ordered list of non-blank chunk strings."""

    cleaned = strip_code_fences(reply)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise SegmentationParseError(
            details=f"Reply is not valid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}",
        ) from exc

    if not isinstance(parsed, list):
        raise SegmentationShapeError(
            details=f"Expected a JSON array of strings, got {type(parsed).__name__}",
        )

    chunks: list[str] = []
    for index, item in enumerate(parsed):
        if not isinstance(item, str):
            raise SegmentationShapeError(
                details=f"Element {index} is {type(item).__name__}, expected string",
            )
        if item.strip():
            chunks.append(item)

    if not chunks:
        raise SegmentationShapeError(details="Reply contained no non-empty chunks")
    return chunks


class ScriptSegmenter:
    """Split script text into speakable chunks with a single model call."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client

    @property
    def _base_url(self) -> str:
        return str(self._settings.anthropic_base_url).rstrip("/")

    def require_configured(self) -> None:
        if not self._settings.has_anthropic_credentials:
            raise ConfigurationError("Anthropic API key not configured")

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.anthropic_api_key
        return {
            "x-api-key": api_key.get_secret_value() if api_key else "",
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self._settings.segmentation_model,
            "max_tokens": self._settings.segmentation_max_tokens,
            "messages": [
                {"role": "user", "content": build_segmentation_prompt(text)},
            ],
        }

    async def segment(self, text: str) -> list[str]:
        """Return the chunk texts for ``text`` in reading order."""

        self.require_configured()

        try:
            response = await self._http.post(
                f"{self._base_url}/v1/messages",
                headers=self._headers(),
                json=self.build_payload(text),
            )
        except httpx.HTTPError as exc:
            logger.error("Anthropic transport error: %s", exc)
            raise UpstreamError(
                "Failed to split script",
                details=str(exc) or exc.__class__.__name__,
            ) from exc

        if response.status_code >= 400:
            detail = self._extract_error_detail(response.content)
            logger.error("Anthropic returned HTTP %s: %s", response.status_code, detail)
            raise UpstreamError(
                "Failed to split script",
                details=detail,
                provider_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise SegmentationParseError(details="Provider response is not JSON") from exc

        chunks = parse_segments(self._extract_reply_text(body))
        logger.info(
            "Created %d chunks with sizes: %s",
            len(chunks),
            ", ".join(f"Chunk {i}: {len(c)} chars" for i, c in enumerate(chunks, start=1)),
        )
        return chunks

    @staticmethod
    def _extract_reply_text(payload: Any) -> str:
        if not isinstance(payload, Mapping):
            raise SegmentationParseError(details="Provider response is not an object")
        content = payload.get("content")
        fragments: list[str] = []
        if isinstance(content, str):
            fragments.append(content)
        elif isinstance(content, Sequence):
            for block in content:
                if not isinstance(block, Mapping):
                    continue
                if block.get("type") == "text" and isinstance(block.get("text"), str):
                    fragments.append(block["text"])
        text = "".join(fragments).strip()
        if not text:
            raise SegmentationParseError(details="Provider response contained no text")
        return text

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Anthropic returned an empty error response."
        text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
            return error or payload
        return payload


__all__ = [
    "SEGMENTATION_INSTRUCTIONS",
    "ScriptSegmenter",
    "build_segmentation_prompt",
    "parse_segments",
    "strip_code_fences",
]
