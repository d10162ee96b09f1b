"""AI task extraction from free text, with a deterministic fallback."""

import logging
from typing import Any

from ..config import settings
from ..models.extraction import ExtractionResult
from ..models.task import EnergyLevel, Workspace
from .bedrock import invoke_claude, parse_json_content

logger = logging.getLogger(__name__)

DEFAULT_MINUTES = 15
MAX_TAGS = 3
UNTITLED = "Untitled task"

SYSTEM_PROMPT = """You are a task parsing assistant. Analyze task inputs and extract structured information.
Context: User is a busy software developer.
- "Fix bug" usually implies High energy.
- "Email" or "Call" usually implies Low energy.
- Extract time if mentioned (e.g., "20m") and remove it from the title.
Return valid JSON only."""


def fallback_extraction(raw_text: str) -> ExtractionResult:
    """Basic extraction used whenever the model cannot be."""
    return ExtractionResult(
        title=raw_text.strip() or UNTITLED,
        energy=EnergyLevel.MEDIUM,
        estimated_minutes=DEFAULT_MINUTES,
        tags=[],
        is_fallback=True,
    )


def _coerce_minutes(value: Any) -> int:
    try:
        minutes = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_MINUTES
    return minutes if minutes > 0 else DEFAULT_MINUTES


def normalize_extraction(parsed: dict[str, Any], raw_text: str) -> ExtractionResult:
    """Clamp a model reply into a well-formed result."""
    title = parsed.get("title")
    if not isinstance(title, str) or not title.strip():
        title = raw_text.strip() or UNTITLED

    energy = str(parsed.get("energy") or "").lower()
    if energy not in {e.value for e in EnergyLevel}:
        energy = EnergyLevel.MEDIUM.value

    tags = parsed.get("tags")
    if not isinstance(tags, list):
        tags = []
    tags = [str(t).strip() for t in tags if str(t).strip()][:MAX_TAGS]

    workspace = str(parsed.get("workspace") or parsed.get("workspaceSuggestions") or "").lower()
    suggested = Workspace(workspace) if workspace in {w.value for w in Workspace} else None

    return ExtractionResult(
        title=title.strip(),
        energy=EnergyLevel(energy),
        estimated_minutes=_coerce_minutes(
            parsed.get("estimated_minutes", parsed.get("estimatedTime"))
        ),
        tags=tags,
        suggested_workspace=suggested,
    )


def extract_task(raw_text: str, context_hints: str | None = None) -> ExtractionResult:
    """Extract task fields from free text.

    Never raises: any failure (client error, malformed reply, AI disabled)
    yields the fallback result.
    """
    if not raw_text or not raw_text.strip() or not settings.ai_enabled:
        return fallback_extraction(raw_text or "")

    context = f"\nContext: {context_hints}" if context_hints else ""
    prompt = f"""Analyze this task input: "{raw_text}".{context}

Extract these fields and return only a JSON object:
{{
  "title": "task title cleaned of time estimates",
  "energy": "high|medium|low",
  "estimated_minutes": 15,
  "tags": ["up to 3 short tags"],
  "workspace": "job|freelance|personal|null"
}}"""

    try:
        content = invoke_claude(prompt, max_tokens=300, system=SYSTEM_PROMPT)
        parsed = parse_json_content(content)
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
        result = normalize_extraction(parsed, raw_text)
        logger.debug(f"Extracted task '{result.title}' ({result.energy.value})")
        return result
    except Exception as e:
        logger.error(f"Task extraction failed, using fallback: {e}")
        return fallback_extraction(raw_text)
