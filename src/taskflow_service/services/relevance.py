"""User-configurable relevance filter for inbound content."""

import logging

from ..config import settings
from ..models.extraction import RelevanceDecision
from .bedrock import invoke_claude, parse_json_content

logger = logging.getLogger(__name__)


def has_rules(user_rules: str | None) -> bool:
    """Rules shorter than the configured minimum count as no rules."""
    return bool(user_rules) and len(user_rules.strip()) >= settings.relevance_min_rule_length


def check_relevance(summary: str, user_rules: str | None) -> RelevanceDecision:
    """Decide whether content matches the user's free-text rules.

    Fails open: without rules, with AI disabled, or on any classification
    error the content is treated as relevant.
    """
    if not has_rules(user_rules):
        return RelevanceDecision(is_relevant=True, reason="no rules configured")
    if not settings.ai_enabled:
        return RelevanceDecision(is_relevant=True, reason="ai disabled")

    prompt = f"""Decide whether this incoming message should become a task for the user.

## User Rules
{user_rules.strip()}

## Message
{summary[:2000]}

Respond with ONLY a JSON object:
{{"relevant": true, "reason": "short explanation"}}"""

    try:
        content = invoke_claude(prompt, max_tokens=150)
        parsed = parse_json_content(content)
        relevant = parsed.get("relevant", True)
        if isinstance(relevant, str):
            relevant = relevant.strip().lower() not in ("false", "no", "0")
        return RelevanceDecision(
            is_relevant=bool(relevant),
            reason=str(parsed.get("reason") or ""),
        )
    except Exception as e:
        logger.warning(f"Relevance check failed, treating as relevant: {e}")
        return RelevanceDecision(is_relevant=True, reason=f"classification failed: {e}")
