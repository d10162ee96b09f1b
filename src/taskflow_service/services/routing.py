"""Deterministic routing of inbound items to tasks or drafts."""

import re

EVENT_KEYWORDS = ("invite", "invitation", "meeting", "calendar", "event")

# Whole words only, plus simple inflections ("invited", "meetings")
EVENT_KEYWORD_RE = re.compile(
    r"\b(?:" + "|".join(EVENT_KEYWORDS) + r")(?:s|d)?\b", re.IGNORECASE
)

# Brand names and hosts of supported video-call providers
VIDEO_CALL_PATTERNS = (
    re.compile(r"\bzoom\b", re.IGNORECASE),
    re.compile(r"zoom\.us", re.IGNORECASE),
    re.compile(r"google meet", re.IGNORECASE),
    re.compile(r"meet\.google\.com", re.IGNORECASE),
    re.compile(r"microsoft teams|\bteams\b", re.IGNORECASE),
    re.compile(r"teams\.microsoft\.com|teams\.live\.com", re.IGNORECASE),
    re.compile(r"webex", re.IGNORECASE),
)

MEETING_LINK_RE = re.compile(
    r"https?://(?:[\w-]+\.)*(?:zoom\.us|meet\.google\.com|teams\.microsoft\.com|"
    r"teams\.live\.com|webex\.com)/[^\s<>\"')\]]*",
    re.IGNORECASE,
)


def has_event_keyword(text: str) -> bool:
    return EVENT_KEYWORD_RE.search(text) is not None


def has_video_call(text: str) -> bool:
    return any(pattern.search(text) for pattern in VIDEO_CALL_PATTERNS)


def looks_like_event(*texts: str | None) -> bool:
    """True when the texts mention an event and a video-call provider."""
    combined = " ".join(t for t in texts if t)
    return has_event_keyword(combined) and has_video_call(combined)


def find_meeting_link(text: str | None) -> str | None:
    """First video-call URL in the text, if any."""
    if not text:
        return None
    match = MEETING_LINK_RE.search(text)
    return match.group(0).rstrip(".,;") if match else None
