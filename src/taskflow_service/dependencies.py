"""FastAPI dependencies."""

from fastapi import Header, HTTPException


def current_user_id(x_user_id: str | None = Header(None)) -> str:
    """Caller identity, set by the authenticating proxy in front of the service."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
