"""Claude via AWS Bedrock."""

import json
import logging
import re
from typing import Any

import boto3

from ..config import settings

logger = logging.getLogger(__name__)

# Bedrock client (lazy initialization)
_bedrock_client = None


def get_bedrock_client():
    """Get or create Bedrock runtime client."""
    global _bedrock_client
    if _bedrock_client is None:
        _bedrock_client = boto3.client(
            "bedrock-runtime",
            region_name=settings.aws_region,
        )
    return _bedrock_client


def invoke_claude(prompt: str, max_tokens: int = 500, system: str | None = None) -> str:
    """Send a single-turn prompt and return the text of the reply.

    Raises whatever the client raises; callers decide how to degrade.
    """
    body: dict[str, Any] = {
        "anthropic_version": "bedrock-2023-05-31",
        "max_tokens": max_tokens,
        "temperature": 0.3,
        "messages": [{"role": "user", "content": prompt}],
    }
    if system:
        body["system"] = system

    response = get_bedrock_client().invoke_model(
        modelId=settings.bedrock_model_id,
        contentType="application/json",
        accept="application/json",
        body=json.dumps(body),
    )

    result = json.loads(response["body"].read())
    content = result["content"][0]["text"]
    if not content or not content.strip():
        raise ValueError("Empty response from model")
    return content


def parse_json_content(content: str) -> Any:
    """Parse a JSON reply, tolerating markdown code fences."""
    if "```" in content:
        match = re.search(r"```(?:json)?\s*(.*?)\s*```", content, re.DOTALL)
        if match:
            content = match.group(1)
    return json.loads(content.strip())
