"""
Client for the OpenAI-compatible chat-completions gateway used for clustering and analysis.

Calls are bounded by settings.ai_timeout_seconds. Upstream 429 and 402 map to
distinct errors since the remedy differs (wait vs. contact an administrator).
"""

import json
import re
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.core.errors import UpstreamAdapterError, UpstreamRateLimited, UpstreamQuotaExhausted

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def extract_json(content: str) -> Any:
    """Parse a JSON body that may be wrapped in a markdown code fence"""
    match = _FENCE_RE.search(content or "")
    text = match.group(1).strip() if match else (content or "").strip()
    return json.loads(text)


class LLMClient:
    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.ai_gateway_url
        self.api_key = api_key if api_key is not None else settings.ai_api_key
        self.model = model or settings.ai_model
        self.timeout = timeout or settings.ai_timeout_seconds
        self.transport = transport

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Single chat completion, returns the assistant message text"""
        if not self.api_key:
            logger.error("AI gateway API key is not configured")
            raise UpstreamAdapterError("AI service not configured")

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.warning(f"AI gateway timed out after {self.timeout}s")
            raise UpstreamAdapterError("The AI service took too long to answer, try again")
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise UpstreamAdapterError()

        if response.status_code == 429:
            raise UpstreamRateLimited()
        if response.status_code == 402:
            raise UpstreamQuotaExhausted()
        if response.status_code >= 400:
            logger.error(f"AI gateway error {response.status_code}: {response.text[:500]}")
            raise UpstreamAdapterError()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.error("AI gateway returned an unexpected body")
            raise UpstreamAdapterError()
        if not content:
            raise UpstreamAdapterError("Empty AI response, try again")
        return content


def get_llm_client() -> LLMClient:
    return LLMClient()
