import json
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from ..config import Settings


class LLMUnavailableError(RuntimeError):
    pass


class LLMClient:
    """Thin wrapper over the chat completions API.

    Built once at startup and passed to whoever needs it. When no API key is
    configured ``enabled`` is False and every analyzer uses its heuristic path.
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.default_model = settings.openai_model
        if client is not None:
            self.client = client
            return
        if not settings.openai_api_key:
            # allow caller to handle absence
            self.client = None
            return
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=str(settings.openai_api_base) if settings.openai_api_base else None,
            timeout=settings.request_timeout_seconds,
            max_retries=2,
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def chat(self, system_prompt: str, user_prompt: str, model: Optional[str] = None) -> str:
        if not self.client:
            raise LLMUnavailableError("LLM client not configured")
        model = model or self.default_model or "gpt-4o-mini"
        resp = await self.client.chat.completions.create(
            model=model,
            messages=[{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
            temperature=0.3,
            max_tokens=1000,
        )
        return resp.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first balanced ``{...}`` object in ``text`` that parses as JSON.

    Model replies often wrap the object in prose or markdown fences, so this
    scans for matching braces (ignoring braces inside string literals) instead
    of parsing the whole reply.
    """
    if not text:
        return None
    cleaned = re.sub(r"```(?:json)?", "", text)
    start = cleaned.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(cleaned)):
            ch = cleaned[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        obj = json.loads(cleaned[start : i + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(obj, dict):
                        return obj
                    break
        start = cleaned.find("{", start + 1)
    return None
