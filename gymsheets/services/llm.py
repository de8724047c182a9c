import json
import logging
from functools import lru_cache
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from gymsheets.config import OPENAI_API_KEY

logger = logging.getLogger(__name__)

JSON_ONLY_SYSTEM_PROMPT = "You are a fitness assistant that answers with strict, clean JSON only."


@lru_cache
def get_openai_client() -> AsyncOpenAI:
    return AsyncOpenAI(api_key=OPENAI_API_KEY)


async def request_json(client: AsyncOpenAI, model: str, system: str, prompt: str) -> Any | None:
    """Run a JSON-mode chat completion and decode the reply.

    Returns ``None`` when the request fails or the reply is not JSON.
    """
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
        )
    except OpenAIError:
        logger.exception("Chat completion with %s failed", model)
        return None

    content = response.choices[0].message.content if response.choices else None
    if not content:
        logger.warning("Chat completion with %s returned no content", model)
        return None
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        logger.exception("Chat completion with %s returned invalid JSON", model)
        return None
