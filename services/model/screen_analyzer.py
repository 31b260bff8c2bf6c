"""One-shot description of the mirrored screen."""

import logging
import time
from typing import Any, Dict

from anthropic import AsyncAnthropic

from models.agent_models import ImageBlock, Message, Role, TextBlock
from services.model.agent_prompts import build_analysis_prompt
from services.model.message_builder import message_to_wire
from services.model.model_gateway import create_with_retry
from services.model.response_parser import extract_text, extract_usage


class ScreenAnalyzer:
    """Ask the model what it sees on a single screenshot."""

    def __init__(
        self,
        client: AsyncAnthropic,
        *,
        model: str,
        max_tokens: int = 1024,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        if client is None:
            raise ValueError("Anthropic client must be provided.")
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def describe(self, screenshot: bytes) -> Dict[str, Any]:
        """Return the model's description of `screenshot` (JPEG bytes)."""
        start_time = time.time()
        message = Message(
            role=Role.USER,
            content=(ImageBlock(data=screenshot), TextBlock(text=build_analysis_prompt())),
        )
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [message_to_wire(message)],
        }
        response = await create_with_retry(
            self.client, payload, max_retries=self.max_retries, base_delay=self.base_delay
        )
        description = extract_text(response)
        if not description:
            logging.error("Empty analysis returned by the model.")

        result: Dict[str, Any] = {"description": description, "latency": time.time() - start_time}
        result.update(extract_usage(response))
        return result
