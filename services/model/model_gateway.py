"""Anthropic Messages API gateway for the agent loop.

The gateway is the only place that knows the provider's request and
response shapes. It sends the running conversation together with the
system prompt and the three tool schemas, retries while the provider
reports that it is overloaded, and mirrors every call to the session
logger.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from anthropic import AsyncAnthropic

from models.agent_models import Message, ModelReply
from models.task_errors import GatewayOverloaded, GatewayRequestFailed, TaskError
from services.credential_store import redact_credential
from services.model.agent_prompts import build_system_prompt
from services.model.message_builder import ModelRequest
from services.model.response_parser import parse_reply
from services.model.tool_schema import TOOL_DEFINITIONS
from services.task.session_logger import log_quietly

LOGGER = logging.getLogger(__name__)

OVERLOADED_STATUS = 529
OVERLOADED_ERROR_TYPE = "overloaded_error"

Sleep = Callable[[float], Awaitable[Any]]


def is_overloaded(exc: BaseException) -> bool:
    """Return True when `exc` is the provider's transient overload signal."""
    if getattr(exc, "status_code", None) == OVERLOADED_STATUS:
        return True
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("type") == OVERLOADED_ERROR_TYPE:
            return True
        if body.get("type") == OVERLOADED_ERROR_TYPE:
            return True
    return False


async def create_with_retry(
    client: AsyncAnthropic,
    payload: Dict[str, Any],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Call `client.messages.create`, retrying overloads with exponential backoff.

    The first retry waits `base_delay`, and each later retry doubles the wait.

    Raises:
        GatewayOverloaded: The provider was still overloaded after `max_retries` retries.
        GatewayRequestFailed: Any other failure. It is never retried.
    """
    delay = base_delay
    for attempt in range(max_retries + 1):
        try:
            return await client.messages.create(**payload)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not is_overloaded(exc):
                LOGGER.error("Model request failed: %s", exc)
                raise GatewayRequestFailed(str(exc) or type(exc).__name__) from exc
            if attempt == max_retries:
                LOGGER.error("Model still overloaded after %d retries", max_retries)
                raise GatewayOverloaded(f"Provider overloaded after {max_retries} retries") from exc
            LOGGER.warning(
                "Model overloaded (attempt %d/%d); retrying in %.1fs",
                attempt + 1,
                max_retries + 1,
                delay,
            )
            await sleep(delay)
            delay *= 2
    raise GatewayRequestFailed("Retry loop exited without a response")


class ModelGateway:
    """Send agent turns to the model and return parsed replies.

    Args:
        client: Anthropic async client. Its own retries should be disabled
            (`max_retries=0`) so only this gateway's policy applies.
        session_logger: Audit sink for requests and responses.
        api_key: Credential in use, logged only in redacted form.
        model: Model name.
        max_tokens: Token limit per reply.
        temperature: Sampling temperature.
        max_retries: Extra attempts after an overload.
        base_delay: First backoff delay in seconds.
        sleep: Awaitable used for backoff waits.
    """

    def __init__(
        self,
        client: AsyncAnthropic,
        session_logger: Any,
        *,
        api_key: str = "",
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        temperature: float = 0.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if client is None:
            raise ValueError("Anthropic client must be provided.")
        self.client = client
        self.session_logger = session_logger
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def build_request(
        self,
        conversation: Sequence[Message],
        system_prompt: Optional[str] = None,
        tools: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> ModelRequest:
        return ModelRequest(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_prompt if system_prompt is not None else build_system_prompt(),
            tools=tuple(tools if tools is not None else TOOL_DEFINITIONS),
            messages=tuple(conversation),
        )

    async def send(
        self,
        conversation: Sequence[Message],
        *,
        task_description: str,
        screenshot: bytes,
        system_prompt: Optional[str] = None,
        tools: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> ModelReply:
        """Send the conversation (whose last message carries `screenshot`) and parse the reply."""
        request = self.build_request(conversation, system_prompt, tools)
        await log_quietly(
            self.session_logger.log_request,
            task_description,
            redact_credential(self.api_key),
            screenshot,
        )

        try:
            response = await create_with_retry(
                self.client,
                request.to_payload(),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self.sleep,
            )
            reply = parse_reply(response)
        except TaskError as exc:
            await log_quietly(self.session_logger.log_response, exc)
            raise

        LOGGER.info(
            "Model replied with %d command(s), stop_reason=%s",
            len(reply.commands),
            reply.stop_reason,
        )
        await log_quietly(self.session_logger.log_response, reply)
        return reply
