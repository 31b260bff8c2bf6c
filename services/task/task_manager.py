"""Holds the single active task session and wires its collaborators."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from anthropic import AsyncAnthropic

from dal.audit_dal import AuditDAL
from models.task_errors import AlreadyRunning
from services.control.command_executor import CommandExecutor
from services.credential_store import ANTHROPIC_API_KEY, CredentialStore
from services.model.model_gateway import ModelGateway
from services.task.session_logger import SQLiteSessionLogger
from services.task.task_session import TaskSession, log_start_signal
from utils.config import AgentSettings

LOGGER = logging.getLogger(__name__)


def default_client_factory(api_key: str) -> AsyncAnthropic:
	# Overload retries are handled by ModelGateway.
	return AsyncAnthropic(api_key=api_key, max_retries=0)


async def close_client(client: Any) -> None:
	"""Close an SDK client if it exposes a close/aclose method."""
	if client is None:
		return
	aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
	if aclose is None:
		return
	try:
		result = aclose()
		if inspect.isawaitable(result):
			await result
	except Exception as exc:
		LOGGER.warning("Failed to close model client: %s", exc)


class TaskManager:
	"""Start, steer and stop task sessions, one at a time.

	Each started task gets a fresh `TaskSession`, its own model client and a
	session logger bound to its id. The last session is kept after it ends
	so its status can still be read.
	"""

	def __init__(
		self,
		capture: Any,
		synthesizer: Any,
		credentials: CredentialStore,
		dal: AuditDAL,
		settings: AgentSettings,
		*,
		screenshot_dir: Any,
		client_factory: Callable[[str], Any] = default_client_factory,
		alert: Callable[[TaskSession], Awaitable[None]] = log_start_signal,
	) -> None:
		self.capture = capture
		self.synthesizer = synthesizer
		self.credentials = credentials
		self.dal = dal
		self.settings = settings
		self.screenshot_dir = screenshot_dir
		self.client_factory = client_factory
		self.alert = alert
		self._session: Optional[TaskSession] = None
		self._clients: Dict[str, Any] = {}
		self._closing: Set[asyncio.Task] = set()

	@property
	def current(self) -> Optional[TaskSession]:
		return self._session

	def resolve_api_key(self, api_key: Optional[str] = None) -> str:
		"""Return the explicit key, or the stored one. Raises ValueError if neither exists."""
		key = (api_key or "").strip() or self.credentials.get(ANTHROPIC_API_KEY)
		if not key:
			raise ValueError("No Anthropic API key configured")
		return key

	def create_client(self, api_key: Optional[str] = None) -> Any:
		return self.client_factory(self.resolve_api_key(api_key))

	def start(self, description: str, api_key: Optional[str] = None) -> TaskSession:
		"""Start a new task.

		Raises:
			AlreadyRunning: A session is running or paused.
			ValueError: No API key, or an empty description.
		"""
		if self._session is not None and self._session.status.active:
			raise AlreadyRunning(f"Task {self._session.session_id} is {self._session.status.value}")
		if not description.strip():
			raise ValueError("Task description must not be empty")

		key = self.resolve_api_key(api_key)
		client = self.client_factory(key)
		session = TaskSession(capture=self.capture, gateway=None, executor=None, settings=self.settings, alert=self.alert)
		session_logger = SQLiteSessionLogger(self.dal, session.session_id, self.screenshot_dir, codec=session.codec)
		session.gateway = ModelGateway(
			client,
			session_logger,
			api_key=key,
			model=self.settings.model,
			max_tokens=self.settings.max_tokens,
			temperature=self.settings.temperature,
			max_retries=self.settings.overload_max_retries,
			base_delay=self.settings.overload_base_delay_seconds,
		)
		session.executor = CommandExecutor(self.synthesizer, session_logger)

		task = session.start(description)
		self._session = session
		self._clients[session.session_id] = client
		task.add_done_callback(lambda _task, sid=session.session_id: self._release(sid))
		LOGGER.info("Started task %s: %s", session.session_id, description.strip())
		return session

	def _release(self, session_id: str) -> None:
		client = self._clients.pop(session_id, None)
		if client is not None:
			closing = asyncio.get_running_loop().create_task(close_client(client))
			self._closing.add(closing)
			closing.add_done_callback(self._closing.discard)

	def pause(self) -> bool:
		return self._session.pause() if self._session else False

	def resume(self) -> bool:
		return self._session.resume() if self._session else False

	def cancel(self) -> bool:
		return self._session.cancel() if self._session else False

	def status(self) -> Dict[str, Any]:
		if self._session is None:
			return {"state": "idle", "status": "Idle", "session_id": None}
		return self._session.snapshot()

	async def shutdown(self) -> None:
		"""Cancel any active session and close open clients."""
		session = self._session
		if session is not None:
			session.cancel()
			task = session.task
			if task is not None and not task.done():
				task.cancel()
				try:
					await task
				except asyncio.CancelledError:
					pass
		for client in list(self._clients.values()):
			await close_client(client)
		self._clients.clear()
		if self._closing:
			await asyncio.gather(*self._closing)
