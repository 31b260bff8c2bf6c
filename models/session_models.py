"""Session domain models for agent task runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from models.agent_models import Message, Point


class TaskState(str, Enum):
	IDLE = "idle"
	RUNNING = "running"
	PAUSED = "paused"
	COMPLETED = "completed"
	FAILED = "failed"
	CANCELLED = "cancelled"

	@property
	def terminal(self) -> bool:
		return self in (TaskState.COMPLETED, TaskState.FAILED, TaskState.CANCELLED)

	@property
	def active(self) -> bool:
		return self in (TaskState.RUNNING, TaskState.PAUSED)


@dataclass
class TaskOutcome:
	"""Why a session ended: an error kind (or the model's verdict) plus a reason."""

	kind: str
	reason: str

	def describe(self) -> str:
		return f"{self.kind}: {self.reason}" if self.reason else self.kind


@dataclass
class SessionState:
	"""In-memory state of one natural-language task run."""

	session_id: str = field(default_factory=lambda: uuid4().hex)
	task_description: str = ""
	conversation: List[Message] = field(default_factory=list)
	state: TaskState = TaskState.IDLE
	cursor_position: Optional[Point] = None
	outcome: Optional[TaskOutcome] = None
	step: int = 0
	last_message: str = ""
	last_action: str = ""
	created_at: float = field(default_factory=lambda: time.time())
