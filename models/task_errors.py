"""Error taxonomy for agent task sessions."""

from __future__ import annotations


class TaskError(Exception):
    """Base class for failures surfaced by the agent loop and its collaborators."""

    kind = "TaskError"


class AlreadyRunning(TaskError):
    """A task is already running or paused; a new one cannot start."""

    kind = "AlreadyRunning"


class CaptureUnavailable(TaskError):
    """The mirror window was not found or could not be captured."""

    kind = "CaptureUnavailable"


class GatewayOverloaded(TaskError):
    """The model provider stayed overloaded after every retry."""

    kind = "GatewayOverloaded"


class GatewayRequestFailed(TaskError):
    """The model call failed for a non-retryable reason."""

    kind = "GatewayRequestFailed"


class ConversationTooLong(TaskError):
    """The conversation reached its configured message ceiling."""

    kind = "ConversationTooLong"


class InvalidDirection(TaskError):
    """A move command named a direction or distance that cannot be executed."""

    kind = "InvalidDirection"
