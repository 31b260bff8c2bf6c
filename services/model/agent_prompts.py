"""Prompt builders for the mirror-window agent."""


def build_system_prompt() -> str:
    """Return the system prompt for the agent loop."""
    return (
        "You are operating an iPhone through the iPhone Mirroring window on a Mac. "
        "Each screenshot shows the mirrored phone screen. The current cursor position is marked "
        "with a red circle and crosshair; this marker is drawn by the controller and is not part of the app. "
        "You can only act through the tools provided: move the cursor up, down, left or right by a number "
        "of pixels, click at the cursor position, or call done when the task is complete or cannot be completed. "
        "Use exactly one tool per step, then wait for the next screenshot to see its effect. "
        "Before clicking, make sure the crosshair is centred on the intended target. "
        "Distances are screen pixels; the phone screen is small, so prefer precise, moderate moves."
    )


def build_task_prompt(task_description: str) -> str:
    """Return the opening user prompt for a task."""
    return (
        f"Task: {task_description.strip()}\n\n"
        "Here is the current screen. Decide the next single action and call the matching tool."
    )


def build_analysis_prompt() -> str:
    """Return the prompt used for one-shot screen analysis."""
    return "What do you see on this screenshot of iPhone and which functions you can recognize here?"
