"""Schema definitions for the three agent tools."""

from typing import Any, Dict, List

MOVE_CURSOR = "move_cursor"
CLICK_CURSOR = "click_cursor"
DONE = "done"

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": MOVE_CURSOR,
        "description": "Move the cursor from its current position in one direction by a number of pixels.",
        "input_schema": {
            "type": "object",
            "properties": {
                "direction": {
                    "type": "string",
                    "enum": ["up", "down", "left", "right"],
                    "description": "Direction to move the cursor.",
                },
                "distance": {
                    "type": "integer",
                    "description": "Distance to move, in pixels.",
                },
            },
            "required": ["direction", "distance"],
        },
    },
    {
        "name": CLICK_CURSOR,
        "description": "Click at the current cursor position.",
        "input_schema": {
            "type": "object",
            "properties": {},
        },
    },
    {
        "name": DONE,
        "description": "Finish the task, reporting whether it was completed or failed and why.",
        "input_schema": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["completed", "failed"],
                    "description": "Outcome of the task.",
                },
                "reason": {
                    "type": "string",
                    "description": "Short explanation of the outcome.",
                },
            },
            "required": ["status", "reason"],
        },
    },
]
