"""
Recovery of ``[COMMAND: name] {...}`` blocks from free-form model replies.

Models are asked to finish their answer with a command marker followed by a
JSON object, but they wrap it in markdown emphasis, or run out of tokens
halfway through the object. Strategies are tried from strictest to loosest.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import CommandParseError

logger = logging.getLogger(__name__)

# Ordered strictest first; the first pattern that matches wins.
COMMAND_PATTERNS = (
    # **[COMMAND: name]** {...} closing a line
    re.compile(r"\*\*\[COMMAND:\s*([^\]]+)\]\*\*\s*(\{.*\})$", re.MULTILINE),
    # [COMMAND: name] {...} closing a line
    re.compile(r"\[COMMAND:\s*([^\]]+)\]\s*(\{.*\})$", re.MULTILINE),
    # [COMMAND: name] {...  (reply truncated mid-object)
    re.compile(r"\[COMMAND:\s*([^\]]+)\]\s*(\{.*)"),
)


@dataclass
class ActionCommand:
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)


def repair_json(text: str) -> str:
    """
    Append the closing braces a truncated object is missing.

    Only ever appends. Extra closing braces and broken string literals are
    left alone, so such input still fails to parse.
    """
    deficit = text.count("{") - text.count("}")
    if deficit > 0:
        return text + "}" * deficit
    return text


def parse_parameters(raw: str, command_name: Optional[str] = None) -> Dict[str, Any]:
    """Parse command parameters, retrying once after ``repair_json``."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as first_error:
        repaired = repair_json(raw)
        if repaired == raw:
            raise CommandParseError(
                f"Invalid command parameters: {first_error.msg}", command_name
            ) from first_error
        try:
            parsed = json.loads(repaired)
        except json.JSONDecodeError:
            raise CommandParseError(
                f"Invalid command parameters: {first_error.msg}", command_name
            ) from first_error
        logger.debug("[AI-CHAT] Repaired truncated command JSON for %s", command_name)

    if not isinstance(parsed, dict):
        raise CommandParseError(
            "Command parameters must be a JSON object", command_name
        )
    return parsed


def extract_command(text: str) -> Optional[ActionCommand]:
    """
    Find the command block in a model reply.

    Returns:
        The command, or None when the reply carries no command marker.

    Raises:
        CommandParseError: a marker was found but its parameters are unusable
    """
    if not text:
        return None

    for pattern in COMMAND_PATTERNS:
        match = pattern.search(text)
        if match:
            break
    else:
        return None

    name = match.group(1).strip()
    raw_params = match.group(2) or "{}"
    return ActionCommand(name=name, parameters=parse_parameters(raw_params, name))
