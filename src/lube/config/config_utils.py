"""Environment placeholder expansion for configuration files."""

import os
import re

PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def _resolve(expression: str) -> str:
    """Resolve one placeholder body such as ``TOKEN`` or ``TOKEN:-fallback``."""
    name, operator, argument = expression, "", ""
    for candidate in (":-", ":?"):
        if candidate in expression:
            name, argument = expression.split(candidate, 1)
            operator = candidate
            break

    value = os.getenv(name)
    match operator:
        case ":-":
            return argument if value is None else value
        case ":?" if value is None:
            raise ValueError(f"Required environment variable {name}: {argument}")
        case "" if value is None:
            raise ValueError(f"Required environment variable {name} not set")
    return value or ""


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """
    return PLACEHOLDER.sub(lambda match: _resolve(match.group(1)), text)
