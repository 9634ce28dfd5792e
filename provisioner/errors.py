"""Error types and formatting utilities for consistent error messages.

All user-facing errors should use the formatting helpers in this module.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Use present tense: 'must be', 'is required'
- Include actionable hints where helpful
- Be concise but informative

Failure taxonomy:
- UserDeclined: the user answered no; the step is skipped, or the run stops
  when the answer was to the initial summary question
- ToolFailure: an external command exited non-zero; the step decides whether
  that is fatal
- ResourceMissing: something a step needs on disk is absent
"""


class ProvisionError(Exception):
    """Base class for provisioning failures."""


class UserDeclined(ProvisionError):
    """Raised when the user declines a confirmation."""

    def __init__(self, question: str):
        self.question = question
        super().__init__(f"declined: {question}")


class ToolFailure(ProvisionError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, argv: list[str], exit_code: int, output: str = ""):
        self.argv = list(argv)
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"'{' '.join(self.argv)}' exited with status {exit_code}")


class ResourceMissing(ProvisionError):
    """Raised when a file or directory a step depends on does not exist."""

    def __init__(self, resource: str, hint: str | None = None):
        self.resource = resource
        self.hint = hint
        message = f"{resource} does not exist"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("cmake not found")
        'Error: cmake not found'
    """
    return f"Error: {message}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("config file not found", "run 'provisioner config init' to create one")
        "Error: config file not found. Hint: run 'provisioner config init' to create one"
    """
    return f"{format_error(message)}. Hint: {suggestion}"


def tail(output: str, lines: int = 15) -> str:
    """Return the last few lines of command output for diagnostics."""
    parts = output.strip().splitlines()
    return "\n".join(parts[-lines:])


__all__ = [
    "ProvisionError",
    "UserDeclined",
    "ToolFailure",
    "ResourceMissing",
    "format_error",
    "format_suggestion",
    "tail",
]
