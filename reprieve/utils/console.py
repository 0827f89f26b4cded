"""Terminal-safe Rich console and component log lines.

Output goes through a Rich Console that swaps Unicode icons for ASCII on
terminals without UTF-8 support. Component messages are written to stderr
in the form ``[Component] Warning: message``.
"""
import sys
from typing import Any

from rich.console import Console
from rich.markup import escape

from ..config import env_flag


# Icons used in reprieve output and their ASCII replacements
ASCII_FALLBACKS = {
    '✓': '[OK]',
    '✗': '[X]',
    '⚠': '[WARN]',
    '→': '->',
    '…': '...',
    '•': '*',
}


def is_utf8_capable(stream=None) -> bool:
    """Check whether a stream can take UTF-8 output.

    Args:
        stream: Stream to inspect (defaults to sys.stdout)

    Returns:
        True if the stream encoding is a UTF-8 variant
    """
    stream = stream or sys.stdout
    encoding = (getattr(stream, 'encoding', None) or 'ascii').lower()
    return encoding.replace('-', '').replace('_', '') == 'utf8'


def sanitize_for_terminal(text: str, utf8: bool = None) -> str:
    """Replace known icons with ASCII when the terminal cannot render them."""
    if utf8 is None:
        utf8 = is_utf8_capable()
    if utf8:
        return text
    for icon, replacement in ASCII_FALLBACKS.items():
        text = text.replace(icon, replacement)
    return text


class SafeConsole(Console):
    """Rich Console that sanitizes string output on non-UTF-8 terminals."""

    def __init__(self, *args, **kwargs):
        stream = sys.stderr if kwargs.get('stderr') else sys.stdout
        self._needs_sanitization = not is_utf8_capable(stream)
        if self._needs_sanitization:
            kwargs['legacy_windows'] = True
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj, utf8=False) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)


_err_console = SafeConsole(stderr=True)
_verbose = env_flag("REPRIEVE_DEBUG")


def set_verbose(enabled: bool) -> None:
    """Turn debug log lines on or off for the whole process."""
    global _verbose
    _verbose = enabled


def log_warning(component: str, message: str) -> None:
    """Write a warning line for a component to stderr."""
    _err_console.print(f"[yellow]\\[{component}] Warning: {escape(message)}[/yellow]")


def log_debug(component: str, message: str) -> None:
    """Write a debug line for a component to stderr when verbose mode is on."""
    if _verbose:
        _err_console.print(f"[dim]\\[{component}] {escape(message)}[/dim]")
