"""
Terminal styling for the lgc command.

Every line the CLI prints goes through PrettyOutput so colors and symbols
stay consistent between the analysis report and bootstrap progress.
"""

import os

from colorama import Fore, Style

DEFAULT_WIDTH = 70


def _paint(color, text):
    return f"{color}{text}{Style.RESET_ALL}"


class PrettyOutput:
    """Colored status lines, boxes and progress bars (colorama)."""

    PRIMARY = Fore.CYAN
    SUCCESS = Fore.GREEN
    WARNING = Fore.YELLOW
    ERROR = Fore.RED
    INFO = Fore.BLUE
    HEADER = Fore.WHITE + Style.BRIGHT
    DIM = Style.DIM
    RESET = Style.RESET_ALL

    CHECK = "✓"
    CROSS = "✗"
    WARN = "⚠"
    INFO_SYMBOL = "ℹ"
    CHART = "📊"

    @staticmethod
    def get_terminal_width():
        """Terminal columns, capped at the report width (80 when unknown)."""
        try:
            columns = os.get_terminal_size().columns
        except OSError:
            columns = 80
        return min(columns, 80)

    @classmethod
    def header(cls, text, width=None):
        """Double-lined banner with centred text."""
        width = width or cls.get_terminal_width()
        inner = text.center(width)
        print()
        print(_paint(cls.PRIMARY, f"╔{'═' * width}╗"))
        print(_paint(cls.PRIMARY, f"║{inner}║"))
        print(_paint(cls.PRIMARY, f"╚{'═' * width}╝"))
        print()

    @classmethod
    def _status(cls, color, symbol, message, indent):
        print(f"{' ' * indent}{_paint(color, symbol)} {message}")

    @classmethod
    def success(cls, message, indent=0):
        cls._status(cls.SUCCESS, cls.CHECK, message, indent)

    @classmethod
    def error(cls, message, indent=0):
        cls._status(cls.ERROR, cls.CROSS, message, indent)

    @classmethod
    def warning(cls, message, indent=0):
        cls._status(cls.WARNING, cls.WARN, message, indent)

    @classmethod
    def info(cls, message, indent=0):
        cls._status(cls.INFO, cls.INFO_SYMBOL, message, indent)

    @classmethod
    def key_value(cls, key, value, indent=0, value_color=None):
        """Dimmed ``key:`` followed by the value, optionally colored."""
        shown = _paint(value_color, value) if value_color else value
        print(f"{' ' * indent}{_paint(cls.DIM, key + ':')} {shown}")

    @classmethod
    def progress(cls, fraction, message="", bar_length=30):
        """
        Progress bar for a completed fraction.

        Args:
            fraction: Completed fraction, clipped to [0, 1]
            message: Text printed after the percentage
            bar_length: Bar width in characters
        """
        fraction = min(max(fraction, 0.0), 1.0)
        filled = int(bar_length * fraction)
        bar = "█" * filled + "░" * (bar_length - filled)
        print(f"  {_paint(cls.HEADER, bar)} {fraction:.0%} {message}".rstrip())

    @classmethod
    def summary_box(cls, title, items, width=DEFAULT_WIDTH):
        """
        Boxed list of results.

        Args:
            title: Centred box title
            items: (label, value, color) tuples, one row each
            width: Outer box width
        """
        edge = cls.PRIMARY
        inner = width - 2
        print()
        print(_paint(edge, f"┌{'─' * inner}┐"))
        print(f"{_paint(edge, '│')}{_paint(cls.HEADER, title.center(inner))}{_paint(edge, '│')}")
        print(_paint(edge, f"├{'─' * inner}┤"))
        for label, value, color in items:
            text = str(value)
            gap = max(inner - len(label) - len(text) - 5, 1)
            row = f"  {_paint(cls.DIM, label + ':')}{' ' * gap}{_paint(color, text)}  "
            print(f"{_paint(edge, '│')}{row}{_paint(edge, '│')}")
        print(_paint(edge, f"└{'─' * inner}┘"))
        print()

    @staticmethod
    def blank_line():
        print()

    @classmethod
    def task_start(cls, message, icon=None):
        """Announce a long-running step."""
        print(f"\n{icon or cls.CHART} {_paint(cls.HEADER, message)}")

    @classmethod
    def task_complete(cls, message, duration=None):
        """Mark a step finished, with its duration in seconds when known."""
        suffix = f" {_paint(cls.DIM, f'({duration:.1f}s)')}" if duration is not None else ""
        cls.success(f"{message}{suffix}")
