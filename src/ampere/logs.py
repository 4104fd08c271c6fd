"""Prefixed logging for output that originates from different tasks.

Several tasks log through the same handler, so every line is tagged with
the name of the task or process it came from, e.g. ``[Renderer 2] ...``.
"""

import logging
from typing import Any

from rich.markup import escape

logger = logging.getLogger("ampere")


class PrefixLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes each line of a message with ``[prefix]``."""

    def __init__(
        self,
        prefix: str,
        base: logging.Logger | None = None,
        style: str | None = None,
    ):
        """Initialize the adapter.

        Args:
            prefix: Component name placed in front of every line.
            base: Underlying logger. Defaults to the "ampere" logger.
            style: Optional rich style (e.g. "dim") applied to the whole message.
        """
        super().__init__(base or logger, {})
        self.prefix = prefix
        self.style = style

    def process(self, msg: Any, kwargs: Any) -> tuple[str, Any]:
        text = "\n".join(f"[{self.prefix}] {line}" for line in str(msg).split("\n"))
        if self.style:
            text = f"[{self.style}]{escape(text)}[/{self.style}]"
            kwargs["extra"] = {**kwargs.get("extra", {}), "markup": True}
        return text, kwargs


def renderer_logger_name(index: int, count: int) -> str:
    """Name of the i-th (0-based) renderer task's logger."""
    return "Renderer" if count == 1 else f"Renderer {index + 1}"
