from __future__ import annotations

import logging
from dataclasses import dataclass, field

BASE_WARNING = (
    "Warning: Missing base path. Consider 'base' option. "
    "https://goo.gl/PwvFVb"
)

_logger = logging.getLogger("critical_prep")


@dataclass
class Diagnostics:
    """Collects operator-facing warnings.

    Every message is also logged at WARNING level, so a configured root
    logger (the CLI sets one up) shows it on stderr.
    """

    messages: list[str] = field(default_factory=list)
    logger: logging.Logger = field(default=_logger, repr=False)

    def warn(self, text: str) -> None:
        self.messages.append(text)
        self.logger.warning(text)

    def clear(self) -> None:
        self.messages.clear()
