"""Warning channel for recoverable parse problems."""

import logging
from typing import Optional


class Diagnostics:
    """Collects warnings for items skipped during parsing.

    A warning never aborts the enclosing document; fatal problems are raised
    as StatementError subclasses instead. Every warning is also logged.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.warnings: list[str] = []
        self._logger = logger or logging.getLogger(__name__)

    def warn(self, message: str, logger: Optional[logging.Logger] = None) -> None:
        """Record a warning and log it."""
        self.warnings.append(message)
        (logger or self._logger).warning(message)
