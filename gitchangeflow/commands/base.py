"""Base class for commands that drive a git provider."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..provider import GitProvider
from ..result import Result


class GitCommand(ABC):
    """One provider operation wrapped as an object.

    Attributes:
        provider (GitProvider): The provider the command drives
        logger (logging.Logger): Logger for diagnostics
    """

    def __init__(self, provider: GitProvider, logger: Optional[logging.Logger] = None):
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def execute(self) -> Result[Any]:
        """Run the command and return ``Ok`` with its output or ``Err``."""
        pass
