"""Group working-tree changes into commits and check inbound changes before a pull."""
import logging

from .commit_message import MessageSuggester
from .core import BatchCommitter, GitDomainService, SmartCommitWorkflow
from .grouping import ChangeGrouper
from .inbound import InboundAnalyzer
from .provider import GitProvider, GitPythonProvider
from .result import Err, Ok

__version__ = "0.1.0"

# Records propagate to the root logger unless the CLI installs its own handler
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BatchCommitter",
    "ChangeGrouper",
    "Err",
    "GitDomainService",
    "GitProvider",
    "GitPythonProvider",
    "InboundAnalyzer",
    "MessageSuggester",
    "Ok",
    "SmartCommitWorkflow",
    "__version__",
]
