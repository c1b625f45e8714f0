"""Git operation commands using the Command Pattern.

Each command wraps one provider operation as an object whose ``execute()``
returns a ``Result``. Batching, rollback and observer notifications live
in ``gitchangeflow.core.BatchCommitter``.

Example:
    ```python
    # Commit one group through a provider
    from gitchangeflow.commands import CommitGroupCommand

    command = CommitGroupCommand(provider, group)
    result = await command.execute()
    ```
"""

from .base import GitCommand
from .commit import CommitGroupCommand

__all__ = [
    "GitCommand",
    "CommitGroupCommand",
]
