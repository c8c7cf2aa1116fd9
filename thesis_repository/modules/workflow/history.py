from typing import List

from thesis_repository.modules.workflow.backend import WorkflowBackend, WorkflowHistoryEntry


class HistoryLedger:
    """
    Append-only log of applied transitions.

    Entries are written by the workflow engine and never updated or removed.
    """

    def __init__(self, backend: WorkflowBackend):
        self.backend = backend

    async def append(self, entry: WorkflowHistoryEntry) -> WorkflowHistoryEntry:
        return await self.backend.insert_history_entry(entry)

    async def list_for(self, document_id: str, newest_first: bool = False) -> List[WorkflowHistoryEntry]:
        """Entries for a document ordered by timestamp (oldest first by default)"""
        return await self.backend.list_history(str(document_id), newest_first=newest_first)
