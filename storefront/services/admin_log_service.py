import asyncio
import logging
from typing import List, Set
from ..models.admin_log import AdminAction, AdminLogEntry

class AdminLogService:
    """Best-effort audit trail of privileged mutations.

    Writing a log entry never raises: failures only reach the operator
    console, so the audited operation always completes.
    """

    def __init__(self, store):
        self.store = store
        self.logger = logging.getLogger(__name__)
        self._pending: Set[asyncio.Task] = set()

    async def log_action(self, action: AdminAction) -> bool:
        """Write one audit row; returns False if it could not be written"""
        try:
            await self.store.insert(action.model_dump())
            return True
        except Exception as e:
            self.logger.error(
                f"Error logging admin action {action.action} by {action.admin_id}: {e}",
                exc_info=True
            )
            return False

    def log_action_nowait(self, action: AdminAction) -> asyncio.Task:
        """Schedule log_action without waiting for it"""
        task = asyncio.create_task(self.log_action(action))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self):
        """Wait for scheduled writes, e.g. on shutdown"""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def list_logs(self, limit: int = 50) -> List[AdminLogEntry]:
        rows = await self.store.list(limit)
        return [AdminLogEntry.model_validate(row) for row in rows]
