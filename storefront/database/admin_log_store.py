import json
from typing import Any, Dict, List

class AdminLogStore:
    """Append-only admin_logs table"""

    def __init__(self, db):
        self.db = db

    async def insert(self, action: Dict[str, Any]) -> None:
        async with self.db.acquire() as conn:
            await conn.execute("""
                INSERT INTO admin_logs (
                    admin_id, action, resource_type, resource_id,
                    details, ip_address, user_agent
                ) VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7)
            """,
                action['admin_id'],
                action['action'],
                action.get('resource_type'),
                action.get('resource_id'),
                json.dumps(action['details']) if action.get('details') else None,
                action.get('ip_address'),
                action.get('user_agent')
            )

    async def list(self, limit: int = 50) -> List[Dict[str, Any]]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch("""
                SELECT *
                FROM admin_logs
                ORDER BY created_at DESC
                LIMIT $1
            """, limit)

        logs = []
        for row in rows:
            entry = dict(row)
            if isinstance(entry.get('details'), str):
                entry['details'] = json.loads(entry['details'])
            logs.append(entry)
        return logs
