from typing import Any, Dict, Optional

class UserStore:
    """Read access to user_profiles"""

    def __init__(self, db):
        self.db = db

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.db.acquire() as conn:
            profile = await conn.fetchrow("""
                SELECT id, phone, full_name, is_admin, is_active
                FROM user_profiles
                WHERE id = $1
            """, user_id)
            return dict(profile) if profile else None

    async def is_admin(self, user_id: str) -> bool:
        """True for an active profile flagged is_admin"""
        profile = await self.get_profile(user_id)
        return bool(profile and profile['is_admin'] and profile['is_active'])
