from datetime import datetime, timezone
from typing import Dict, List, Optional, Any
import logging

from postgrest.exceptions import APIError
from supabase import create_client, Client

from lib.config import get_settings
from lib.error_handler import DatabaseError

logger = logging.getLogger(__name__)

DEFAULT_VOICE_PREFERENCE = 'friendly_mentor'
DEFAULT_CALL_MODE = 'user_initiated'

GOALS_SELECT = (
    'id, title, deadline, frequency, start_date, '
    'categories!inner(name), '
    'motivations(motivation_text, obstacles)'
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, client: Optional[Client] = None):
        if client is None:
            settings = get_settings()
            client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        self.supabase: Client = client

    async def get_profile(self, user_id: str, columns: str = '*') -> Optional[Dict[str, Any]]:
        """Fetch a user's profile row, or None when the user has none"""
        try:
            response = self.supabase.table('user_profiles')\
                .select(columns)\
                .eq('user_id', user_id)\
                .maybe_single()\
                .execute()
        except APIError as e:
            raise DatabaseError(f"Failed to fetch user profile: {e.message}")

        # maybe_single() yields no response at all for a missing row
        if response is None:
            return None
        return response.data

    async def profile_exists(self, user_id: str) -> bool:
        return await self.get_profile(user_id, 'user_id') is not None

    async def get_voice_preference(self, user_id: str) -> str:
        """Voice id to synthesize with; friendly_mentor when unset or unreadable"""
        try:
            profile = await self.get_profile(user_id, 'voice_preference')
        except DatabaseError as e:
            logger.warning(f"Could not fetch voice preference for {user_id}, using default: {e.message}")
            return DEFAULT_VOICE_PREFERENCE

        if not profile or not profile.get('voice_preference'):
            return DEFAULT_VOICE_PREFERENCE
        return profile['voice_preference']

    async def get_supabase_uuid(self, user_id: str) -> str:
        profile = await self.get_profile(user_id, 'supabase_uuid')
        if not profile:
            raise DatabaseError("User profile not found. Please complete user setup first.", status_code=404)
        if not profile.get('supabase_uuid'):
            raise DatabaseError("User profile missing supabase_uuid")
        return profile['supabase_uuid']

    async def get_user_goals(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Fetch a user's goals flattened for prompting.

        Each goal carries its category name and the text and obstacles of
        its first motivation.
        """
        try:
            response = self.supabase.table('goals')\
                .select(GOALS_SELECT)\
                .eq('user_id', user_id)\
                .execute()
        except APIError as e:
            raise DatabaseError(f"Failed to fetch goals: {e.message}")

        goals = []
        for row in response.data or []:
            category = row.get('categories') or {}
            motivations = row.get('motivations') or []
            first_motivation = motivations[0] if motivations else {}
            goals.append({
                'id': row.get('id'),
                'title': row.get('title'),
                'category_name': category.get('name') or 'Unknown',
                'deadline': row.get('deadline'),
                'frequency': row.get('frequency'),
                'start_date': row.get('start_date'),
                'motivation_text': first_motivation.get('motivation_text'),
                'obstacles': first_motivation.get('obstacles'),
            })

        logger.info(f"Fetched {len(goals)} goals for user {user_id}")
        return goals

    async def create_profile(self, user_id: str, avatar_url: Optional[str] = None) -> None:
        now = _now()
        try:
            self.supabase.table('user_profiles').insert({
                'user_id': user_id,
                'avatar_url': avatar_url,
                'voice_preference': DEFAULT_VOICE_PREFERENCE,
                'call_mode': DEFAULT_CALL_MODE,
                'onboarding_completed': False,
                'created_at': now,
                'updated_at': now,
            }).execute()
        except APIError as e:
            raise DatabaseError(f"Failed to create user profile: {e.message}")

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        try:
            self.supabase.table('user_profiles')\
                .update(fields)\
                .eq('user_id', user_id)\
                .execute()
        except APIError as e:
            raise DatabaseError(f"Failed to update user profile: {e.message}")

    async def delete_profile(self, user_id: str) -> None:
        """Delete a profile; goals and motivations cascade in the database"""
        try:
            self.supabase.table('user_profiles')\
                .delete()\
                .eq('user_id', user_id)\
                .execute()
        except APIError as e:
            raise DatabaseError(f"Failed to delete user profile: {e.message}")
