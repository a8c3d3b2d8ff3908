import logging
from typing import Any, Dict, List, Optional

from lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

DEFAULT_CALL_CONTEXT = "This is a test call to verify the system is working properly."

NO_GOALS_TEXT = "The user hasn't set up any goals yet, but they're just getting started on their journey."

CALL_SYSTEM_PROMPT = (
    "you are conversational agent designed to be my future self. i am giving you my goals, "
    "motivations, deadlines, and obstacles. your task is to motivate me and keep me accountable "
    "to these goals."
)

FUTURE_SELF_SYSTEM_PROMPT = (
    "You are the user's future self, speaking to them from several years in the future. "
    "You have achieved the goals they're currently working on. Your role is to provide guidance, "
    "motivation, and wisdom based on your \"experience\" of having gone through what they're "
    "facing now.\n\n"
    "Speak in first person, as if you are truly their future self. Be warm, encouraging, and "
    "authentic. Draw on the specific goals, motivations, and obstacles they've shared to make "
    "your responses personal and relevant.\n\n"
    "Keep your responses concise (1-3 paragraphs) but impactful. Focus on being supportive while "
    "also gently challenging them to overcome obstacles and stay committed to their goals."
)


def format_goals_for_prompt(goals: List[Dict[str, Any]]) -> str:
    """Render flattened goal rows as the plain-text block the prompts embed"""
    if not goals:
        return NO_GOALS_TEXT

    formatted = "Here are the user's current goals and progress:\n\n"
    for index, goal in enumerate(goals, start=1):
        formatted += f"Goal {index}: {goal.get('title')}\n"
        formatted += f"Category: {goal.get('category_name') or 'Unknown'}\n"
        if goal.get('deadline'):
            formatted += f"Deadline: {goal['deadline']}\n"
        if goal.get('frequency'):
            formatted += f"Check-in Frequency: {goal['frequency']}\n"
        if goal.get('motivation_text'):
            formatted += f"Motivation: {goal['motivation_text']}\n"
        if goal.get('obstacles'):
            formatted += f"Obstacles: {', '.join(goal['obstacles'])}\n"
        formatted += "\n"

    return formatted


class ChatService:
    def __init__(self, openai_client: OpenAIClient, database):
        self.client = openai_client
        self.database = database

    async def get_goals_text(self, user_id: str) -> str:
        goals = await self.database.get_user_goals(user_id)
        return format_goals_for_prompt(goals)

    async def generate_call_message(self, goals_text: str, context: Optional[str] = None) -> str:
        """What the future self says next on a phone call"""
        context = context or DEFAULT_CALL_CONTEXT
        user_prompt = f"Here's what I'm currently working on:\n\n{goals_text}\n\n{context}"

        logger.info(f"Generating call message ({len(goals_text)} chars of goals)")
        return await self.client.generate_response(
            system_prompt=CALL_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            max_tokens=200,
            temperature=0.7,
            presence_penalty=0.1,
            frequency_penalty=0.1
        )

    async def generate_future_self_reply(self, message: str, goals_text: str) -> str:
        user_prompt = f"Here's what I'm currently working on:\n\n{goals_text}\n\nI just said: \"{message}\""

        logger.info(f"Generating future-self reply to {len(message)} chars of user text")
        return await self.client.generate_response(
            system_prompt=FUTURE_SELF_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            max_tokens=300,
            temperature=0.7
        )

    async def call_message_for_user(self, user_id: str, context: Optional[str] = None) -> str:
        goals_text = await self.get_goals_text(user_id)
        return await self.generate_call_message(goals_text, context)
