"""LLM turn generator for the intake conversation."""
import asyncio
import json
from typing import Dict, List, Optional

from openai import OpenAI

from intake_agent.config.constants import APITimeouts, LLMConfig
from intake_agent.config.prompts import STAGE_PROMPTS, SYSTEM_PROMPT
from intake_agent.config.settings import get_settings
from intake_agent.core.models import Message, TurnContext
from intake_agent.utils.circuit_breaker import openai_breaker
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)


def render_system_prompt(context: TurnContext) -> str:
    """Serialize the structured turn context into the system prompt."""
    missing = ", ".join(stage.value for stage in context.missing_fields) or "nothing"
    prompt = SYSTEM_PROMPT.format(
        clinic_name=context.clinic_name,
        stage=context.stage.value,
        missing_fields=missing,
        known_fields=json.dumps(context.known_fields, indent=2),
    )
    guidance = STAGE_PROMPTS.get(context.stage.value)
    if guidance:
        prompt += f"\nNext step: {guidance}\n"
    return prompt


class LLMService:
    """OpenAI chat-completions wrapper implementing the turn generator.

    The blocking client call runs in a worker thread behind a circuit
    breaker, so a failing API fails fast with ``CircuitBreakerError``.
    Errors propagate: the orchestrator owns the fallback reply.
    """

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.client = client or OpenAI(
            api_key=settings.get_openai_api_key(),
            timeout=APITimeouts.OPENAI_TIMEOUT_SEC,
            max_retries=0,
        )
        self.model = model or settings.openai_model

    def build_messages(self, context: TurnContext, messages: List[Message]) -> List[Dict]:
        return [{"role": "system", "content": render_system_prompt(context)}] + [
            {"role": m.role, "content": m.content} for m in messages
        ]

    def _complete(self, payload: List[Dict]) -> str:
        response = openai_breaker.call(
            self.client.chat.completions.create,
            model=self.model,
            messages=payload,
            temperature=LLMConfig.TEMPERATURE_MEDIUM,
            max_tokens=LLMConfig.MAX_TOKENS_RESPONSE,
        )
        return response.choices[0].message.content or ""

    async def generate(self, context: TurnContext, messages: List[Message]) -> str:
        """Generate the assistant's next reply for the current stage."""
        payload = self.build_messages(context, messages)
        logger.debug(f"Requesting reply for stage {context.stage.value} ({len(messages)} messages)")
        return await asyncio.to_thread(self._complete, payload)

    def ping(self) -> bool:
        self.client.models.list()
        return True
