"""Text-generation gateway: the boundary between the debate and the LLM provider."""

from typing import Iterable

from loguru import logger

from council.config.schema import GenerationSettings
from council.debate import prompts
from council.debate.persona import Persona, debaters, moderator
from council.debate.transcript import Turn
from council.providers.base import LLMProvider, LLMResponse
from council.providers.errors import MissingCredentialError, ProviderError
from council.providers.factory import ProviderFactory

MISSING_KEY_NOTICE = '(System error: no API key is configured. Run "council key set" to add one.)'
NO_CONCLUSION_NOTICE = "(Could not reach a conclusion.)"
TRUNCATION_SUFFIX = " ..."


class DebateGateway:
    """
    Generates persona lines and the closing statement.

    Both operations are total: every failure (missing key, provider error,
    blocked or empty output) becomes a parenthesized notice that is appended
    to the transcript like any other line.
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        settings: GenerationSettings | None = None,
        model: str | None = None,
    ):
        self.provider_factory = provider_factory
        self.settings = settings or GenerationSettings()
        self.model = model

    async def generate_utterance(self, topic: str, transcript: Iterable[Turn], speaker: Persona) -> str:
        """Produce a short in-character line for *speaker*."""
        turns = list(transcript)
        try:
            response = await self._chat(
                system=prompts.persona_system_prompt(speaker),
                user=prompts.persona_user_prompt(topic, turns, speaker),
                temperature=self.settings.persona_temperature,
            )
            text = self._finish(response)
            if text:
                return text
            if response.finish_reason and response.finish_reason != "stop":
                logger.warning("Reply for {} blocked. Reason: {}", speaker.name, response.finish_reason)
                return f"(System: the remark was filtered. Reason: {response.finish_reason})"
            raise ProviderError("No text returned from the model")
        except MissingCredentialError:
            logger.error("No API key configured; {} cannot speak", speaker.name)
            return MISSING_KEY_NOTICE
        except Exception as e:
            logger.error("Persona [{}] generation failed: {}", speaker.name, e)
            return f"(Error: {str(e) or 'could not generate a reply.'})"

    async def generate_closing(self, topic: str, transcript: Iterable[Turn]) -> str:
        """Produce the moderator's closing statement."""
        turns = list(transcript)
        try:
            response = await self._chat(
                system=prompts.closing_system_prompt(moderator(), debaters()),
                user=prompts.closing_user_prompt(topic, turns),
                temperature=self.settings.closing_temperature,
            )
            text = self._finish(response)
            if text:
                return text
            if response.finish_reason and response.finish_reason != "stop":
                logger.warning("Conclusion blocked. Reason: {}", response.finish_reason)
                return f"(System: the conclusion was filtered. Reason: {response.finish_reason})"
            return NO_CONCLUSION_NOTICE
        except MissingCredentialError:
            logger.error("No API key configured; cannot conclude")
            return MISSING_KEY_NOTICE
        except Exception as e:
            logger.error("Conclusion generation failed: {}", e)
            return f"(Error: {str(e) or 'could not reach a conclusion.'})"

    async def _chat(self, system: str, user: str, temperature: float) -> LLMResponse:
        provider: LLMProvider = self.provider_factory()
        response = await provider.chat(
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            model=self.model or provider.get_default_model(),
            temperature=temperature,
            max_tokens=self.settings.max_output_tokens,
        )
        if response.usage:
            logger.debug("Token usage: {}", response.usage)
        return response

    @staticmethod
    def _finish(response: LLMResponse) -> str | None:
        text = (response.content or "").strip()
        if not text:
            return None
        if response.truncated:
            return text + TRUNCATION_SUFFIX
        return text
