"""Pydantic models for council configuration."""

from pydantic import BaseModel, Field

DEFAULT_MODEL = "gemini/gemini-2.5-flash"


class DebateSettings(BaseModel):
    """Pacing and length of a debate."""

    pacing_ms: int = Field(default=1500, ge=500, le=4000)
    thinking_cap_ms: int = Field(default=1000, ge=0)
    max_turns: int | None = Field(default=10, ge=1)

    @property
    def pacing(self) -> float:
        return self.pacing_ms / 1000

    @property
    def thinking_cap(self) -> float:
        return self.thinking_cap_ms / 1000


class GenerationSettings(BaseModel):
    """Sampling parameters for the two kinds of generated text."""

    persona_temperature: float = Field(default=0.9, ge=0.0, le=2.0)
    closing_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2000, ge=1)


class ProviderSettings(BaseModel):
    """Where and how generation requests are sent."""

    model: str = DEFAULT_MODEL
    api_base: str | None = None
    request_timeout: float = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=1, ge=1, le=5)
    safety_threshold: str = "BLOCK_ONLY_HIGH"
    env_vars: list[str] = Field(default_factory=lambda: ["GEMINI_API_KEY", "API_KEY"])


class Config(BaseModel):
    """Root configuration, stored as JSON in ~/.council/config.json."""

    debate: DebateSettings = Field(default_factory=DebateSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
