"""council - a multi-persona debate simulator driven by an LLM."""

__version__ = "0.1.0"
__logo__ = "🎭"
