"""Static configuration for SkillForge."""

from skillforge.core.config.config import DEFAULT_GEMINI_MODELS, Config, Environment

__all__ = ["Config", "Environment", "DEFAULT_GEMINI_MODELS"]
