"""SkillForge: generated study roadmaps with resilient AI generation and gamified progress."""

__version__ = "0.1.0"
