"""SkillForge domain layer."""
