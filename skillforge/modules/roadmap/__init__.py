"""Roadmap lifecycle and learning flow."""

from skillforge.modules.roadmap.service import RoadmapService

__all__ = ["RoadmapService"]
