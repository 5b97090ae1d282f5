"""Application wiring."""

from skillforge.core.infra.application_context import ApplicationContext

__all__ = ["ApplicationContext"]
