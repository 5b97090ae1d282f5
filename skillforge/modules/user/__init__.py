"""User profiles."""

from skillforge.modules.user.service import UserService

__all__ = ["UserService"]
