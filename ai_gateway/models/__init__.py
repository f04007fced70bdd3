"""Database models package."""

from ai_gateway.models.ai_configuration import AIConfiguration
from ai_gateway.models.ai_interaction import AIInteraction

__all__ = [
    "AIConfiguration",
    "AIInteraction",
]
