from context_rules.repositories.base import IConfigRepository
from context_rules.repositories.config import ConfigRepository

__all__ = [
    "IConfigRepository",
    "ConfigRepository",
]
