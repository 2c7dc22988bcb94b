"""Category catalogue, category memory and automation rules"""

from .catalog import CategoryCatalog, DEFAULT_CATEGORIES
from .memory import CategoryMemory
from .rules import RuleEngine, hour_in_range

__all__ = ['CategoryCatalog', 'DEFAULT_CATEGORIES', 'CategoryMemory', 'RuleEngine', 'hour_in_range']
