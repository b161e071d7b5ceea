"""
Page Builder

Component-tree editing core for the visual page builder:

    from pagebuilder import BuilderSession, InMemoryComponentRegistry
"""

from pagebuilder.services.builder_session import BuilderSession
from pagebuilder.services.component_registry import InMemoryComponentRegistry

__version__ = "0.1.0"

__all__ = ["BuilderSession", "InMemoryComponentRegistry", "__version__"]
