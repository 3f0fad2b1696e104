"""Bootstrap helpers for wiring dispatch engine components."""

from .container import DependencyContainer, EngineDependencies

__all__ = [
    'DependencyContainer',
    'EngineDependencies',
]
