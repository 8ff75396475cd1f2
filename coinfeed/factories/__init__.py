"""Factories for creating upstream adapters."""
from .provider_factory import ProviderFactory

__all__ = ['ProviderFactory']
