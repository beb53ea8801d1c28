"""Providers module.

This module provides the provider adapter contract and its in-memory and
REST implementations.
"""

from fedfarm.providers.base import ProviderAdapter
from fedfarm.providers.memory import InMemoryProvider, ProviderCall
from fedfarm.providers.rest import RestProvider

__all__ = ["InMemoryProvider", "ProviderAdapter", "ProviderCall", "RestProvider"]
