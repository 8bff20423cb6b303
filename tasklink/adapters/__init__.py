"""Provider adapters."""

from .base import ProviderAdapter, load_adapter
from .json_file import JsonFileAdapter

__all__ = ['ProviderAdapter', 'load_adapter', 'JsonFileAdapter']
