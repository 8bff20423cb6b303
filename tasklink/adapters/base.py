"""
Provider adapter contract.

An adapter is the only part of tasklink that talks to a provider. It hands
out canonical items and applies creates/updates to the provider's store;
everything else (matching, deciding what to change, cross-reference
bookkeeping) happens in the sync engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set
import importlib
import logging

from ..core.exceptions import ConfigurationError
from ..core.models import CanonicalItem, ProviderConfig, SyncConfig, SyncStrategy
from ..items.providers import default_min_sync_interval
from ..utils.text import provider_key


ALL_STRATEGIES = frozenset(SyncStrategy)


class ProviderAdapter(ABC):
    """Base class for provider adapters."""

    # Set by adapters that implement the optional operations
    supports_patch = False
    supports_prune = False

    def __init__(self, name: str, options: Optional[Mapping[str, Any]] = None,
                 known_providers: Iterable[str] = (),
                 base_tags: Sequence[str] = (),
                 min_sync_interval: Optional[int] = None,
                 logger: Optional[logging.Logger] = None):
        self.name = name
        self.options: Dict[str, Any] = dict(options or {})
        self.known_providers = list(known_providers)
        self.base_tags = list(base_tags)
        self._min_sync_interval = min_sync_interval
        self.logger = logger or logging.getLogger(__name__)

    @property
    def friendly_name(self) -> str:
        return self.name

    @property
    def provider_key(self) -> str:
        return provider_key(self.name)

    @property
    def sync_strategies(self) -> Set[SyncStrategy]:
        """Directions this provider supports (all of them by default)."""
        return set(ALL_STRATEGIES)

    @property
    def min_sync_interval(self) -> int:
        """Minimum seconds between two syncs of this provider."""
        if self._min_sync_interval is not None:
            return int(self._min_sync_interval)
        return default_min_sync_interval(self.name)

    def authorized(self) -> bool:
        """Whether credentials are available; unauthorized providers are skipped."""
        return True

    @abstractmethod
    def items_to_sync(self, tags: Optional[Sequence[str]] = None) -> List[CanonicalItem]:
        """Return this provider's items, optionally limited to those carrying any of ``tags``."""

    @abstractmethod
    def add_item(self, item: CanonicalItem) -> CanonicalItem:
        """
        Create ``item`` on this provider.

        ``item`` is a draft prepared by the engine: its provider is this
        adapter's, its id is empty, and its cross-references are the ones to
        store. Returns the created item with its new id (and url, if any).
        """

    @abstractmethod
    def update_item(self, existing: CanonicalItem, item: CanonicalItem) -> Any:
        """Overwrite ``existing`` with the fields of the draft ``item``."""

    def patch_item(self, existing: CanonicalItem, attributes: Mapping[str, Any]) -> Any:
        """Apply only the changed ``attributes`` to ``existing``."""
        raise NotImplementedError(f"{self.friendly_name} does not support patching")

    @abstractmethod
    def write_notes(self, item: CanonicalItem, notes: str) -> Any:
        """Persist the full notes text (user notes plus metadata lines) of ``item``."""

    def prune(self) -> int:
        """Remove completed items; returns how many were removed."""
        raise NotImplementedError(f"{self.friendly_name} does not support pruning")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _import_adapter_class(path: str) -> type:
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ConfigurationError(f"Adapter must be given as 'module:Class', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import adapter module '{module_name}': {exc}") from exc

    adapter_class = getattr(module, class_name, None)
    if not isinstance(adapter_class, type) or not issubclass(adapter_class, ProviderAdapter):
        raise ConfigurationError(f"'{path}' is not a ProviderAdapter subclass")
    return adapter_class


def load_adapter(provider: ProviderConfig, config: SyncConfig,
                 logger: Optional[logging.Logger] = None) -> ProviderAdapter:
    """
    Instantiate the adapter configured for a provider.

    Raises:
        ConfigurationError: if the adapter cannot be imported or constructed
    """
    adapter_class = _import_adapter_class(provider.adapter)
    try:
        return adapter_class(
            name=provider.name,
            options=provider.options,
            known_providers=config.provider_names,
            base_tags=config.tags,
            min_sync_interval=provider.min_sync_interval,
            logger=logger,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Cannot create adapter for {provider.name}: {exc}") from exc
