"""
Core module for tasklink - contains domain models, configuration, run log and exceptions.
"""

from .models import (
    CanonicalItem,
    CrossReference,
    MatchPair,
    MatchResult,
    RunRecord,
    RunStatus,
    SyncStrategy,
    ProviderConfig,
    SyncConfig,
    RunOptions,
)

from .exceptions import (
    TaskLinkError,
    ConfigurationError,
    AdapterError,
    AuthorizationError,
)

from .run_log import RunLog

__all__ = [
    # Models
    'CanonicalItem',
    'CrossReference',
    'MatchPair',
    'MatchResult',
    'RunRecord',
    'RunStatus',
    'SyncStrategy',
    'ProviderConfig',
    'SyncConfig',
    'RunOptions',
    # Run history
    'RunLog',
    # Exceptions
    'TaskLinkError',
    'ConfigurationError',
    'AdapterError',
    'AuthorizationError',
]
