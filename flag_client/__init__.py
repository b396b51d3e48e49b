"""
Scoped feature flag client with hot reload.

This package provides a read-only feature flag client with:
- Hierarchical scopes with override precedence
- Boolean and percentile rollout flags
- Deterministic per-id bucketing
- Lock-free reads with atomic hot reload
- File watching for real-time updates

Basic usage:
    ```python
    from flag_client import FlagClient, FileChangeSource

    source = FileChangeSource("flags.json").start()
    client = FlagClient(["region/eu"], source=source)

    if client.is_enabled("new_ui"):
        print("New UI enabled")

    beta = client.with_scopes("cohort/beta")
    if beta.is_enabled_for_id("checkout_v2", user_id):
        print("User is in the rollout")

    timeout = client.scaled_value("timeout_ramp", 1.0, 30.0)
    ```
"""

# Core classes
from .client import FlagClient
from .evaluator import FlagEvaluator
from .snapshot import Snapshot, parse, empty_default_snapshot
from .resolver import merge_scopes, resolve, in_scope, defaults
from .flag_value import (
    BooleanFlag,
    Feature,
    FeatureType,
    FlagValue,
    FractionFlag,
    ScopeNode,
    UnsupportedFlag,
)

# Change sources
from .change_source import ChangeSource, Delivery, FileChangeSource, MemoryChangeSource, Subscription

# Configuration
from .config import ClientSettings, get_client, get_settings, shutdown_clients

# Errors
from .errors import FlagClientError, ParseError

# Public API
__all__ = [
    # Core classes
    'FlagClient',
    'FlagEvaluator',
    'Snapshot',
    'parse',
    'empty_default_snapshot',
    'merge_scopes',
    'resolve',
    'in_scope',
    'defaults',

    # Flag values
    'BooleanFlag',
    'Feature',
    'FeatureType',
    'FlagValue',
    'FractionFlag',
    'ScopeNode',
    'UnsupportedFlag',

    # Change sources
    'ChangeSource',
    'Delivery',
    'FileChangeSource',
    'MemoryChangeSource',
    'Subscription',

    # Configuration
    'ClientSettings',
    'get_client',
    'get_settings',
    'shutdown_clients',

    # Errors
    'FlagClientError',
    'ParseError',
]

# Version info
__version__ = "1.0.0"
__description__ = "Scoped feature flag client with hot reload"
