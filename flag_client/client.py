"""
Live flag client with lock-free reads and atomic hot reload.

A client is bound to a fixed scope chain. It keeps the active Snapshot and
the mapping resolved for its chain together in one immutable state object.
Reloads build a complete new state and replace the reference in a single
assignment, so every query runs against exactly one generation of flags.

Basic usage:
    ```python
    from flag_client import FlagClient, FileChangeSource

    source = FileChangeSource("flags.json").start()
    client = FlagClient(["region/eu"], source=source)

    if client.is_enabled("new_ui"):
        ...

    beta = client.with_scopes("cohort/beta")
    if beta.is_enabled_for_id("rollout", user_id):
        ...
    ```
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .change_source import ChangeSource, Delivery, Subscription
from .errors import ParseError
from .evaluator import FlagEvaluator
from .flag_value import Feature, FlagValue
from .resolver import merge_scopes
from .snapshot import Payload, Snapshot, dump_scoped, empty_default_snapshot, parse, scoped_document


# Set up logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ClientState:
    """One generation: a snapshot and the flags resolved from it."""
    snapshot: Snapshot
    evaluator: FlagEvaluator
    loaded: bool
    # Source generation the snapshot came from, None if never delivered by a source
    generation: Optional[int] = None


class FlagClient:
    """
    Feature flag client bound to a scope chain.

    Readers never take a lock. Writers (``apply_update`` and
    ``set_snapshot``) resolve the next state first and then serialize on an
    internal lock only to compare and install it.
    """

    def __init__(self, scopes: Optional[Sequence[str]] = None,
                 source: Optional[ChangeSource] = None,
                 snapshot: Optional[Snapshot] = None):
        """
        Create a client.

        Args:
            scopes: Scope chain, least specific first. ``default`` is implied.
            source: Change source to subscribe to for hot reloads
            snapshot: Initial snapshot; the empty default snapshot if omitted
        """
        self._scopes: Tuple[str, ...] = tuple(scopes or ())
        self._swap_lock = threading.Lock()
        initial = snapshot or empty_default_snapshot()
        self._state = _ClientState(initial, self._resolve(initial), loaded=snapshot is not None)
        self._source = source
        self._subscription: Optional[Subscription] = None

        if source is not None:
            self._subscribe(source)

    def _resolve(self, snapshot: Snapshot) -> FlagEvaluator:
        return FlagEvaluator(merge_scopes(snapshot, self._scopes))

    def _subscribe(self, source: ChangeSource) -> None:
        self._subscription, latest = source.attach(self._on_delivery)

        # Catch up with a payload delivered before we subscribed. Anything
        # newer reaches _on_delivery and wins on generation.
        if latest is None:
            return
        try:
            self._on_delivery(latest)
        except ParseError as e:
            logger.error(f"Ignoring malformed flag payload from change source: {e}")

    def _on_delivery(self, delivery: Delivery) -> Snapshot:
        return self.apply_update(delivery.payload, generation=delivery.generation)

    def apply_update(self, raw: Payload, generation: Optional[int] = None) -> Snapshot:
        """
        Parse a payload and atomically install it.

        Args:
            raw: Serialized flag document
            generation: Source delivery number. A payload older than the one
                already installed is ignored.

        Returns:
            The snapshot active after the call

        Raises:
            ParseError: If the payload is malformed. The current flags stay active.
        """
        snapshot = parse(raw)
        evaluator = self._resolve(snapshot)

        with self._swap_lock:
            current = self._state
            if generation is not None and current.generation is not None and generation <= current.generation:
                logger.debug(f"Ignoring stale flag payload (generation {generation}, "
                             f"have {current.generation})")
                return current.snapshot
            if current.loaded and snapshot.digest and snapshot.digest == current.snapshot.digest:
                logger.debug(f"Flag payload unchanged ({snapshot.digest[:12]}), skipping reload")
                if generation is not None:
                    self._state = replace(current, generation=generation)
                return current.snapshot
            if generation is None:
                generation = current.generation
            self._state = _ClientState(snapshot, evaluator, loaded=True, generation=generation)

        logger.info(f"Feature flags reloaded successfully, version {snapshot.version or '<unversioned>'}, "
                    f"{len(evaluator.features)} flags in scope {list(self._scopes)}")
        return snapshot

    def set_snapshot(self, snapshot: Snapshot) -> "FlagClient":
        """Install an already parsed snapshot."""
        evaluator = self._resolve(snapshot)
        with self._swap_lock:
            self._state = _ClientState(snapshot, evaluator, loaded=True, generation=self._state.generation)
        return self

    def with_scopes(self, *scopes: str) -> "FlagClient":
        """
        Derive a client with additional, more specific scopes.

        The new client shares the current snapshot, resolves its own flags and
        holds its own subscription to the change source, if any. Returns
        ``self`` when there is nothing to add.
        """
        if not scopes or (len(scopes) == 1 and scopes[0] == ""):
            return self

        state = self._state
        derived = FlagClient(self._scopes + tuple(scopes))
        derived._state = _ClientState(state.snapshot, derived._resolve(state.snapshot),
                                      loaded=state.loaded, generation=state.generation)

        if self._subscription is not None and self._source is not None:
            derived._source = self._source
            derived._subscribe(self._source)
        return derived

    def close(self) -> None:
        """Stop receiving updates. Other clients on the same source are unaffected."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def __enter__(self) -> "FlagClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"FlagClient(scopes={list(self._scopes)!r}, version={self.current_sha!r})"

    # Accessors

    @property
    def scopes(self) -> Tuple[str, ...]:
        return self._scopes

    @property
    def snapshot(self) -> Snapshot:
        return self._state.snapshot

    @property
    def features(self) -> Mapping[str, FlagValue]:
        """Resolved flags for this client's scope chain."""
        return self._state.evaluator.features

    @property
    def current_sha(self) -> str:
        return self._state.snapshot.version

    @property
    def is_loaded(self) -> bool:
        return self._state.loaded

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def evaluator(self) -> FlagEvaluator:
        """
        Evaluator pinned to the current generation.

        Use this to run several queries that must agree with each other even
        if a reload happens in between.
        """
        return self._state.evaluator

    def scoped_map(self) -> Dict[str, Any]:
        state = self._state
        return scoped_document(state.snapshot.version, state.evaluator.features)

    def scoped_json(self) -> str:
        state = self._state
        return dump_scoped(state.snapshot.version, state.evaluator.features)

    # Queries

    def exists(self, feature: str) -> bool:
        return self._state.evaluator.exists(feature)

    def is_enabled(self, feature: str) -> bool:
        return self._state.evaluator.is_enabled(feature)

    def is_enabled_for_id(self, feature: str, identifier: int) -> bool:
        return self._state.evaluator.is_enabled_for_id(feature, identifier)

    def scaled_value(self, feature: str, min_value: float, max_value: float) -> float:
        return self._state.evaluator.scaled_value(feature, min_value, max_value)

    def feature(self, feature: str) -> Optional[Feature]:
        return self._state.evaluator.feature(feature)
