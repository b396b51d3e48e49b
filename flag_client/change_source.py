"""
Change sources that push new flag payloads to subscribed clients.

A change source owns the I/O side of hot reloading. Whenever the backing
definition changes it hands the raw bytes to every subscriber callback;
clients parse and swap in the new flags themselves.

Two sources are provided:

- ``MemoryChangeSource``: payloads are published programmatically
- ``FileChangeSource``: watches a JSON file with watchdog and re-reads it
  on modify, create and move (atomic write) events
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, List, NamedTuple, Optional, Protocol, Tuple, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ParseError
from .snapshot import Payload


# Set up logger
logger = logging.getLogger(__name__)

UpdateCallback = Callable[[bytes], Any]


class Delivery(NamedTuple):
    """A payload stamped with the order in which its source delivered it."""

    payload: bytes
    generation: int


DeliveryCallback = Callable[[Delivery], Any]


class Subscription:
    """Handle for one registered callback. Cancelling is idempotent."""

    def __init__(self, source: "SubscriberRegistry", callback: Callable[..., Any],
                 versioned: bool = False):
        self._source = source
        self.callback = callback
        self.versioned = versioned
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._source._unsubscribe(self)

    def notify(self, delivery: Delivery) -> None:
        if self.versioned:
            self.callback(delivery)
        else:
            self.callback(delivery.payload)


class ChangeSource(Protocol):
    """What a client needs from a change source."""

    def subscribe(self, callback: UpdateCallback) -> Subscription:
        ...

    def attach(self, callback: DeliveryCallback) -> Tuple[Subscription, Optional[Delivery]]:
        ...

    def latest(self) -> Optional[bytes]:
        ...


class SubscriberRegistry:
    """
    Thread-safe subscriber list shared by the concrete sources.

    Every delivery gets the next generation number. Callbacks run outside
    the lock, so two deliveries can reach a subscriber out of order;
    ``attach`` subscribers see the generation and can drop the older one.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._subscriptions: List[Subscription] = []
        self._latest: Optional[Delivery] = None
        self._generation = 0

    def subscribe(self, callback: UpdateCallback) -> Subscription:
        """Register a callback for future payloads."""
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def attach(self, callback: DeliveryCallback) -> Tuple[Subscription, Optional[Delivery]]:
        """
        Register a callback for future deliveries and read the latest one.

        Both happen under the registry lock: any delivery newer than the
        returned one is guaranteed to reach the callback.

        Returns:
            The subscription and the latest delivery (None before the first)
        """
        subscription = Subscription(self, callback, versioned=True)
        with self._lock:
            self._subscriptions.append(subscription)
            return subscription, self._latest

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                pass  # Already removed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def latest(self) -> Optional[bytes]:
        """Most recently delivered payload, or None before the first one."""
        with self._lock:
            return self._latest.payload if self._latest is not None else None

    def _deliver(self, payload: bytes) -> int:
        """
        Hand a payload to every active subscriber.

        Callbacks run outside the registry lock so a slow subscriber cannot
        block new subscriptions. A failing callback is logged and does not
        stop delivery to the others.

        Returns:
            Number of callbacks that accepted the payload
        """
        with self._lock:
            self._generation += 1
            delivery = Delivery(payload, self._generation)
            self._latest = delivery
            subscriptions = list(self._subscriptions)

        accepted = 0
        for subscription in subscriptions:
            if not subscription.active:
                continue
            try:
                subscription.notify(delivery)
                accepted += 1
            except ParseError as e:
                logger.error(f"Flag update rejected: {e}")
            except Exception as e:
                logger.error(f"Error in flag update callback: {e}")
        return accepted


class MemoryChangeSource(SubscriberRegistry):
    """Change source fed by explicit ``publish`` calls."""

    def publish(self, payload: Payload) -> int:
        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        return self._deliver(data)


class FlagFileHandler(FileSystemEventHandler):
    """File system event handler for a single flag file."""

    def __init__(self, source: "FileChangeSource"):
        self.source = source

    def _should_handle_event(self, file_path: Union[str, bytes]) -> bool:
        """Check if this event concerns the watched file."""
        if isinstance(file_path, bytes):
            file_path = file_path.decode("utf-8", errors="replace")
        return Path(file_path).absolute() == self.source.path.absolute()

    def on_modified(self, event):
        if not event.is_directory and self._should_handle_event(event.src_path):
            logger.debug(f"Flag file modified: {event.src_path}")
            self.source.schedule_reload()

    def on_created(self, event):
        # Some editors create new files instead of modifying existing ones
        if not event.is_directory and self._should_handle_event(event.src_path):
            logger.debug(f"Flag file created: {event.src_path}")
            self.source.schedule_reload()

    def on_moved(self, event):
        # Atomic writes move a temp file over the target
        if not event.is_directory and self._should_handle_event(event.dest_path):
            logger.debug(f"Flag file moved (atomic write): {event.dest_path}")
            self.source.schedule_reload()


class FileChangeSource(SubscriberRegistry):
    """
    Change source backed by a JSON flag file.

    Bursts of file events are collapsed: each event restarts a short timer
    and the file is read once the timer expires, so the last write of a
    burst is always the one delivered.
    """

    def __init__(self, path: Union[str, Path], debounce_seconds: float = 0.1):
        super().__init__()
        self.path = Path(path)
        self.debounce_seconds = debounce_seconds
        self.observer = None
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._reload_lock = threading.Lock()

    @property
    def watching(self) -> bool:
        return self.observer is not None

    def start(self) -> "FileChangeSource":
        """Load the current file contents and begin watching for changes."""
        self.reload()
        if self.observer is not None:
            return self

        try:
            observer = Observer()
            watch_directory = str(self.path.absolute().parent)
            observer.schedule(FlagFileHandler(self), watch_directory, recursive=False)
            observer.start()
            self.observer = observer
            logger.debug(f"File watcher started for {self.path}")
        except Exception as e:
            logger.warning(f"Could not set up file watcher for {self.path}: {e}")
            self.observer = None
        return self

    def stop(self) -> None:
        """Stop watching. Pending debounced reloads are cancelled."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            logger.debug(f"File watcher stopped for {self.path}")

    def schedule_reload(self) -> None:
        if self.debounce_seconds <= 0:
            self.reload()
            return

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.reload)
            self._timer.daemon = True
            self._timer.start()

    def reload(self) -> bool:
        """
        Read the file now and deliver it if it changed.

        Returns:
            True if a new payload was delivered
        """
        # One reload at a time, so older contents never follow newer ones
        with self._reload_lock:
            try:
                data = self._read_file()
            except FileNotFoundError:
                logger.debug(f"Flag file {self.path} does not exist yet")
                return False
            except OSError as e:
                logger.error(f"Error reading flag file {self.path}: {e}")
                return False

            if data == self.latest():
                logger.debug(f"Flag file {self.path} unchanged, skipping delivery")
                return False

            logger.debug(f"Delivering {len(data)} bytes from {self.path}")
            self._deliver(data)
            return True

    def _read_file(self) -> bytes:
        return self.path.read_bytes()

    def __enter__(self) -> "FileChangeSource":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
