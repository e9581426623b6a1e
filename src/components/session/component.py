"""
Session component - Lifecycle of one tracking session.

One SessionController is built per page load and owns all session state:
the active-time tracker, the scroll sampler, the dwell bucketer and the
pixel-bin tracker. It is driven by synthetic or real events (start,
visibility change, scroll, tick, CTA click, stop/unmount/unload) and hands
the finalized session to a finalizer port exactly once.

Key behaviors:
- start reuses the stored device identifier or creates it once
- a tab that starts hidden begins paused
- 90 s of active time forces a stop even without user action
- stop, unmount and unload all converge on one one-shot stop
- stopping cancels the ticker

Invariants:
- reported active time never exceeds the cap
- the finalizer is called at most once per controller
"""

from __future__ import annotations

import logging
import secrets
import string
import threading

from src.components.activity import ActiveTimeTracker, VisibilitySourcePort
from src.components.dwell import DwellBucketer, PixelBinConfig, PixelBinTracker
from src.components.scroll import (
    ContainerScrollSource,
    PageScrollSource,
    PageWindowPort,
    SamplerConfig,
    ScrollContainerPort,
    ScrollSample,
    ScrollSampler,
    ScrollSourcePort,
)

from .models import (
    FinalizedSession,
    SessionConfig,
    SessionContext,
    SessionState,
    StopReason,
    can_transition,
)
from .ports import (
    ClockPort,
    KeyValueStorePort,
    SessionFinalizerPort,
    TickerHandle,
    TickerPort,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


# --- Identifiers ---


def _random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def new_session_id(clock: ClockPort) -> str:
    """Fresh per-window identifier: session_{epoch_ms}_{random}."""
    return f"session_{clock.now_ms()}_{_random_suffix()}"


def new_device_id(clock: ClockPort) -> str:
    return f"browser_{clock.now_ms()}_{_random_suffix()}"


class DeviceIdentity:
    """
    Stable per-device identifier kept in client-local storage.

    Read once, written once if absent. Two tabs racing to create it is
    benign: the last write wins.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        clock: ClockPort,
        key: str = "heatmagnet_browser_id",
    ) -> None:
        self._store = store
        self._clock = clock
        self._key = key
        self._cached: str | None = None

    def get_or_create_device_id(self) -> str:
        if self._cached is not None:
            return self._cached

        existing = self._store.get(self._key)
        if existing:
            self._cached = existing
            return existing

        created = new_device_id(self._clock)
        self._store.set(self._key, created)
        self._cached = created
        logger.debug("Created device id %s", created)
        return created


# --- Controller ---


class SessionController:
    """
    Explicit state machine for one session.

    Args:
        context: Document and visitor context
        source: Scroll source (page or container)
        clock: Clock port (epoch ms)
        store: Key-value store holding the device identifier
        finalizer: Receives the finalized session on stop
        visibility: Optional visibility source; None means always visible
        ticker: Optional periodic ticker; when None, on_tick() must be
            driven by the caller
        config: Tracking settings
        bounded_events: Keep only the most recent scroll samples
            (container strategy) instead of all of them (page strategy)
    """

    def __init__(
        self,
        *,
        context: SessionContext,
        source: ScrollSourcePort,
        clock: ClockPort,
        store: KeyValueStorePort,
        finalizer: SessionFinalizerPort,
        visibility: VisibilitySourcePort | None = None,
        ticker: TickerPort | None = None,
        config: SessionConfig | None = None,
        bounded_events: bool = False,
    ) -> None:
        self._config = config or SessionConfig()
        self._context = context
        self._clock = clock
        self._finalizer = finalizer
        self._ticker = ticker
        self._identity = DeviceIdentity(store, clock, self._config.device_id_key)

        self._activity = ActiveTimeTracker(clock, visibility)
        self._sampler = ScrollSampler(
            source,
            clock,
            self._activity,
            SamplerConfig(
                throttle_ms=self._config.scroll_throttle_ms,
                event_limit=self._config.container_event_limit if bounded_events else None,
            ),
        )
        self._dwell = DwellBucketer(clock, limit_ms=self._config.cap_ms)
        self._pixels = PixelBinTracker(clock, PixelBinConfig(bin_size=self._config.pixel_bin_size))

        self._state = SessionState.IDLE
        self._already_stopped = False
        self._tick_handle: TickerHandle | None = None
        self._session_id: str | None = None
        self._browser_id: str | None = None
        self._start_ms: int | None = None
        self._cta_clicks = 0
        self._result: FinalizedSession | None = None
        # Ticks may arrive on a ticker thread; handlers run one at a time.
        self._lock = threading.RLock()

    @classmethod
    def for_page(cls, window: PageWindowPort, **kwargs) -> SessionController:
        """Controller sampling whole-page (window) scrolling."""
        return cls(source=PageScrollSource(window), bounded_events=False, **kwargs)

    @classmethod
    def for_container(cls, container: ScrollContainerPort, **kwargs) -> SessionController:
        """Controller sampling a bounded scrollable container."""
        return cls(source=ContainerScrollSource(container), bounded_events=True, **kwargs)

    # --- Properties ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def browser_id(self) -> str | None:
        return self._browser_id

    @property
    def is_tracking(self) -> bool:
        return self._state is SessionState.TRACKING

    @property
    def is_visible(self) -> bool:
        return self._activity.is_visible

    @property
    def max_scroll_percentage(self) -> float:
        return self._sampler.max_percentage

    @property
    def cta_clicks(self) -> int:
        return self._cta_clicks

    @property
    def result(self) -> FinalizedSession | None:
        return self._result

    def active_ms(self) -> int:
        return min(self._activity.active_ms(), self._config.cap_ms)

    def dwell_histogram(self) -> dict[str, int]:
        return self._dwell.histogram()

    # --- Events ---

    def start(self) -> bool:
        """idle -> tracking. Returns False if the session already started."""
        with self._lock:
            if not self._transition(SessionState.TRACKING):
                return False

            self._browser_id = self._identity.get_or_create_device_id()
            self._session_id = new_session_id(self._clock)
            self._start_ms = self._activity.start()

            paused = not self._activity.is_visible
            reading = self._sampler.read()
            self._dwell.start(self._sampler.current_percentage, paused=paused)
            if self._config.track_pixel_bins:
                self._pixels.layout(reading.scrollable_extent, paused=paused)

            if self._ticker is not None:
                self._tick_handle = self._ticker.schedule(
                    self._config.tick_interval_ms, self.on_tick
                )

            logger.info(
                "Session %s started for document %s (paused=%s)",
                self._session_id,
                self._context.document_id,
                paused,
            )
            return True

    def on_visibility_change(self, hidden: bool) -> None:
        with self._lock:
            if not self.is_tracking:
                return
            if self._enforce_cap():
                return

            if hidden:
                if not self._activity.has_visibility_source or not self._activity.is_visible:
                    return
                # Close the open intervals before the tracker freezes.
                reading = self._sampler.read()
                self._dwell.pause()
                self._pixels.pause(reading.position, reading.viewport_extent)
                self._activity.on_visibility_change(hidden=True)
                return

            if self._activity.on_visibility_change(hidden=False):
                self._dwell.resume()
                self._pixels.resume()

    def on_scroll(self) -> ScrollSample | None:
        with self._lock:
            if not self.is_tracking:
                return None
            if self._enforce_cap():
                return None

            sample = self._sampler.sample()
            if sample is not None:
                self._dwell.on_sample(sample.scroll_percentage)
            return sample

    def on_tick(self) -> None:
        with self._lock:
            if not self.is_tracking:
                return
            if self._enforce_cap():
                return
            if not self._activity.is_visible:
                return

            self._dwell.on_tick(self._sampler.current_percentage)
            if self._config.track_pixel_bins:
                reading = self._sampler.read()
                self._pixels.on_tick(reading.position, reading.viewport_extent)

    def record_cta_click(self) -> bool:
        """Count a call-to-action click. Ignored unless tracking."""
        with self._lock:
            if not self.is_tracking:
                return False
            self._cta_clicks += 1
            return True

    def stop(self, reason: StopReason = StopReason.EXPLICIT) -> FinalizedSession | None:
        """
        Stop tracking and flush once.

        Returns the finalized session on the first stop from tracking, and
        None for every later trigger or when tracking never started.
        """
        with self._lock:
            if self._already_stopped:
                return None
            self._already_stopped = True

            was_tracking = self.is_tracking
            self._transition(SessionState.STOPPED)
            handle, self._tick_handle = self._tick_handle, None
            finalized = self._finalize(reason) if was_tracking else None
            self._result = finalized

        # Outside the lock: cancelling joins a ticker thread that may be
        # waiting on it.
        if handle is not None:
            handle.cancel()
        if finalized is None:
            return None

        logger.info(
            "Session %s stopped (%s) after %d ms active",
            finalized.session_id,
            reason.value,
            finalized.active_ms,
        )
        self._finalizer.on_finalized(finalized)
        return finalized

    def unmount(self) -> FinalizedSession | None:
        return self.stop(StopReason.UNMOUNT)

    def on_unload(self) -> FinalizedSession | None:
        return self.stop(StopReason.UNLOAD)

    # --- Internals ---

    def _transition(self, to_state: SessionState) -> bool:
        if not can_transition(self._state, to_state):
            return False
        logger.debug("Session state %s -> %s", self._state.value, to_state.value)
        self._state = to_state
        return True

    def _enforce_cap(self) -> bool:
        if self._activity.active_ms() >= self._config.cap_ms:
            self.stop(StopReason.CAP_REACHED)
            return True
        return False

    def _finalize(self, reason: StopReason) -> FinalizedSession:
        if self._activity.is_visible and self._config.track_pixel_bins:
            reading = self._sampler.read()
            self._pixels.on_tick(reading.position, reading.viewport_extent)
        dwell = self._dwell.finish()
        events = self._sampler.drain_events()

        return FinalizedSession(
            session_id=self._session_id or "",
            browser_id=self._browser_id or "",
            context=self._context,
            start_time=self._start_ms if self._start_ms is not None else self._clock.now_ms(),
            end_time=self._clock.now_ms(),
            active_ms=self.active_ms(),
            max_scroll_percentage=self._sampler.max_percentage,
            scroll_event_count=self._sampler.sample_count,
            stop_reason=reason,
            scroll_events=events,
            dwell_time=dwell,
            pixel_bins=self._pixels.bins(),
            cta_clicks=self._cta_clicks,
        )
