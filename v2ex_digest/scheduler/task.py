"""Fixed-interval background task driven by a shared shutdown event."""

import threading
import time
from collections.abc import Callable

import structlog


logger = structlog.get_logger()


def run_guarded(
    tick: Callable[[], object],
    log: structlog.typing.FilteringBoundLogger,
) -> bool:
    """Run one tick, logging an exception instead of raising it.

    Args:
        tick: Work to run.
        log: Logger carrying the task context.

    Returns:
        True if the tick completed without raising.
    """
    try:
        tick()
    except Exception:
        log.exception("task_tick_failed")
        return False
    return True


class PeriodicTask:
    """Runs ``tick`` every ``interval_seconds`` on its own thread.

    The next tick is due one interval after the previous tick started. A tick
    that overruns its interval delays the next one; ticks never overlap.
    Setting ``shutdown`` stops the loop after the in-flight tick completes.
    An exception raised by ``tick`` is logged and the loop carries on.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        tick: Callable[[], object],
        shutdown: threading.Event,
        run_immediately: bool = False,
    ) -> None:
        """Initialize the task.

        Args:
            name: Task name, used for the thread and in logs.
            interval_seconds: Time between tick starts.
            tick: Work to run on each tick.
            shutdown: Event that stops the loop when set.
            run_immediately: Run the first tick at start instead of after
                one interval.
        """
        if interval_seconds <= 0:
            msg = f"interval_seconds must be positive, got {interval_seconds}"
            raise ValueError(msg)
        self._name = name
        self._interval = interval_seconds
        self._tick = tick
        self._shutdown = shutdown
        self._run_immediately = run_immediately
        self._thread: threading.Thread | None = None
        self._ticks = 0
        self._failures = 0
        self._log = logger.bind(component="scheduler", task=name)

    @property
    def name(self) -> str:
        """Get the task name."""
        return self._name

    @property
    def ticks(self) -> int:
        """Number of ticks run so far, failed ones included."""
        return self._ticks

    @property
    def failures(self) -> int:
        """Number of ticks that raised."""
        return self._failures

    def start(self) -> None:
        """Start the loop thread.

        Raises:
            RuntimeError: If the task was already started.
        """
        if self._thread is not None:
            msg = f"Task {self._name} already started"
            raise RuntimeError(msg)
        self._thread = threading.Thread(target=self.run, name=self._name, daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the loop thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        """Whether the loop thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        """Run the loop on the calling thread until shutdown is set."""
        self._log.info(
            "task_started",
            interval_seconds=self._interval,
            run_immediately=self._run_immediately,
        )
        next_due = time.monotonic()
        if not self._run_immediately:
            next_due += self._interval

        while not self._shutdown.is_set():
            delay = next_due - time.monotonic()
            if delay > 0:
                self._shutdown.wait(delay)
                continue

            started = time.monotonic()
            self._run_tick()
            next_due = started + self._interval

        self._log.info("task_stopped", ticks=self._ticks, failures=self._failures)

    def _run_tick(self) -> None:
        self._ticks += 1
        if not run_guarded(self._tick, self._log.bind(tick=self._ticks)):
            self._failures += 1
