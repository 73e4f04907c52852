"""Progress reporting with cooperative cancellation."""

import logging
import threading

from tqdm import tqdm

from phyloflow.exceptions import CanceledError

logger = logging.getLogger(__name__)


class ProgressListener:
    """Monotonic progress counter with a known maximum and a cancel flag.

    Long computations call :meth:`set_maximum` once, then
    :meth:`increment_progress` per unit of work; every ``check_interval``
    increments the cancel flag is checked and :class:`CanceledError` raised
    if it is set. A tqdm bar mirrors the counter when INFO logging is on.
    """

    def __init__(
        self,
        desc: str = "",
        cancel_event: threading.Event | None = None,
        show_progress: bool = True,
        check_interval: int = 1,
    ) -> None:
        self.desc = desc
        self.subtask = ""
        self.maximum = 0
        self.progress = 0
        self.check_interval = max(1, check_interval)
        self._cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._show = show_progress
        self._bar: tqdm | None = None

    # ------------------------------------------------------------------

    def set_tasks(self, task: str, subtask: str = "") -> None:
        self.desc = task
        self.set_subtask(subtask)

    def set_subtask(self, subtask: str) -> None:
        self.subtask = subtask
        if self._bar is not None:
            self._bar.set_postfix_str(subtask[:40])

    def set_maximum(self, maximum: int) -> None:
        """Start a new phase of ``maximum`` steps; resets the counter."""
        self.maximum = max(0, maximum)
        self.progress = 0
        self._close_bar()
        self._bar = tqdm(
            total=self.maximum,
            desc=self.desc,
            disable=not (self._show and logger.isEnabledFor(logging.INFO)),
            leave=False,
        )

    def set_progress(self, value: int) -> None:
        """Move the counter forward to ``value``; never moves it backwards."""
        if value > self.progress:
            if self._bar is not None:
                self._bar.update(value - self.progress)
            self.progress = value
        self.check_for_cancel()

    def increment_progress(self) -> None:
        self.progress += 1
        if self._bar is not None:
            self._bar.update(1)
        if self.progress % self.check_interval == 0:
            self.check_for_cancel()

    # ------------------------------------------------------------------

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def is_canceled(self) -> bool:
        return self._cancel_event.is_set()

    def check_for_cancel(self) -> None:
        """Raise CanceledError if cancellation was requested."""
        if self._cancel_event.is_set():
            raise CanceledError(f"{self.desc or 'Computation'} canceled")

    def close(self) -> None:
        self._close_bar()

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def __enter__(self) -> "ProgressListener":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ProgressSilent(ProgressListener):
    """Listener that never draws anything; still honors cancellation."""

    def __init__(self, cancel_event: threading.Event | None = None) -> None:
        super().__init__(desc="", cancel_event=cancel_event, show_progress=False)
