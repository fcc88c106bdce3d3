# workers.py
"""
Qt background execution for the slice processing queue.
Defines a Worker for QRunnable tasks, a dispatcher that feeds queue jobs to a
QThreadPool, and a signal bridge that republishes queue snapshots to widgets.
"""
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from .processing_queue import SliceProcessingQueue

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    started = Signal()
    finished = Signal()
    error = Signal(str)
    result = Signal(object)


class Worker(QRunnable):
    """Wraps any function to run in a QThreadPool."""
    def __init__(self, fn: Callable, *args, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self) -> None:
        try:
            self.signals.started.emit()
            result = self.fn(*self.args, **self.kwargs)
            self.signals.result.emit(result)
        except Exception as e:
            logger.error("Worker error: %s", e)
            self.signals.error.emit(str(e))
        finally:
            self.signals.finished.emit()


class QtQueueDispatcher:
    """Queue dispatcher that runs each slice job on a QThreadPool.

    The queue never hands out more than one job at a time, so the pool only
    ever runs a single slice transform for it.
    """
    def __init__(self, pool: Optional[QThreadPool] = None):
        self.pool = pool or QThreadPool.globalInstance()

    def __call__(self, job: Callable[[], Any]) -> None:
        self.pool.start(Worker(job))


class QueueSignals(QObject):
    """Re-emits queue snapshots as a Qt signal.

    Listeners fire on whichever thread finished the job; Qt queues the signal
    to receivers living on the GUI thread.
    """
    slices_changed = Signal(object)
    progress = Signal(int, int)

    def attach(self, queue: SliceProcessingQueue) -> None:
        def _emit(snapshot) -> None:
            self.slices_changed.emit(snapshot)
            self.progress.emit(queue.done_count, queue.total)

        queue.add_listener(_emit)
