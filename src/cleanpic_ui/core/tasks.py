"""
Background Task Execution
==========================

Qt-based background execution on ``QThreadPool``. Image decoding, the
inference round trip, and result downloads all run off the GUI thread and
report back through :class:`TaskSignals`.

Classes
-------
TaskSignals
    Qt signals carrying a task's return value or error message
Task
    QRunnable wrapper for executing a callable in the pool

Functions
---------
submit
    Submit a callable for background execution

Notes
-----
Signals emitted from a worker thread are delivered to receivers living on the
GUI thread through queued connections, so slots should be bound methods of a
``QObject`` (e.g. :class:`cleanpic_ui.core.workflow.WorkflowController`).

Callables submitted by the workflow return an outcome object instead of
raising, so the ``error`` signal only fires for unexpected failures. It
carries the ``tag`` given to :func:`submit`, the same token the outcome
object carries.

Examples
--------
>>> from cleanpic_ui.core.tasks import submit
>>> from cleanpic_ui.core.upload import decode_dimensions
>>>
>>> signals = submit(decode_dimensions, png_bytes)
>>> signals.finished.connect(lambda size: print(f"Decoded: {size}"))
>>> signals.error.connect(lambda tag, err: print(f"Error: {err}"))

See Also
--------
cleanpic_ui.core.workflow : Runs gateway calls through ``submit``
cleanpic_ui.core.upload : Runs image decoding through ``submit``
"""

import logging

from PySide6.QtCore import QObject, Signal, QRunnable, QThreadPool

log = logging.getLogger(__name__)


class TaskSignals(QObject):
    """
    Qt signals for communicating task status from worker threads.

    Signals
    -------
    finished : Signal(object)
        Emitted when the task completes, carries the return value
    error : Signal(object, str)
        Emitted when the task raises, carries the task's tag and the error
        message
    """

    finished = Signal(object)
    error = Signal(object, str)


class Task(QRunnable):
    """
    Background task wrapper for executing callables in the Qt thread pool.

    Parameters
    ----------
    fn : callable
        Function to execute in background
    *args : tuple
        Positional arguments to pass to fn
    tag : object, optional
        Identifies the submission in the ``error`` signal (a request or
        decode token), so receivers can drop errors from superseded work
    **kwargs : dict
        Keyword arguments to pass to fn
    """

    def __init__(self, fn, *args, tag=None, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.tag = tag
        self.kwargs = kwargs
        self.signals = TaskSignals()

    def run(self):
        """Execute the wrapped function and emit result or error signal."""
        try:
            res = self.fn(*self.args, **self.kwargs)
        except Exception as e:
            log.exception("Background task %s (tag=%r) failed", getattr(self.fn, "__name__", self.fn), self.tag)
            self.signals.error.emit(self.tag, str(e) or type(e).__name__)
            return
        self.signals.finished.emit(res)


def submit(fn, *args, tag=None, **kwargs):
    """
    Submit a function for background execution in the global thread pool.

    Parameters
    ----------
    fn : callable
        Function to execute in background
    *args : tuple
        Positional arguments for fn
    tag : object, optional
        Passed back with the ``error`` signal
    **kwargs : dict
        Keyword arguments for fn

    Returns
    -------
    TaskSignals
        Signal object with finished/error signals
    """
    t = Task(fn, *args, tag=tag, **kwargs)
    QThreadPool.globalInstance().start(t)
    return t.signals
