"""Minimal job and task runs that drive resource cleanup.

Jobs are owning contexts: resources they acquire are released when their run
publishes ``post-execute``. Task runs belong to a job run and expose it as
``owner``, so subscribers to :class:`JobRun` events also hear about the job's
tasks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from batchkit.constants import JOB_EXECUTE, JOB_FAILURE, JOB_POST_EXECUTE, RunStatus
from batchkit.core.helper import ResourceHelper

if TYPE_CHECKING:
    from batchkit.core.events import EventBus, Subscription
    from batchkit.core.tracker import ResourceTracker
    from batchkit.runtime import Runtime

logger = logging.getLogger(__name__)


class Runnable:
    """Common state of job and task runs.

    Parameters
    ----------
    label : str
        Human-readable run label
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self.status = RunStatus.PENDING
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None

    def start(self) -> None:
        self.status = RunStatus.EXECUTING
        self.started_at = datetime.now(timezone.utc)

    def finish(self, ok: bool) -> None:
        self.status = RunStatus.COMPLETED if ok else RunStatus.FAILED
        self.finished_at = datetime.now(timezone.utc)

    @property
    def elapsed(self) -> float | None:
        """Run duration in seconds, once finished."""
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label!r} {self.status.value}>"


class JobRun(Runnable):
    """One execution of a job."""

    def __init__(self, job: Job, label: str | None = None) -> None:
        super().__init__(label or type(job).__name__)
        self.job = job
        self.task_runs: list[TaskRun] = []


class TaskRun(Runnable):
    """One execution of a task within a job run."""

    def __init__(self, job_run: JobRun, label: str) -> None:
        super().__init__(label)
        self.job_run = job_run
        job_run.task_runs.append(self)

    @property
    def owner(self) -> JobRun:
        return self.job_run


class Job(ResourceHelper):
    """Base class for batch jobs.

    Subclasses implement :meth:`execute` (or any method passed to
    :meth:`JobRunner.run`) and acquire resources through the registered
    helper operations.

    Parameters
    ----------
    config : dict[str, Any] | None
        Job configuration; acquisition bodies may read it through the owner
    resource_manager : ResourceManager | None
        Manager to acquire resources from; the default runtime's when None
    """

    def __init__(self, config: dict[str, Any] | None = None, resource_manager: Any = None) -> None:
        self.config = config or {}
        self.current_run: JobRun | None = None
        if resource_manager is not None:
            self.resource_manager = resource_manager

    def execute(self, *args: Any) -> Any:
        raise NotImplementedError


@dataclass
class CleanupOnPostExecute:
    """Subscriber releasing a job's resources when its run finishes.

    Task runs also reach this subscriber through their owning job run; only
    job runs trigger cleanup.

    Attributes
    ----------
    tracker : ResourceTracker
        Tracker holding the job's resources
    """

    tracker: ResourceTracker

    def __call__(self, run: Runnable, job: Any, ok: bool) -> None:
        if not isinstance(run, JobRun):
            return
        logger.debug("Cleaning up resources of %r (ok=%s)", run, ok)
        self.tracker.cleanup_resources(job)


@dataclass
class FailureLogger:
    """Subscriber logging each unhandled run failure once.

    A failure raised in a task propagates through the job, so the same
    exception is published more than once.

    Attributes
    ----------
    log : logging.Logger
        Logger failures are written to
    """

    log: logging.Logger = field(default_factory=lambda: logging.getLogger("batchkit.jobs"))
    _last_error_id: int | None = field(default=None, init=False, repr=False)

    def __call__(self, run: Runnable, job: Any, error: BaseException) -> None:
        if id(error) == self._last_error_id:
            return
        self._last_error_id = id(error)
        self.log.error("%s failed: %s", run.label, error, exc_info=error)


def install_cleanup_hook(bus: EventBus, tracker: ResourceTracker) -> Subscription:
    """Release job resources automatically on ``post-execute``.

    Parameters
    ----------
    bus : EventBus
        Bus job runs publish on
    tracker : ResourceTracker
        Tracker holding job resources

    Returns
    -------
    Subscription
        The installed subscription
    """
    return bus.subscribe(JobRun, JOB_POST_EXECUTE, CleanupOnPostExecute(tracker))


def install_failure_logger(bus: EventBus, log: logging.Logger | None = None) -> Subscription:
    """Log unhandled failures of job and task runs."""
    handler = FailureLogger(log) if log is not None else FailureLogger()
    return bus.subscribe(Runnable, JOB_FAILURE, handler)


class JobRunner:
    """Runs jobs and tasks, publishing their lifecycle events.

    Parameters
    ----------
    runtime : Runtime
        Runtime whose bus receives ``execute``, ``post-execute`` and
        ``failure`` events
    """

    def __init__(self, runtime: Runtime) -> None:
        self.runtime = runtime

    @property
    def bus(self) -> EventBus:
        return self.runtime.bus

    def run(self, job: Job, method: str = "execute", *args: Any) -> Any:
        """Run a job method inside a new job run.

        Parameters
        ----------
        job : Job
            Job to run
        method : str
            Name of the job method to call
        *args : Any
            Arguments for the job method

        Returns
        -------
        Any
            Whatever the job method returned
        """
        if job.resource_manager is None:
            job.resource_manager = self.runtime.manager
        run = JobRun(job, label=f"{type(job).__name__}.{method}")
        job.current_run = run
        return self._execute(run, job, getattr(job, method), *args)

    def run_task(
        self, job_run: JobRun, label: str, task: Callable[..., Any], *args: Any
    ) -> Any:
        """Run a callable as a task of ``job_run``."""
        run = TaskRun(job_run, label)
        return self._execute(run, job_run.job, task, *args)

    def _execute(self, run: Runnable, job: Any, body: Callable[..., Any], *args: Any) -> Any:
        self.bus.publish(run, JOB_EXECUTE, job, *args)
        run.start()
        ok = False
        try:
            result = body(*args)
            ok = True
            return result
        except Exception as e:
            self.bus.publish(run, JOB_FAILURE, job, e)
            raise
        finally:
            run.finish(ok)
            self.bus.publish(run, JOB_POST_EXECUTE, job, ok)
