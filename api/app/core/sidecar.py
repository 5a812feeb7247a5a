"""Best-effort side effects (audit log writes, notifications).

Services enqueue jobs on a per-request dispatcher. Nothing runs until the
primary write has committed and ``drain`` is called; at the HTTP edge
``drain`` is scheduled through FastAPI ``BackgroundTasks`` so it runs after
the response is sent. A failing job is logged and dropped; it never
reaches the caller and never stops the remaining jobs.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)


@dataclass
class SidecarJob:
    name: str
    func: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class SidecarDispatcher:
    """FIFO queue of side-effect jobs for one logical request."""

    def __init__(self):
        self._jobs: List[SidecarJob] = []
        self.failures: List[Tuple[str, Exception]] = []

    def dispatch(self, name: str, func: Callable[..., Any], *args, **kwargs) -> None:
        self._jobs.append(SidecarJob(name=name, func=func, args=args, kwargs=kwargs))

    def discard(self) -> None:
        """Drop queued jobs, used when the primary write rolled back."""
        self._jobs.clear()

    @property
    def pending(self) -> List[str]:
        return [job.name for job in self._jobs]

    def drain(self) -> int:
        """Run and clear all queued jobs. Returns how many succeeded."""
        jobs, self._jobs = self._jobs, []
        succeeded = 0
        for job in jobs:
            try:
                job.func(*job.args, **job.kwargs)
                succeeded += 1
            except Exception as exc:
                self.failures.append((job.name, exc))
                logger.exception("Sidecar job '%s' failed", job.name)
        return succeeded
