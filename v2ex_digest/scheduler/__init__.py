"""Background scheduling for the long-running service."""

from v2ex_digest.scheduler.task import PeriodicTask, run_guarded


__all__ = ["PeriodicTask", "run_guarded"]
