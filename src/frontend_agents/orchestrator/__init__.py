"""Workflow scheduler and the worker execution contract.

A run is a fixed six-step dependency graph per input (prompt or Jira issue).
The coordinator dispatches every ready step of a run concurrently through
``asyncio.gather`` and advances only after the whole frontier settles. Every
worker enforces its own concurrency ceiling and retries its operation with
linear backoff before a failure reaches the coordinator, which then aborts the
run. Nothing is persisted: a run lives in ``CoordinatorWorker.active_runs``
only while it executes.
"""
