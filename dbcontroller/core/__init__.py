"""
Core functionality for Database reconciliation.

This package provides the foundation the reconciler is built on:
- Closed set of reconciliation outcomes and their status/requeue policy
- Deduplicating, rate-limited work queue for reconciliation keys

Import directly from submodules:
# from dbcontroller.core.state_machine import OUTCOMES, ResultKind, ReconcileResult
# from dbcontroller.core.work_queue import WorkQueue
"""
