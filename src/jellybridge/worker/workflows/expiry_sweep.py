# worker/workflows/expiry_sweep.py
from typing import Any

from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from src.jellybridge.worker.activities.lifecycle import LifecycleActivities
    from src.jellybridge.worker.workflows.base import default_activity_opts

EXPIRY_SWEEP_WORKFLOW_ID = "jellybridge-expiry-sweep"


@workflow.defn
class ExpirySweepWorkflow:
    """Run the account expiry sweep once as a durable activity."""

    @workflow.run
    async def run(self, warn_window_days: int) -> dict[str, Any]:
        return await workflow.execute_activity_method(
            LifecycleActivities.run_expiry_sweep,
            warn_window_days,
            **default_activity_opts(),
        )
