# worker/activities/lifecycle.py
from __future__ import annotations

from typing import Any

from temporalio import activity
from temporalio.exceptions import ApplicationError

from src.jellybridge.api.http.app_data import ApplicationDependencies
from src.jellybridge.core.exceptions import ConfigurationError


class LifecycleActivities:
    """Activities bound to the worker's application dependencies."""

    def __init__(self, dependencies: ApplicationDependencies):
        self._deps = dependencies

    @activity.defn(name="run_expiry_sweep")
    async def run_expiry_sweep(self, warn_window_days: int) -> dict[str, Any]:
        """Run one expiry sweep and return its report as a plain dict."""
        activity.logger.info("Running expiry sweep with a %d day window", warn_window_days)
        try:
            with self._deps.database_service.session_scope() as session:
                report = await self._deps.lifecycle_service(session).run_sweep(warn_window_days)
        except ConfigurationError as e:
            raise ApplicationError(str(e), type="ConfigurationError", non_retryable=True) from e
        return report.model_dump()
