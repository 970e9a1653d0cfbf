"""
CachetIntegration, the iteration orchestrator.

Fans a batch of check outcomes out to one task per outcome, each running
group resolution -> component resolution -> incident reconciliation
strictly in sequence. Outcomes naming the same component (name and
group) take turns on a per-batch lock, so a batch never creates a
component twice. Everything else runs concurrently, and one task's
failure never cancels its siblings.

Usage:
    config = ConfigBuilder(url, access_token=token).build()
    async with CachetIntegration(config) as cachet:
        report = await cachet.save_iteration(iteration, ReconcileOptions(notify=True))
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from cachet_sync.client import CachetClient, CachetService
from cachet_sync.config import ConfigBuilder, IntegrationConfig
from cachet_sync.errors import BatchFailedError, ValidationError
from cachet_sync.grouping import resolve_group_id
from cachet_sync.models import (
    BatchReport,
    CheckOutcome,
    Component,
    Incident,
    IterationResult,
    ReconcileOptions,
    UnitResult,
)
from cachet_sync.reconciler import IncidentReconciler
from cachet_sync.resolver import ComponentResolver

logger = logging.getLogger(__name__)


class CachetIntegration:
    """
    Keeps a Cachet status page in line with check results.

    Attributes:
        config: Immutable integration configuration.
        service: Remote Cachet operations, built by the configured
            service factory (the aiohttp client by default).
    """

    def __init__(self, config: IntegrationConfig) -> None:
        if config is None:
            raise ValidationError("Cachet Integration configuration has not been provided.")
        self.config = config
        factory = config.service_factory or CachetClient
        self.service: CachetService = factory(config)
        self._resolver = ComponentResolver(self.service)
        self._reconciler = IncidentReconciler(self.service, config.clock)

    @classmethod
    def create(
        cls,
        api_url: str,
        access_token: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        configurator: Optional[Callable[[ConfigBuilder], None]] = None,
    ) -> "CachetIntegration":
        """Build the configuration with an optional configurator callback."""
        builder = ConfigBuilder(api_url, access_token=access_token, username=username, password=password)
        if configurator is not None:
            configurator(builder)
        return cls(builder.build())

    async def __aenter__(self) -> "CachetIntegration":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        close = getattr(self.service, "close", None)
        if close is not None:
            await close()

    # ─── Reconciliation ───────────────────────────────────────

    async def save_iteration(
        self,
        iteration: IterationResult,
        options: Optional[ReconcileOptions] = None,
        deadline: Optional[float] = None,
    ) -> BatchReport:
        """
        Reconcile every outcome of ``iteration`` concurrently.

        Args:
            iteration: The batch of check outcomes.
            options: Flags shared by all units.
            deadline: Seconds allowed for the whole batch. Units still
                running when it expires are cancelled and reported failed.

        Returns:
            A BatchReport with one UnitResult per outcome, in batch order.

        Raises:
            BatchFailedError: in strict (fail_fast) mode when any unit failed.
        """
        options = options or ReconcileOptions()
        outcomes: List[CheckOutcome] = list(iteration)
        locks: Dict[Tuple[str, int], asyncio.Lock] = {}
        tasks = []
        for outcome in outcomes:
            lock = locks.setdefault(self._component_key(outcome), asyncio.Lock())
            tasks.append(
                asyncio.create_task(
                    self._run_unit(outcome, options, lock), name=f"cachet-{outcome.name}"
                )
            )

        if tasks:
            try:
                _, pending = await asyncio.wait(tasks, timeout=deadline)
            except asyncio.CancelledError:
                for task in tasks:
                    task.cancel()
                raise
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        report = BatchReport()
        for outcome, task in zip(outcomes, tasks):
            if task.cancelled():
                error = asyncio.TimeoutError(f"Deadline of {deadline}s expired")
                logger.warning("Check result '%s' did not finish before the deadline", outcome.name)
                report.results.append(UnitResult(outcome, error=error))
            else:
                report.results.append(task.result())

        logger.info(
            "Reconciled %d of %d check results", len(report.succeeded), len(report.results)
        )
        if self.config.fail_fast and not report.ok:
            raise BatchFailedError(report)
        return report

    async def save_check_result(
        self,
        outcome: CheckOutcome,
        options: Optional[ReconcileOptions] = None,
    ) -> UnitResult:
        """Reconcile one outcome; errors propagate to the caller."""
        options = options or ReconcileOptions()
        group_id = resolve_group_id(outcome.group, self.config.groups, self.config.group_id)
        component = await self._resolver.resolve(
            outcome.name,
            group_id,
            outcome.component_status,
            update_if_same_status=options.update_if_statuses_are_the_same,
        )
        decision = await self._reconciler.reconcile(component.id, outcome, options)
        return UnitResult(outcome, component=component, decision=decision)

    def _component_key(self, outcome: CheckOutcome) -> Tuple[str, int]:
        return outcome.name, resolve_group_id(outcome.group, self.config.groups, self.config.group_id)

    async def _run_unit(
        self, outcome: CheckOutcome, options: ReconcileOptions, lock: asyncio.Lock
    ) -> UnitResult:
        try:
            async with lock:
                return await self.save_check_result(outcome, options)
        except Exception as exc:
            logger.warning("Failed to reconcile '%s': %s", outcome.name, exc)
            return UnitResult(outcome, error=exc)

    # ─── Pass-through operations ──────────────────────────────

    async def get_component(self, component_id: int) -> Optional[Component]:
        return await self.service.get_component(component_id)

    async def get_component_by_name(self, name: str, group_id: int = 0) -> Optional[Component]:
        return await self.service.get_component_by_name(name, group_id)

    async def get_components(self, name: str) -> List[Component]:
        return await self.service.get_components(name)

    async def create_component(self, component: Component) -> Optional[Component]:
        return await self.service.create_component(component.validate())

    async def update_component(self, component_id: int, component: Component) -> Optional[Component]:
        return await self.service.update_component(component_id, component.validate())

    async def delete_component(self, component_id: int) -> bool:
        return await self.service.delete_component(component_id)

    async def get_incidents(self, component_id: int) -> List[Incident]:
        return await self.service.get_incidents(component_id)

    async def create_incident(self, incident: Incident) -> Optional[Incident]:
        return await self.service.create_incident(incident.validate())

    async def update_incident(self, incident_id: int, incident: Incident) -> Optional[Incident]:
        return await self.service.update_incident(incident_id, incident.validate())

    async def delete_incident(self, incident_id: int) -> bool:
        return await self.service.delete_incident(incident_id)
