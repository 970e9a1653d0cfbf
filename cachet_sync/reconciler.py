"""
Incident Reconciler: decides whether a check outcome becomes a new
incident, an update to today's incident, or nothing at all.

Decision rules, in order:
  1. A valid outcome for a component that never had an incident is not
     reported, unless valid incidents are explicitly saved.
  2. An outcome whose incident status equals the newest incident's status
     is not reported, unless updates on equal statuses are forced.
  3. Incidents are bucketed per calendar day: today's incident for the
     component is updated in place, otherwise a new one is created.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from cachet_sync.client import CachetService
from cachet_sync.config import Clock
from cachet_sync.errors import ReconciliationError
from cachet_sync.models import (
    CheckOutcome,
    Incident,
    IncidentDecision,
    ReconcileAction,
    ReconcileOptions,
)

logger = logging.getLogger(__name__)


def incident_name(outcome: CheckOutcome) -> str:
    return f"{outcome.name} check is {'valid' if outcome.valid else 'invalid'}"


def _local_date(value: datetime, today: datetime) -> date:
    """Date of ``value`` as seen from the clock's timezone."""
    if value.tzinfo is not None and today.tzinfo is not None:
        return value.astimezone(today.tzinfo).date()
    if value.tzinfo is not None:
        # Aware server timestamp vs naive local clock
        return value.astimezone().date()
    return value.date()


def find_todays_incident(incidents: List[Incident], today: datetime) -> Optional[Incident]:
    """Newest incident created on the same calendar day as ``today``."""
    for incident in incidents:
        if incident.created_at and _local_date(incident.created_at, today) == today.date():
            return incident
    return None


class IncidentReconciler:
    """
    Attributes:
        service: Remote Cachet operations.
        clock: Returns the current time; only its date is used.
    """

    def __init__(self, service: CachetService, clock: Clock) -> None:
        self.service = service
        self.clock = clock

    async def reconcile(
        self,
        component_id: int,
        outcome: CheckOutcome,
        options: Optional[ReconcileOptions] = None,
    ) -> IncidentDecision:
        options = options or ReconcileOptions()
        today = self.clock()
        incident_status = outcome.incident_status

        incidents = [
            i for i in await self.service.get_incidents(component_id)
            if i.component_id == component_id
        ]
        existing_status = incidents[0].status if incidents else None

        if outcome.valid and existing_status is None and not options.save_valid_incidents:
            logger.debug("'%s' is valid and was never reported, skipping incident", outcome.name)
            return IncidentDecision(ReconcileAction.SKIPPED, reason="no previous incident")

        if existing_status == incident_status and not options.update_if_statuses_are_the_same:
            logger.debug("'%s' incident status unchanged (%s), skipping", outcome.name, incident_status)
            return IncidentDecision(ReconcileAction.SKIPPED, incidents[0], reason="status unchanged")

        name = incident_name(outcome)
        desired = Incident(
            name=name,
            message=(outcome.description or "").strip() or name,
            status=incident_status,
            component_id=component_id,
            component_status=outcome.component_status,
            notify=options.notify,
        )

        current = find_todays_incident(incidents, today)
        if current is None:
            created = await self.service.create_incident(desired)
            if created is None:
                raise ReconciliationError(f"Incident for '{outcome.name}' could not be created.")
            logger.info("Created incident '%s' (id=%s)", name, created.id)
            return IncidentDecision(ReconcileAction.CREATED, created)

        updated = await self.service.update_incident(current.id, desired)
        if updated is None:
            raise ReconciliationError(
                f"Incident {current.id} for '{outcome.name}' could not be updated."
            )
        logger.info("Updated incident '%s' (id=%s)", name, current.id)
        return IncidentDecision(ReconcileAction.UPDATED, updated)
