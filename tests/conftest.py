"""
Shared fixtures: an in-memory Cachet service and a controllable clock.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

import pytest

from cachet_sync.models import Component, Incident


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeCachetService:
    """
    In-memory CachetService.

    Records every write in ``writes`` so tests can assert on idempotence.
    Names listed in ``failing`` make create/update return None, as the
    lenient client does on a rejected request; names in ``slow`` hang.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.components: Dict[int, Component] = {}
        self.incidents: Dict[int, Incident] = {}
        self.writes: List[Tuple[str, int]] = []
        self.failing: Set[str] = set()
        self.slow: Set[str] = set()
        self._next_id = 1

    def _id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    async def _maybe_hang(self, name: str) -> None:
        if name in self.slow:
            await asyncio.sleep(30)

    # ─── Components ───────────────────────────────────────────

    async def get_component(self, component_id: int) -> Optional[Component]:
        return self.components.get(component_id)

    async def get_component_by_name(self, name: str, group_id: int) -> Optional[Component]:
        await self._maybe_hang(name)
        for component in await self.get_components(name):
            if component.group_id == group_id:
                return component
        return None

    async def get_components(self, name: str) -> List[Component]:
        matches = [c for c in self.components.values() if c.name == name]
        return sorted(matches, key=lambda c: (c.created_at, c.id), reverse=True)

    async def create_component(self, component: Component) -> Optional[Component]:
        if component.name in self.failing:
            return None
        created = replace(component, id=self._id(), created_at=self.clock())
        self.components[created.id] = created
        self.writes.append(("create_component", created.id))
        return created

    async def update_component(self, component_id: int, component: Component) -> Optional[Component]:
        if component.name in self.failing or component_id not in self.components:
            return None
        previous = self.components[component_id]
        updated = replace(component, id=component_id, created_at=previous.created_at, updated_at=self.clock())
        self.components[component_id] = updated
        self.writes.append(("update_component", component_id))
        return updated

    async def delete_component(self, component_id: int) -> bool:
        self.writes.append(("delete_component", component_id))
        return self.components.pop(component_id, None) is not None

    # ─── Incidents ────────────────────────────────────────────

    async def get_incidents(self, component_id: int) -> List[Incident]:
        matches = [i for i in self.incidents.values() if i.component_id == component_id]
        return sorted(matches, key=lambda i: (i.created_at, i.id), reverse=True)

    async def create_incident(self, incident: Incident) -> Optional[Incident]:
        created = replace(incident, id=self._id(), created_at=self.clock())
        self.incidents[created.id] = created
        self.writes.append(("create_incident", created.id))
        return created

    async def update_incident(self, incident_id: int, incident: Incident) -> Optional[Incident]:
        if incident_id not in self.incidents:
            return None
        previous = self.incidents[incident_id]
        updated = replace(incident, id=incident_id, created_at=previous.created_at, updated_at=self.clock())
        self.incidents[incident_id] = updated
        self.writes.append(("update_incident", incident_id))
        return updated

    async def delete_incident(self, incident_id: int) -> bool:
        self.writes.append(("delete_incident", incident_id))
        return self.incidents.pop(incident_id, None) is not None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 9, 30, 0))


@pytest.fixture
def service(clock: FakeClock) -> FakeCachetService:
    return FakeCachetService(clock)
