"""
Component Resolver.

Finds the component for a (name, group) pair, creating it on first sight
and rewriting it only when its status changes.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from cachet_sync.client import CachetService
from cachet_sync.errors import ReconciliationError
from cachet_sync.models import Component, ComponentOptions

logger = logging.getLogger(__name__)


class ComponentResolver:
    def __init__(self, service: CachetService) -> None:
        self.service = service

    async def resolve(
        self,
        name: str,
        group_id: int,
        status: int,
        options: Optional[ComponentOptions] = None,
        update_if_same_status: bool = False,
    ) -> Component:
        """
        Return the up-to-date component for ``name`` within ``group_id``.

        The lookup always precedes the write, so a single pass never
        creates two components for the same pair. An existing component
        already at ``status`` is returned untouched unless
        ``update_if_same_status`` is set.

        Raises:
            ValidationError: name is empty or status outside 1-4.
            ReconciliationError: the create/update returned no record.
        """
        options = options or ComponentOptions()
        desired = options.apply(Component(name=name, status=status, group_id=group_id)).validate()

        existing = await self.service.get_component_by_name(name, group_id)
        if existing is None:
            created = await self.service.create_component(desired)
            if created is None:
                raise ReconciliationError(f"Component '{name}' could not be created.")
            logger.info("Created component '%s' (id=%s, group=%s)", name, created.id, group_id)
            return created

        if existing.status == status and not update_if_same_status:
            logger.debug("Component '%s' already has status %s, skipping", name, status)
            return existing

        # Attributes the caller did not set keep their remote values
        changed = options.apply(replace(existing, status=status, group_id=group_id))
        updated = await self.service.update_component(existing.id, changed)
        if updated is None:
            raise ReconciliationError(f"Component '{name}' (id={existing.id}) could not be updated.")
        logger.info(
            "Updated component '%s' (id=%s) status %s -> %s",
            name, existing.id, existing.status, status,
        )
        return updated
