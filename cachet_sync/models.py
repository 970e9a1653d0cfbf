"""
Data models for the Cachet integration.

Defines the remote records (components and incidents) with their wire
encoding, the check outcomes fed in by the check framework, and the
per-batch report handed back to the caller.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as dateutil_parser

from cachet_sync.errors import ValidationError

# Cachet writes and expects "2016-05-03 12:41:09"
WIRE_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class ComponentStatus(enum.IntEnum):
    OPERATIONAL = 1
    PERFORMANCE_ISSUES = 2
    PARTIAL_OUTAGE = 3
    MAJOR_OUTAGE = 4


class IncidentStatus(enum.IntEnum):
    INVESTIGATING = 1
    IDENTIFIED = 2
    WATCHING = 3
    FIXED = 4


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a wire timestamp, returning None for missing or garbage values."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return dateutil_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(WIRE_DATETIME_FORMAT) if value else None


def _check_status(value: int, label: str) -> None:
    if not isinstance(value, int) or value < 1 or value > 4:
        raise ValidationError(f"Status of the {label} is invalid.")


@dataclass(frozen=True)
class Component:
    """
    A monitored target as shown on the status page.

    Attributes:
        name: Display name; together with group_id the logical identity.
        status: ComponentStatus value (1-4).
        description: Optional free text.
        link: Optional hyperlink to the target.
        order: Ordering hint (0 by default).
        group_id: The component group it belongs to (0 = no group).
        enabled: Whether the component is enabled.
        id: Assigned by the server once created.
    """

    name: str
    status: int
    description: Optional[str] = None
    link: Optional[str] = None
    order: int = 0
    group_id: int = 0
    enabled: bool = True
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    status_name: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def validate(self) -> "Component":
        if not self.name or not self.name.strip():
            raise ValidationError("Name of the component can not be empty.")
        _check_status(self.status, "component")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Validate and encode the writable fields for POST/PUT."""
        self.validate()
        return {
            "name": self.name,
            "status": int(self.status),
            "description": self.description,
            "link": self.link,
            "order": self.order,
            "group_id": self.group_id,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Component":
        tags = data.get("tags") or ()
        if isinstance(tags, dict):
            tags = tags.values()
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            status=int(data.get("status") or ComponentStatus.OPERATIONAL),
            description=data.get("description"),
            link=data.get("link"),
            order=int(data.get("order") or 0),
            group_id=int(data.get("group_id") or 0),
            enabled=bool(data.get("enabled", True)),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            deleted_at=_parse_datetime(data.get("deleted_at")),
            status_name=data.get("status_name"),
            tags=tuple(str(t) for t in tags),
        )


@dataclass(frozen=True)
class Incident:
    """
    A reported change in health for one component.

    Attributes:
        name: Incident title, e.g. "API check is invalid".
        message: Markdown message explaining the incident.
        status: IncidentStatus value (1-4).
        visible: 1 if publicly visible, 0 otherwise.
        component_id: The component this incident is attached to.
        component_status: ComponentStatus applied alongside the incident.
        notify: Whether Cachet should notify subscribers.
        created_at: Creation time, used for daily bucketing.
        template: Optional template slug.
        vars: Variables passed to the template.
    """

    name: str
    message: str
    status: int
    visible: int = 1
    component_id: int = 0
    component_status: int = ComponentStatus.OPERATIONAL
    notify: bool = False
    created_at: Optional[datetime] = None
    template: Optional[str] = None
    vars: Tuple[str, ...] = ()
    id: Optional[int] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    human_status: Optional[str] = None

    def validate(self) -> "Incident":
        if not self.name or not self.name.strip():
            raise ValidationError("Name of the incident can not be empty.")
        if not self.message or not self.message.strip():
            raise ValidationError("Message of the incident can not be empty.")
        _check_status(self.status, "incident")
        if self.visible not in (0, 1):
            raise ValidationError("Visible flag of the incident is invalid.")
        _check_status(self.component_status, "component")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Validate and encode the writable fields for POST/PUT."""
        self.validate()
        payload: Dict[str, Any] = {
            "name": self.name,
            "message": self.message,
            "status": int(self.status),
            "visible": self.visible,
            "component_id": self.component_id,
            "component_status": int(self.component_status),
            "notify": self.notify,
        }
        if self.created_at:
            payload["created_at"] = _format_datetime(self.created_at)
        if self.template:
            payload["template"] = self.template
            payload["vars"] = list(self.vars)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Incident":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            message=data.get("message") or "",
            status=int(data.get("status") or IncidentStatus.INVESTIGATING),
            visible=int(data.get("visible", 1) or 0),
            component_id=int(data.get("component_id") or 0),
            component_status=int(data.get("component_status") or ComponentStatus.OPERATIONAL),
            notify=bool(data.get("notify", False)),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            deleted_at=_parse_datetime(data.get("deleted_at")),
            scheduled_at=_parse_datetime(data.get("scheduled_at")),
            human_status=data.get("human_status"),
            template=data.get("template"),
            vars=tuple(data.get("vars") or ()),
        )


# ─── Check framework input ────────────────────────────────────


@dataclass(frozen=True)
class CheckOutcome:
    """One target's result from a single evaluation pass."""

    name: str
    valid: bool
    description: str = ""
    group: Optional[str] = None

    @property
    def component_status(self) -> ComponentStatus:
        return ComponentStatus.OPERATIONAL if self.valid else ComponentStatus.MAJOR_OUTAGE

    @property
    def incident_status(self) -> IncidentStatus:
        return IncidentStatus.FIXED if self.valid else IncidentStatus.IDENTIFIED


@dataclass(frozen=True)
class IterationResult:
    """An ordered batch of check outcomes for one evaluation pass."""

    outcomes: Tuple[CheckOutcome, ...] = ()

    def __iter__(self):
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)


# ─── Reconciliation options and results ───────────────────────


@dataclass(frozen=True)
class ReconcileOptions:
    """
    Flags shared by every unit of a batch.

    Attributes:
        notify: Ask Cachet to notify subscribers of created/updated
            incidents (False by default).
        save_valid_incidents: Report a valid check even when no incident
            was ever raised for the component (False by default).
        update_if_statuses_are_the_same: Write components and incidents
            even when their status did not change (False by default).
    """

    notify: bool = False
    save_valid_incidents: bool = False
    update_if_statuses_are_the_same: bool = False


@dataclass(frozen=True)
class ComponentOptions:
    """
    Optional component attributes.

    A field left as None is not touched on update, and takes the
    Component default on create.
    """

    description: Optional[str] = None
    link: Optional[str] = None
    order: Optional[int] = None
    enabled: Optional[bool] = None

    def apply(self, component: Component) -> Component:
        """Return ``component`` with every set field overridden."""
        changes = {k: v for k, v in asdict(self).items() if v is not None}
        return replace(component, **changes)


class ReconcileAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class IncidentDecision:
    """What the reconciler did for one component, and the resulting record."""

    action: ReconcileAction
    incident: Optional[Incident] = None
    reason: str = ""


@dataclass
class UnitResult:
    """Outcome of reconciling one check outcome."""

    outcome: CheckOutcome
    component: Optional[Component] = None
    decision: Optional[IncidentDecision] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Aggregate result of one save_iteration call."""

    results: List[UnitResult] = field(default_factory=list)

    @property
    def failures(self) -> List[UnitResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> List[UnitResult]:
        return [r for r in self.results if r.ok]

    @property
    def ok(self) -> bool:
        return not self.failures
