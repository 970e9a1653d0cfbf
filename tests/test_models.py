"""
Tests for the data models.

Covers validation of write payloads, wire encoding and decoding, and the
status mapping of check outcomes.
"""

import pytest
from datetime import datetime

from cachet_sync.errors import ValidationError
from cachet_sync.models import (
    BatchReport,
    CheckOutcome,
    Component,
    ComponentStatus,
    Incident,
    IncidentStatus,
    UnitResult,
)


# ─── Sample Payloads ──────────────────────────────────────────

COMPONENT_JSON = {
    "id": 7,
    "name": "API",
    "description": "Public REST API",
    "link": "https://api.example.com",
    "status": 4,
    "order": 2,
    "group_id": 5,
    "enabled": True,
    "created_at": "2026-10-18 22:15:03",
    "updated_at": "2026-10-19 08:00:00",
    "deleted_at": None,
    "status_name": "Major Outage",
    "tags": {"api": "API"},
}

INCIDENT_JSON = {
    "id": 11,
    "component_id": 7,
    "name": "API check is invalid",
    "status": 2,
    "visible": 1,
    "message": "GET /health returned 503",
    "created_at": "2026-10-19 09:12:44",
    "updated_at": "2026-10-19 09:12:44",
    "human_status": "Identified",
}


# ─── Tests ────────────────────────────────────────────────────


class TestComponentValidation:
    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError, match="Name of the component can not be empty."):
            Component(name="  ", status=1).to_payload()

    @pytest.mark.parametrize("status", [0, 5, -1])
    def test_out_of_range_status_rejected(self, status):
        with pytest.raises(ValidationError, match="Status of the component is invalid."):
            Component(name="API", status=status).validate()

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            Component(name="", status=1).validate()


class TestComponentWire:
    def test_payload_uses_snake_case(self):
        payload = Component(name="API", status=ComponentStatus.OPERATIONAL, group_id=5).to_payload()
        assert payload == {
            "name": "API",
            "status": 1,
            "description": None,
            "link": None,
            "order": 0,
            "group_id": 5,
            "enabled": True,
        }
        assert type(payload["status"]) is int

    def test_from_dict(self):
        component = Component.from_dict(COMPONENT_JSON)
        assert component.id == 7
        assert component.status == ComponentStatus.MAJOR_OUTAGE
        assert component.group_id == 5
        assert component.created_at == datetime(2026, 10, 18, 22, 15, 3)
        assert component.deleted_at is None
        assert component.status_name == "Major Outage"
        assert component.tags == ("API",)

    def test_from_dict_tolerates_missing_fields(self):
        component = Component.from_dict({"id": 1, "name": "API"})
        assert component.status == ComponentStatus.OPERATIONAL
        assert component.group_id == 0
        assert component.created_at is None

    def test_garbage_timestamp_becomes_none(self):
        component = Component.from_dict({"id": 1, "name": "API", "created_at": "not a date"})
        assert component.created_at is None


class TestIncidentValidation:
    def test_valid_incident(self):
        incident = Incident(name="API check is invalid", message="down", status=2)
        assert incident.validate() is incident

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"name": ""}, "Name of the incident can not be empty."),
            ({"message": " "}, "Message of the incident can not be empty."),
            ({"status": 9}, "Status of the incident is invalid."),
            ({"visible": 2}, "Visible flag of the incident is invalid."),
            ({"component_status": 0}, "Status of the component is invalid."),
        ],
    )
    def test_invalid_fields(self, kwargs, message):
        fields = {"name": "API check is invalid", "message": "down", "status": 2}
        fields.update(kwargs)
        with pytest.raises(ValidationError, match=message):
            Incident(**fields).to_payload()


class TestIncidentWire:
    def test_payload(self):
        payload = Incident(
            name="API check is invalid",
            message="down",
            status=IncidentStatus.IDENTIFIED,
            component_id=7,
            component_status=ComponentStatus.MAJOR_OUTAGE,
            notify=True,
        ).to_payload()
        assert payload["component_id"] == 7
        assert payload["component_status"] == 4
        assert payload["status"] == 2
        assert payload["notify"] is True
        assert "created_at" not in payload
        assert "template" not in payload

    def test_payload_with_created_at_and_template(self):
        payload = Incident(
            name="n",
            message="m",
            status=1,
            created_at=datetime(2026, 10, 19, 7, 5, 0),
            template="outage",
            vars=("API", "EU"),
        ).to_payload()
        assert payload["created_at"] == "2026-10-19 07:05:00"
        assert payload["template"] == "outage"
        assert payload["vars"] == ["API", "EU"]

    def test_from_dict(self):
        incident = Incident.from_dict(INCIDENT_JSON)
        assert incident.id == 11
        assert incident.component_id == 7
        assert incident.status == IncidentStatus.IDENTIFIED
        assert incident.created_at.date() == datetime(2026, 10, 19).date()
        assert incident.human_status == "Identified"


class TestCheckOutcome:
    def test_valid_mapping(self):
        outcome = CheckOutcome(name="API", valid=True)
        assert outcome.component_status == ComponentStatus.OPERATIONAL
        assert outcome.incident_status == IncidentStatus.FIXED

    def test_invalid_mapping(self):
        outcome = CheckOutcome(name="API", valid=False)
        assert outcome.component_status == ComponentStatus.MAJOR_OUTAGE
        assert outcome.incident_status == IncidentStatus.IDENTIFIED


class TestBatchReport:
    def test_ok_and_failures(self):
        good = UnitResult(CheckOutcome("A", True))
        bad = UnitResult(CheckOutcome("B", False), error=RuntimeError("boom"))
        report = BatchReport([good, bad])
        assert not report.ok
        assert report.failures == [bad]
        assert report.succeeded == [good]

    def test_empty_report_is_ok(self):
        assert BatchReport().ok
