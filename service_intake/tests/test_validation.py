"""
Unit tests for the rule registry and validation engine.
"""

import json
import pytest
from dataclasses import dataclass
from typing import Optional

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_intake.app.models.payloads import Credentials, ServiceOrder, ServiceRequest, ServiceStatus
from service_intake.app.validation.engine import FieldRule, ValidationEngine, Violation, rule_field
from service_intake.app.validation.rules import (
    DATETIME_RULE,
    RuleRegistry,
    build_rule_registry,
    is_date_correct,
)
from shared.errors import DecodeError, ValidationFailed


def _valid_order(**overrides):
    data = {
        "order_id": "ORD-1",
        "request_id": "REQ-1",
        "dealer_code": "D001",
        "order_date": "2021-06-15T13:45:59",
        "amount": 1250.5,
        "currency": "EUR",
    }
    data.update(overrides)
    return ServiceOrder(**data)


class TestDateTimeRule:
    """The custom date-time format predicate."""

    @pytest.mark.parametrize("value", [
        "2021-06-15T13:45:59",
        "1999-12-31T23:59:59",
        "2000-01-01T00:00:00",
        "2021-02-30T10:00:00",
        "2021-02-31T00:00:00",
    ])
    def test_accepts(self, value):
        """Test well-formed values pass, including days not in the month."""
        assert is_date_correct(value) is True

    @pytest.mark.parametrize("value", [
        "2021-13-01T00:00:00",
        "99-01-01T00:00:00",
        "2021-06-15 13:45:59",
        "1899-06-15T13:45:59",
        "2121-06-15T13:45:59",
        "2021-00-15T13:45:59",
        "2021-06-00T10:00:00",
        "2021-06-32T13:45:59",
        "2021-06-15T24:00:00",
        "2021-06-15T13:60:00",
        "2021-06-15T13:45:60",
        "2021-06-15T13:45:59Z",
        "2021-06-15T13:45:59\n",
        "2021-6-15T13:45:59",
        "",
    ])
    def test_rejects(self, value):
        """Test malformed values fail."""
        assert is_date_correct(value) is False

    def test_rejects_non_string(self):
        """Test non-string values fail."""
        assert is_date_correct(20210615) is False
        assert is_date_correct(None) is False


class TestRuleRegistry:
    """Registry behaviour."""

    def test_default_registry_has_custom_rule(self):
        """Test the date-time rule is registered under its stable name."""
        registry = build_rule_registry()

        assert DATETIME_RULE in registry
        assert registry.get(DATETIME_RULE) is is_date_correct
        assert registry.frozen is True

    def test_frozen_registry_rejects_registration(self):
        """Test no rule can be added once request handling starts."""
        registry = build_rule_registry()

        with pytest.raises(RuntimeError):
            registry.register("upper", lambda value, param: True)

    def test_reregistration_is_idempotent_by_name(self):
        """Test registering the same name twice keeps a single entry."""
        registry = RuleRegistry()
        registry.register(DATETIME_RULE, is_date_correct)
        registry.register(DATETIME_RULE, is_date_correct)

        assert len(registry) == 1
        assert list(registry) == [DATETIME_RULE]

    def test_unknown_rule_lookup(self):
        """Test looking up a missing rule raises LookupError."""
        with pytest.raises(LookupError):
            RuleRegistry().get("missing")

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            RuleRegistry().register("", lambda value, param: True)


class TestFieldRule:
    """Rule declaration parsing."""

    def test_parse_with_param(self):
        assert FieldRule.parse("max=50") == FieldRule("max", "50")

    def test_parse_without_param(self):
        assert FieldRule.parse("required") == FieldRule("required", None)

    def test_parse_keeps_spaces_in_param(self):
        assert FieldRule.parse("oneof=new done") == FieldRule("oneof", "new done")


class TestValidationEngine:
    """Field rule evaluation."""

    @pytest.fixture
    def engine(self):
        engine = ValidationEngine(build_rule_registry())
        engine.prepare(Credentials, ServiceRequest, ServiceOrder, ServiceStatus)
        return engine

    def test_valid_order(self, engine):
        """Test a conforming order has no violations."""
        order = _valid_order()

        assert engine.check(order) == []
        assert engine.validate(order) is order

    def test_reports_all_violations(self, engine):
        """Test every failing field is reported, not just the first."""
        order = _valid_order(order_id=None, order_date="2021-13-01T00:00:00", amount=-5, currency="EURO")

        violations = engine.check(order)

        assert [(v.field, v.rule) for v in violations] == [
            ("order_id", "required"),
            ("order_date", DATETIME_RULE),
            ("amount", "min"),
            ("currency", "len"),
        ]

    def test_validate_raises_with_all_violations(self, engine):
        """Test ValidationFailed carries the full violation list."""
        order = _valid_order(order_id="", dealer_code=None, order_date="2021-06-15 13:45:59")

        with pytest.raises(ValidationFailed) as exc_info:
            engine.validate(order)

        error = exc_info.value
        assert len(error.violations) == 3
        assert (
            "Key: 'ServiceOrder.order_date' Error:Field validation for 'order_date' "
            "failed on the 'yyyy-mm-ddThh:mm:ss' tag"
        ) in error.message
        assert error.details["shape"] == "ServiceOrder"

    def test_calendar_invalid_date_passes(self, engine):
        """Test the date rule is a format check only."""
        assert engine.check(_valid_order(order_date="2021-02-30T10:00:00")) == []

    def test_type_mismatch(self, engine):
        """Test a wrongly typed value reports a single type violation."""
        request = ServiceRequest(
            request_id="REQ-1",
            dealer_code="D001",
            client_name="Ann",
            phone="79001234567",
            mileage="a lot",
        )

        violations = engine.check(request)

        assert violations == [Violation("ServiceRequest", "mileage", "type", "int")]

    def test_bool_is_not_a_number(self, engine):
        """Test JSON booleans do not pass numeric type checks."""
        violations = engine.check(_valid_order(amount=True))

        assert [(v.field, v.rule) for v in violations] == [("amount", "type")]

    def test_int_accepted_for_float_field(self, engine):
        assert engine.check(_valid_order(amount=100)) == []

    def test_optional_fields_skip_rules_when_absent(self, engine):
        """Test absent optional fields are not checked."""
        request = ServiceRequest(
            request_id="REQ-1",
            dealer_code="D001",
            client_name="Ann",
            phone="+79001234567",
        )

        assert engine.check(request) == []

    def test_optional_fields_checked_when_present(self, engine):
        """Test present optional fields are checked."""
        request = ServiceRequest(
            request_id="REQ-1",
            dealer_code="D001",
            client_name="Ann",
            phone="79001234567",
            email="not-an-email",
            vin="SHORT",
            mileage=-1,
        )

        violations = engine.check(request)

        assert [(v.field, v.rule) for v in violations] == [
            ("email", "email"),
            ("vin", "len"),
            ("mileage", "min"),
        ]

    def test_oneof(self, engine):
        status = ServiceStatus(order_id="ORD-1", status="lost", status_date="2021-06-15T13:45:59")

        violations = engine.check(status)

        assert violations == [Violation("ServiceStatus", "status", "oneof", "new in_progress done cancelled")]

    def test_numeric_phone(self, engine):
        request = ServiceRequest(request_id="R", dealer_code="D", client_name="Ann", phone="call me")

        assert [(v.field, v.rule) for v in engine.check(request)] == [("phone", "numeric")]

    def test_max_length(self, engine):
        credentials = Credentials(login="x" * 101, secret="s")

        assert [(v.field, v.rule, v.param) for v in engine.check(credentials)] == [("login", "max", "100")]

    def test_violation_to_dict(self):
        violation = Violation("ServiceOrder", "amount", "min", "0")

        assert violation.to_dict() == {
            "field": "amount",
            "rule": "min",
            "param": "0",
            "message": "Field validation for 'amount' failed on the 'min' tag",
        }

    def test_prepare_rejects_unregistered_rule(self):
        """Test shapes referring to unknown rules fail at startup."""

        @dataclass
        class Broken:
            code: Optional[str] = rule_field("required", "uppercase")

        engine = ValidationEngine(build_rule_registry())

        with pytest.raises(LookupError):
            engine.prepare(Broken)

    def test_custom_rule_is_looked_up_by_name(self):
        """Test new formats need only a registry entry."""

        @dataclass
        class Coded:
            code: Optional[str] = rule_field("required", "uppercase")

        registry = build_rule_registry(freeze=False)
        registry.register("uppercase", lambda value, param: isinstance(value, str) and value.isupper())
        engine = ValidationEngine(registry.freeze())
        engine.prepare(Coded)

        assert engine.check(Coded(code="ABC")) == []
        assert [v.rule for v in engine.check(Coded(code="abc"))] == ["uppercase"]


class TestDecode:
    """Body decoding into payload shapes."""

    @pytest.fixture
    def engine(self):
        return ValidationEngine(build_rule_registry())

    def test_decode_object(self, engine):
        body = json.dumps({"login": "a", "secret": "b", "extra": 1}).encode()

        credentials = engine.decode(body, Credentials)

        assert credentials == Credentials(login="a", secret="b")

    def test_decode_missing_fields_default_to_none(self, engine):
        order = engine.decode(b'{"order_id": "ORD-1"}', ServiceOrder)

        assert order.order_id == "ORD-1"
        assert order.amount is None

    @pytest.mark.parametrize("body", [b"", b"{", b"not json", b"\xff\xfe"])
    def test_malformed_body(self, engine, body):
        """Test unparsable bodies raise DecodeError."""
        with pytest.raises(DecodeError):
            engine.decode(body, Credentials)

    def test_deeply_nested_body(self, engine):
        """Test bodies nested past the parser's depth limit are malformed, not a crash."""
        with pytest.raises(DecodeError):
            engine.decode(b"[" * 200000, Credentials)

    @pytest.mark.parametrize("body", [b"[]", b'"text"', b"42", b"null"])
    def test_non_object_body(self, engine, body):
        """Test JSON that is not an object raises DecodeError."""
        with pytest.raises(DecodeError):
            engine.decode(body, Credentials)
