"""
Declarative payload validation.

Payload shapes are dataclasses whose fields carry their rules in field
metadata (see ``rule_field``). The engine decodes a JSON body into a shape,
then checks every field and reports all violations at once.
"""

import dataclasses
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from shared.errors import DecodeError, ValidationFailed
from shared.logging import get_logger
from .rules import REQUIRED_RULE, RuleRegistry

RULES_KEY = "rules"

T = TypeVar("T")


@dataclass(frozen=True)
class FieldRule:
    """A rule reference as declared on a field, e.g. ``max=50``."""

    name: str
    param: Optional[str] = None

    @classmethod
    def parse(cls, spec: str) -> "FieldRule":
        name, sep, param = spec.partition("=")
        return cls(name=name.strip(), param=param.strip() if sep else None)


def rule_field(*specs: str, default: Any = None) -> Any:
    """Declare a payload field with its validation rules."""
    rules = tuple(FieldRule.parse(spec) for spec in specs)
    return dataclasses.field(default=default, metadata={RULES_KEY: rules})


@dataclass(frozen=True)
class Violation:
    """One failed rule on one field."""

    shape: str
    field: str
    rule: str
    param: Optional[str] = None

    @property
    def message(self) -> str:
        return f"Field validation for '{self.field}' failed on the '{self.rule}' tag"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "rule": self.rule,
            "param": self.param,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"Key: '{self.shape}.{self.field}' Error:{self.message}"


def _type_name(expected: Any) -> str:
    if get_origin(expected) is Union:
        return "|".join(_type_name(arg) for arg in get_args(expected) if arg is not type(None))
    return getattr(expected, "__name__", str(expected))


def _conforms(value: Any, expected: Any) -> bool:
    if get_origin(expected) is Union:
        return any(_conforms(value, arg) for arg in get_args(expected) if arg is not type(None))
    if expected is bool:
        return isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(expected, type):
        return isinstance(value, expected)
    return True


class ValidationEngine:
    """Applies registry rules to decoded payloads."""

    def __init__(self, registry: RuleRegistry):
        self.registry = registry
        self.logger = get_logger("intake.validation.engine")
        self._field_cache: Dict[type, List[Tuple[str, Any, Tuple[FieldRule, ...]]]] = {}

    def prepare(self, *shapes: type) -> None:
        """Resolve shapes up front and fail fast on rules missing from the registry."""
        for shape in shapes:
            for name, _, rules in self._fields(shape):
                for rule in rules:
                    if rule.name not in self.registry:
                        raise LookupError(
                            f"{shape.__name__}.{name} uses unregistered rule '{rule.name}'"
                        )

    def decode(self, body: bytes, shape: Type[T]) -> T:
        """Decode a JSON object body into ``shape``; unknown keys are ignored."""
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            raise DecodeError("Malformed request body", details={"error": str(exc)}) from exc

        if not isinstance(data, dict):
            raise DecodeError(
                "Request body must be a JSON object",
                details={"received": type(data).__name__},
            )

        known = {name for name, _, _ in self._fields(shape)}
        return shape(**{key: value for key, value in data.items() if key in known})

    def check(self, payload: Any) -> List[Violation]:
        """Return every violation found in ``payload``, in field declaration order."""
        shape = type(payload)
        violations: List[Violation] = []

        for name, expected, rules in self._fields(shape):
            value = getattr(payload, name)
            rule_names = {rule.name for rule in rules}

            if not self.registry.get(REQUIRED_RULE)(value, None):
                if REQUIRED_RULE in rule_names:
                    violations.append(Violation(shape.__name__, name, REQUIRED_RULE))
                continue

            if not _conforms(value, expected):
                violations.append(Violation(shape.__name__, name, "type", _type_name(expected)))
                continue

            for rule in rules:
                if rule.name == REQUIRED_RULE:
                    continue
                if not self.registry.get(rule.name)(value, rule.param):
                    violations.append(Violation(shape.__name__, name, rule.name, rule.param))

        return violations

    def validate(self, payload: T) -> T:
        """Return ``payload`` unchanged or raise ``ValidationFailed`` listing every violation."""
        violations = self.check(payload)
        if violations:
            raise ValidationFailed(
                violations,
                details={
                    "shape": type(payload).__name__,
                    "violations": [str(v) for v in violations],
                },
            )
        return payload

    def _fields(self, shape: type) -> List[Tuple[str, Any, Tuple[FieldRule, ...]]]:
        cached = self._field_cache.get(shape)
        if cached is None:
            hints = get_type_hints(shape)
            cached = [
                (f.name, hints.get(f.name, Any), tuple(f.metadata.get(RULES_KEY, ())))
                for f in dataclasses.fields(shape)
            ]
            self._field_cache[shape] = cached
        return cached
