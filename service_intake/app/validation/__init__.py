"""
Declarative payload validation for the intake gateway.
"""

from .engine import FieldRule, ValidationEngine, Violation, rule_field
from .rules import DATETIME_RULE, RuleRegistry, build_rule_registry, is_date_correct

__all__ = [
    "DATETIME_RULE",
    "FieldRule",
    "RuleRegistry",
    "ValidationEngine",
    "Violation",
    "build_rule_registry",
    "is_date_correct",
    "rule_field",
]
