"""
Rule registry and the built-in field rules.

A rule is a predicate ``(value, param) -> bool`` registered under a stable
name. Payload shapes refer to rules by name only, so new formats are added
by registering a predicate, never by touching the engine.
"""

import re
from typing import Any, Callable, Dict, Iterator, Optional

from shared.logging import get_logger

RulePredicate = Callable[[Any, Optional[str]], bool]

REQUIRED_RULE = "required"
DATETIME_RULE = "yyyy-mm-ddThh:mm:ss"

# Year 19xx/20xx, month 01-12, day 01-31 (no calendar check), 24h clock.
DATETIME_PATTERN = re.compile(
    r"(19|20)[0-9]{2}-(0[1-9]|1[012])-(0[1-9]|[12][0-9]|3[01])"
    r"T([01][0-9]|2[0-3]):([0-5][0-9]):([0-5][0-9])"
)
NUMERIC_PATTERN = re.compile(r"[-+]?[0-9]+(?:\.[0-9]+)?")
EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


class RuleRegistry:
    """Mapping of rule name to predicate.

    Written once at startup and then frozen; request handling only reads it.
    """

    def __init__(self):
        self.logger = get_logger("intake.validation.registry")
        self._rules: Dict[str, RulePredicate] = {}
        self._frozen = False

    def register(self, name: str, predicate: RulePredicate) -> None:
        """Register ``predicate`` under ``name``, replacing any previous entry."""
        if self._frozen:
            raise RuntimeError(f"Rule registry is frozen; cannot register '{name}'")
        if not name:
            raise ValueError("Rule name must not be empty")
        self._rules[name] = predicate
        self.logger.debug("Rule registered", rule=name)

    def freeze(self) -> "RuleRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> RulePredicate:
        try:
            return self._rules[name]
        except KeyError:
            raise LookupError(f"Unknown validation rule '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _measure(value: Any) -> Optional[float]:
    """Numbers compare by value, strings and collections by length."""
    if _is_number(value):
        return value
    if isinstance(value, (str, list, dict)):
        return len(value)
    return None


def is_present(value: Any, param: Optional[str] = None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def min_rule(value: Any, param: Optional[str]) -> bool:
    measured = _measure(value)
    return measured is not None and measured >= float(param)


def max_rule(value: Any, param: Optional[str]) -> bool:
    measured = _measure(value)
    return measured is not None and measured <= float(param)


def len_rule(value: Any, param: Optional[str]) -> bool:
    measured = _measure(value)
    return measured is not None and measured == float(param)


def oneof_rule(value: Any, param: Optional[str]) -> bool:
    options = (param or "").split()
    if isinstance(value, str) or _is_number(value):
        return str(value) in options
    return False


def numeric_rule(value: Any, param: Optional[str] = None) -> bool:
    if _is_number(value):
        return True
    return isinstance(value, str) and NUMERIC_PATTERN.fullmatch(value) is not None


def email_rule(value: Any, param: Optional[str] = None) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.fullmatch(value) is not None


def is_date_correct(value: Any, param: Optional[str] = None) -> bool:
    """Match ``YYYY-MM-DDThh:mm:ss``; the day is range-checked only."""
    return isinstance(value, str) and DATETIME_PATTERN.fullmatch(value) is not None


BUILTIN_RULES: Dict[str, RulePredicate] = {
    REQUIRED_RULE: is_present,
    "min": min_rule,
    "max": max_rule,
    "len": len_rule,
    "oneof": oneof_rule,
    "numeric": numeric_rule,
    "email": email_rule,
}


def build_rule_registry(freeze: bool = True) -> RuleRegistry:
    """Registry with the built-ins plus the custom date-time format rule."""
    registry = RuleRegistry()
    for name, predicate in BUILTIN_RULES.items():
        registry.register(name, predicate)
    registry.register(DATETIME_RULE, is_date_correct)
    if freeze:
        registry.freeze()
    return registry
