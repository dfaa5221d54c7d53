"""
Targeting rule evaluation

A targeting rule is a tree of leaf comparisons joined by allOf / anyOf
combinators; the empty rule matches every profile. Evaluation never raises
for bad data: a missing attribute, an unknown operator or a value that cannot
be compared turns the leaf into a non-match and the cause is recorded as a
reason for the admin preview.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from .field_mapper import FieldMapper, get_default_field_mapper
from .models import AllOfRule, AnyOfRule, EmptyRule, LeafRule, MemberProfile, RuleResult


# Admin console operator names
OPERATOR_ALIASES = {
    'equals': 'eq',
    'not_equals': 'neq',
    'greater_than': 'gt',
    'greater_than_or_equal': 'gte',
    'less_than': 'lt',
    'less_than_or_equal': 'lte',
    'not_contains': 'notContains',
    'is_true': 'isTrue',
    'is_false': 'isFalse',
}

OPERATOR_SYMBOLS = {
    'eq': '==',
    'neq': '!=',
    'gt': '>',
    'gte': '>=',
    'lt': '<',
    'lte': '<=',
    'between': 'between',
    'contains': 'contains',
    'notContains': 'does not contain',
    'isTrue': 'is',
    'isFalse': 'is',
}

TRUE_STRINGS = {'true', '1', 'yes', 'y'}
FALSE_STRINGS = {'false', '0', 'no', 'n'}

LeafOutcome = Tuple[bool, List[str]]


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ValueError(f"{value!r} is not a boolean")


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        raise TypeError(f"{value!r} is a boolean, not a number")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    raise TypeError(f"{value!r} is not a number")


def _coerce_like(profile_value: Any, rule_value: Any) -> Any:
    """Convert a rule value to the type of the profile value it is compared with"""
    if isinstance(profile_value, bool):
        return _to_bool(rule_value)
    if isinstance(profile_value, (int, float)):
        return _to_number(rule_value)
    return rule_value if isinstance(rule_value, str) else str(rule_value)


class RuleEvaluator:
    """
    Evaluates targeting rule trees against member profiles
    """

    def __init__(self, field_mapper: Optional[FieldMapper] = None):
        """
        Initialize the rule evaluator

        Args:
            field_mapper: FieldMapper used to resolve attribute names.
                          If None, the shared default mapper is used.
        """
        self.logger = logger
        self.field_mapper = field_mapper or get_default_field_mapper()

        self._node_handlers: Dict[type, Callable[[Any, MemberProfile], LeafOutcome]] = {
            LeafRule: self._evaluate_leaf,
            AllOfRule: self._evaluate_all_of,
            AnyOfRule: self._evaluate_any_of,
            EmptyRule: self._evaluate_empty,
        }
        self._operators: Dict[str, Callable[[LeafRule, Any], LeafOutcome]] = {
            'eq': self._op_eq,
            'neq': self._op_neq,
            'gt': self._op_ordering,
            'gte': self._op_ordering,
            'lt': self._op_ordering,
            'lte': self._op_ordering,
            'between': self._op_between,
            'contains': self._op_contains,
            'notContains': self._op_contains,
            'isTrue': self._op_truth,
            'isFalse': self._op_truth,
        }

    def evaluate(self, rule: Any, profile: MemberProfile) -> RuleResult:
        """
        Evaluate a rule tree against a member profile

        Args:
            rule: Root of the rule tree
            profile: Member profile to test

        Returns:
            RuleResult with the match outcome and the reasons collected on the way
        """
        matched, reasons = self._evaluate_node(rule, profile)
        return RuleResult(matched=matched, reasons=reasons)

    def _evaluate_node(self, rule: Any, profile: MemberProfile) -> LeafOutcome:
        handler = self._node_handlers.get(type(rule))
        if handler is None:
            self.logger.warning(f"Unsupported rule node: {type(rule).__name__}")
            return False, [f"Unsupported rule node '{type(rule).__name__}'"]
        return handler(rule, profile)

    def _evaluate_empty(self, rule: EmptyRule, profile: MemberProfile) -> LeafOutcome:
        return True, ["No targeting rule: matches every profile"]

    def _evaluate_all_of(self, rule: AllOfRule, profile: MemberProfile) -> LeafOutcome:
        if not rule.rules:
            return True, ["allOf with no rules: met"]

        reasons: List[str] = []
        for child in rule.rules:
            matched, child_reasons = self._evaluate_node(child, profile)
            reasons.extend(child_reasons)
            if not matched:
                return False, reasons
        return True, reasons

    def _evaluate_any_of(self, rule: AnyOfRule, profile: MemberProfile) -> LeafOutcome:
        if not rule.rules:
            return False, ["anyOf with no rules: not met"]

        reasons: List[str] = []
        for child in rule.rules:
            matched, child_reasons = self._evaluate_node(child, profile)
            reasons.extend(child_reasons)
            if matched:
                return True, reasons
        return False, reasons

    def _evaluate_leaf(self, leaf: LeafRule, profile: MemberProfile) -> LeafOutcome:
        operator = OPERATOR_ALIASES.get(leaf.operator, leaf.operator)
        handler = self._operators.get(operator)
        if handler is None:
            self.logger.warning(f"Unknown rule operator '{leaf.operator}' on attribute '{leaf.attribute}'")
            return False, [f"{leaf.attribute}: unknown operator '{leaf.operator}'"]

        profile_value = self.field_mapper.get_field_value(profile, leaf.attribute)
        if profile_value is None:
            return False, [f"{leaf.attribute}: missing from profile"]

        try:
            return handler(leaf, profile_value)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Malformed comparison on '{leaf.attribute}': {e}")
            return False, [f"{leaf.attribute}: malformed comparison ({e})"]

    @staticmethod
    def _describe(leaf: LeafRule, actual: Any, expected: Any, matched: bool) -> str:
        operator = OPERATOR_ALIASES.get(leaf.operator, leaf.operator)
        symbol = OPERATOR_SYMBOLS[operator]
        outcome = "met" if matched else "not met"
        return f"{leaf.attribute} {actual!r} {symbol} {expected!r}: {outcome}"

    # --- Operators ---

    def _op_eq(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        expected = _coerce_like(actual, leaf.value)
        matched = actual == expected
        return matched, [self._describe(leaf, actual, expected, matched)]

    def _op_neq(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        expected = _coerce_like(actual, leaf.value)
        matched = actual != expected
        return matched, [self._describe(leaf, actual, expected, matched)]

    def _op_ordering(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        operator = OPERATOR_ALIASES.get(leaf.operator, leaf.operator)
        number = _to_number(actual)
        expected = _to_number(leaf.value)
        if operator == 'gt':
            matched = number > expected
        elif operator == 'gte':
            matched = number >= expected
        elif operator == 'lt':
            matched = number < expected
        else:
            matched = number <= expected
        return matched, [self._describe(leaf, actual, expected, matched)]

    def _op_between(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        bounds = leaf.values if leaf.values is not None else leaf.value
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
            raise ValueError("between needs exactly two bounds")
        low, high = _to_number(bounds[0]), _to_number(bounds[1])
        number = _to_number(actual)
        matched = low <= number <= high
        return matched, [self._describe(leaf, actual, [low, high], matched)]

    def _op_contains(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        if leaf.value is None:
            raise ValueError("contains needs a value")
        operator = OPERATOR_ALIASES.get(leaf.operator, leaf.operator)
        found = str(leaf.value).lower() in str(actual).lower()
        matched = found if operator == 'contains' else not found
        return matched, [self._describe(leaf, actual, leaf.value, matched)]

    def _op_truth(self, leaf: LeafRule, actual: Any) -> LeafOutcome:
        operator = OPERATOR_ALIASES.get(leaf.operator, leaf.operator)
        expected = operator == 'isTrue'
        matched = actual is expected
        return matched, [self._describe(leaf, actual, expected, matched)]


def evaluate(rule: Any, profile: MemberProfile, field_mapper: Optional[FieldMapper] = None) -> RuleResult:
    """Evaluate a rule tree against a profile with a default RuleEvaluator"""
    return RuleEvaluator(field_mapper).evaluate(rule, profile)
