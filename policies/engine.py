"""
policies/engine.py -- Runs every registered rule against one context.
"""

from itertools import chain
from typing import Iterable, Iterator

from .models import PolicyAnalysisContext, PolicyViolation
from .rules import RULES, PolicyRule


def iter_violations(context: PolicyAnalysisContext, rules: Iterable[PolicyRule] = RULES) -> Iterator[PolicyViolation]:
    """Lazily chain each rule's output in registry order."""
    return chain.from_iterable(rule.get_violations(context) for rule in rules)


def evaluate(context: PolicyAnalysisContext, rules: Iterable[PolicyRule] = RULES) -> list[PolicyViolation]:
    return list(iter_violations(context, rules))
