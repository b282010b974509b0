"""Declarative schema of macro expansion.

Defines immutable Pydantic models describing what a group declares
(invocations), what an invocation expands into (expectation sets of
phase-bound assertions), and the call expectations armed on
collaborator doubles while an example runs.
"""

from .expectations import Expectation, Operation
from .invocations import Assertion, AssertionRunner, ExpectationSet, MacroInvocation, Phase

__all__ = (
    'Assertion',
    'AssertionRunner',
    'Expectation',
    'ExpectationSet',
    'MacroInvocation',
    'Operation',
    'Phase',
)
