"""Tests for the per-example context."""

from typing import TYPE_CHECKING

import pytest

from pytest_macros import ExampleGroup, before, trigger
from pytest_macros.collaborators import ModelClass, Record, Reflective
from pytest_macros.errors import (
    AssertionMismatch,
    ExpectationError,
    MacroDefinitionError,
    MacroRuntimeError,
    MissingCollaborator,
    MissingTrigger,
    UnsatisfiedExpectation,
)
from pytest_macros.plugin.groups import ExamplePlan
from pytest_macros.schema import Assertion, Expectation, ExpectationSet, MacroInvocation
from tests.examples.shop import Category, Item, ItemsController

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from pytest_macros.plugin import Example


class CountingGroup(ExampleGroup):
    """Group whose trigger counts its invocations."""

    calls: list[str] = []  # noqa: RUF012

    @before
    def prepare(example):  # noqa: N805
        example.params['id'] = 7

    @trigger
    def do_request(example):  # noqa: N805
        CountingGroup.calls.append(example.name)
        return {'page': example.params['id']}

    class NestedGroup(ExampleGroup):
        """Nested group inheriting the trigger."""


class FailingGroup(ExampleGroup):
    """Group whose trigger raises."""

    @trigger
    def do_request(example):  # noqa: N805
        raise ValueError('boom')


@pytest.fixture(autouse=True)
def reset_calls() -> None:
    """Forget trigger invocations of previous tests."""
    CountingGroup.calls.clear()


@pytest.mark.parametrize('group', (
    pytest.param(CountingGroup, id='own trigger'),
    pytest.param(CountingGroup.NestedGroup, id='trigger of enclosing group'),
))
def test_trigger_is_idempotent(make_example: 'Callable[..., Example]', group: type) -> None:
    """Verify the shared request fires at most once per example."""
    example = make_example(group)

    with example.running():
        first = example.do_request()
        second = example.do_request()

        assert example.triggered

    assert first is second
    assert CountingGroup.calls == ['test_example']


def test_trigger_memo_reset_between_examples(make_example: 'Callable[..., Example]') -> None:
    """Verify every example fires the shared request afresh."""
    for name in ('first', 'second'):
        example = make_example(CountingGroup, name)
        with example.running():
            example.do_request()

    assert CountingGroup.calls == ['first', 'second']


def test_trigger_memo_reset_on_failure(make_example: 'Callable[..., Example]') -> None:
    """Verify the memo is reset when an example fails."""
    example = make_example(CountingGroup)

    with pytest.raises(AssertionError), example.running():
        example.do_request()
        raise AssertionError

    assert not example.triggered
    assert example.response is None


def test_trigger_mapping_result_captured(make_example: 'Callable[..., Example]') -> None:
    """Verify a mapping returned by the trigger becomes assigns."""
    example = make_example(CountingGroup)

    with example.running():
        example.do_request()

        assert example.assigns == {'page': 7}


def test_missing_trigger(make_example: 'Callable[..., Example]') -> None:
    """Verify requesting the action without a trigger fails the example."""
    example = make_example(ExampleGroup, 'test_nothing')

    with pytest.raises(MissingTrigger, match=r'^No trigger defined') as error:
        example.do_request()

    assert isinstance(error.value, AssertionError)
    assert 'in group "ExampleGroup", example "test_nothing"' in f'{error.value}'


def test_trigger_runtime_error(make_example: 'Callable[..., Example]') -> None:
    """Verify non-assertion errors of the trigger are wrapped."""
    example = make_example(FailingGroup)

    with pytest.raises(MacroRuntimeError, match=r"^Runtime error\s+ValueError\('boom'\)") as error:
        example.do_request()

    assert isinstance(error.value.__cause__, ValueError)
    assert error.value.context['group'] == 'FailingGroup'


def test_mock_model(make_example: 'Callable[..., Example]') -> None:
    """Verify record doubles implement the record contract only."""
    example = make_example()

    first = example.mock_model(Item, title='Pen')
    second = example.mock_model(Item, errors={'title': ['is taken']})

    assert isinstance(first, Record)
    assert (first.id, second.id) == (1, 2)
    assert first.title == 'Pen'
    assert first.save() is True
    assert first.valid() is True
    assert second.valid() is False

    with pytest.raises(AttributeError):
        first.publish()


def test_stub_find_all(make_example: 'Callable[..., Example]') -> None:
    """Verify stubbing `find_all` registers the collection and arms an expectation."""
    example = make_example()

    items = example.stub_find_all('items', Item, count=3)

    assert len(items) == 3
    assert Item.find_all(limit=5) is items

    collaborator = example.collaborator('items')
    assert collaborator.kind == 'collection'
    assert collaborator.records == items

    assert list(example.expectations) == [('items', 'find_all')]
    example.verify()
    assert not example.expectations


def test_stub_without_expectation(make_example: 'Callable[..., Example]') -> None:
    """Verify stubs may opt out of arming an expectation."""
    example = make_example()

    example.stub_find_one('item', Item, expect=False)

    assert not example.expectations
    example.verify()


def test_unsatisfied_stub(make_example: 'Callable[..., Example]') -> None:
    """Verify an uncalled stub fails verification with macro and symbol."""
    example = make_example()

    example.stub_initialize('item', Item)

    with pytest.raises(UnsatisfiedExpectation, match=r"^Expected initialize\(\.\.\.\) on 'item'") as error:
        example.verify()

    assert 'from macro "stub_initialize" on "item", operation "initialize"' in f'{error.value}'


def test_stub_missing_operation(make_example: 'Callable[..., Example]') -> None:
    """Verify stubbing an operation the model lacks is a definition error."""
    example = make_example()

    with pytest.raises(MacroDefinitionError, match=r"does not implement 'find_all'"):
        example.stub_find_all('items', object)


def test_last_write_wins(make_example: 'Callable[..., Example]') -> None:
    """Verify a second stub for the same symbol overrides the first."""
    example = make_example()

    first = example.stub_find_all('items', Item, count=1)
    second = example.stub_find_all('items', Item, count=2)

    assert example.collaborator('items').value is second
    assert Item.find_all() is second
    assert Item.find_all() is not first
    assert len(example.expectations) == 1


def test_last_write_wins_across_operations(make_example: 'Callable[..., Example]') -> None:
    """Verify a second stub drops expectations armed by the first one."""
    example = make_example()

    example.stub_find_all('item', Item)
    record = example.stub_find_one('item', Item)

    assert list(example.expectations) == [('item', 'find_one')]

    assert Item.find_one(1) is record

    example.verify()

    assert [expectation.operation for expectation in example.verified] == ['find_one']


def test_missing_collaborator(make_example: 'Callable[..., Example]') -> None:
    """Verify a symbol without collaborator fails as an assertion."""
    example = make_example()
    example.stub_find_all('items', Item, expect=False)

    with pytest.raises(MissingCollaborator, match=r"^No collaborator registered for 'item'") as error:
        example.collaborator('item', macro='should_assign')

    assert isinstance(error.value, ExpectationError)
    assert error.value.context['details'] == {'registered': ['items']}


def test_calls_before_arming_do_not_count(make_example: 'Callable[..., Example]',
                                          mocker: 'MockerFixture') -> None:
    """Verify only calls recorded after arming satisfy an expectation."""
    example = make_example()
    double = mocker.Mock()

    double()
    example.expect(Expectation.arm(double, macro='custom', symbol='items', operation='find_all'))

    with pytest.raises(UnsatisfiedExpectation, match=r'called 0 time\(s\)'):
        example.verify()


@pytest.mark.parametrize('calls, args, kwargs, error', (
    pytest.param([((), {'limit': 2})], (), {'limit': 2}, None, id='exact call'),
    pytest.param([((), {'limit': 2})], None, None, None, id='any arguments'),
    pytest.param([((), {})], (), {'limit': 2}, AssertionMismatch, id='missing criterion'),
    pytest.param([((), {'limit': 2})], (), {}, AssertionMismatch, id='unexpected criterion'),
    pytest.param([], None, None, UnsatisfiedExpectation, id='not called'),
    pytest.param([((), {}), ((), {})], None, None, UnsatisfiedExpectation, id='called twice'),
))
def test_expectation_verify(make_example: 'Callable[..., Example]', mocker: 'MockerFixture',
                            calls: list, args: tuple | None, kwargs: dict | None,
                            error: type[Exception] | None) -> None:
    """Verify call count and argument matching of expectations."""
    example = make_example()
    double = mocker.Mock()

    example.expect(Expectation.arm(
        double,
        macro='should_find',
        symbol='items',
        operation='find_all',
        args=args,
        kwargs=kwargs,
    ))

    for call_args, call_kwargs in calls:
        double(*call_args, **call_kwargs)

    if error is None:
        example.verify()
        return

    with pytest.raises(error):
        example.verify()


def test_expectation_deferred_arguments(make_example: 'Callable[..., Example]', mocker: 'MockerFixture') -> None:
    """Verify deferred expected arguments resolve against the example."""
    example = make_example()
    example.params['id'] = 42
    double = mocker.Mock()

    example.expect(Expectation.arm(
        double,
        macro='should_find',
        symbol='item',
        operation='find_one',
        args=(lambda example: example.params['id'],),
        kwargs={},
    ))

    double(42)
    example.verify()


def test_before_and_after_ordering(make_example: 'Callable[..., Example]') -> None:
    """Verify before assertions run prior to the trigger and after ones afterwards."""
    observed = []

    def record(example: 'Example', invocation: MacroInvocation) -> None:
        observed.append((invocation.target, example.triggered))

    invocation = MacroInvocation(macro='custom', target='items')
    expectations = ExpectationSet(
        title='custom items',
        invocation=invocation,
        assertions=(
            Assertion(phase='after', runner=record),
            Assertion(phase='before', runner=record),
        ),
    )

    example = make_example(CountingGroup)
    with example.running():
        ExamplePlan(example, expectations).run()

    assert observed == [('items', False), ('items', True)]
    assert CountingGroup.calls == ['test_example']


def test_plan_without_trigger(make_example: 'Callable[..., Example]') -> None:
    """Verify sets not using the trigger never fire it."""
    expectations = ExpectationSet(
        title='custom',
        invocation=MacroInvocation(macro='custom'),
        uses_trigger=False,
    )

    example = make_example(CountingGroup)
    with example.running():
        ExamplePlan(example, expectations).run()

    assert not CountingGroup.calls


def test_plan_wraps_bare_assertions(make_example: 'Callable[..., Example]') -> None:
    """Verify bare assertion errors of runners name the failing example title."""
    def runner(example: 'Example', invocation: MacroInvocation) -> None:
        raise AssertionError('not paginated')

    expectations = ExpectationSet(
        title='should paginate items',
        invocation=MacroInvocation(macro='should_paginate', target='items'),
        assertions=(Assertion(phase='after', runner=runner),),
        uses_trigger=False,
    )

    example = make_example(CountingGroup)
    with pytest.raises(AssertionMismatch, match=r'^Expectation fail: should paginate items \(not paginated\)'):
        ExamplePlan(example, expectations).run()


def test_example_fixture(example: 'Example') -> None:
    """Verify the fixture provides a context whose stubs get verified after the body."""
    items = example.stub_find_all('items', Item, count=2)

    ItemsController(example.params, example.renderer).index()

    assert example.renderer.template == 'items/index'
    assert example.assigns == {'items': items}
    assert example.group is None
    assert example.name == 'test_example_fixture'


def test_domain_types_satisfy_contracts() -> None:
    """Verify the example shop implements the collaborator contracts."""
    assert isinstance(Item, ModelClass)
    assert isinstance(Category, Reflective)
    assert isinstance(Item(title='Pen'), Record)
    assert not isinstance(object, ModelClass)
