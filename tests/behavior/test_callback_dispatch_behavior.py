"""Behavior tests for callback dispatch and the synchronous hook pipeline."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from stubkit import (
    Behavior,
    CallbackDispatchError,
    Injector,
    SchedulingError,
    StubkitConfig,
    call_context,
    set_config,
)
from stubkit.behavior import CallbackDispatcher, apply_injectors
from tests.test_doubles.callback_spy import CallbackSpy
from tests.test_doubles.scheduler_fake import SchedulerFake


@pytest.fixture
def scheduler() -> SchedulerFake:
    return SchedulerFake()


@pytest.fixture
def dispatcher(scheduler) -> CallbackDispatcher:
    return CallbackDispatcher(scheduler)


def test_record_without_callback_policy_dispatches_nothing(dispatcher):
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().returns(1), [spy])

    assert spy.calls == []


def test_calls_arg_invokes_argument_inline_with_configured_arguments(dispatcher):
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().calls_arg_with(1, "a", 2), ["x", spy])

    assert spy.calls == [("a", 2)]


def test_yields_invokes_only_callable_with_no_arguments(dispatcher):
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().yields(), [spy])

    assert spy.calls == [()]


def test_yields_picks_leftmost_and_yields_right_picks_rightmost(dispatcher):
    left, right = CallbackSpy(), CallbackSpy()

    dispatcher.dispatch(Behavior.create().yields("l"), [left, right])
    dispatcher.dispatch(Behavior.create().yields_right("r"), [left, right])

    assert left.calls == [("l",)]
    assert right.calls == [("r",)]


def test_yields_to_invokes_named_member(dispatcher):
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().yields_to("success", "done"), [{"success": spy}])

    assert spy.calls == [("done",)]


def test_callback_context_is_exposed_while_callback_runs(dispatcher):
    spy = CallbackSpy()
    context = SimpleNamespace(name="ctx")

    dispatcher.dispatch(Behavior.create().calls_arg_on(0, context), [spy])

    assert spy.contexts == [context]
    assert call_context() is None


def test_callback_context_defaults_to_none(dispatcher):
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().yields(), [spy])

    assert spy.contexts == [None]


def test_non_callable_argument_raises_dispatch_error(dispatcher):
    with pytest.raises(CallbackDispatchError, match="argument at index 0 is not callable: 1"):
        dispatcher.dispatch(Behavior.create().calls_arg(0), [1])


def test_dispatch_error_is_a_type_error(dispatcher):
    with pytest.raises(TypeError):
        dispatcher.dispatch(Behavior.create().yields(), [])


def test_missing_property_error_names_the_property(dispatcher):
    with pytest.raises(CallbackDispatchError, match="'success'"):
        dispatcher.dispatch(Behavior.create().yields_to("success"), [{"failure": print}])


def test_callback_exception_propagates(dispatcher):
    spy = CallbackSpy(raises=RuntimeError("callback failed"))

    with pytest.raises(RuntimeError, match="callback failed"):
        dispatcher.dispatch(Behavior.create().yields(), [spy])


def test_callback_runs_before_configured_exception_is_raised():
    spy = CallbackSpy()
    behavior = Behavior.create().yields("first").throws(ValueError("second"))

    with pytest.raises(ValueError, match="second"):
        behavior.invoke(None, [spy])

    assert spy.calls == [("first",)]


def test_callback_plays_nice_with_returns_arg_and_returns_this():
    spy = CallbackSpy()

    assert Behavior.create().yields().returns_arg(0).invoke(None, [spy]) is spy
    assert Behavior.create().yields().returns_this().invoke("ctx", [spy]) == "ctx"
    assert spy.call_count == 2


# --- Deferred dispatch ---


def test_async_callback_is_scheduled_instead_of_run(dispatcher, scheduler):
    spy = CallbackSpy()
    behavior = Behavior.create().yields_on_async("ctx", 1)

    dispatcher.dispatch(behavior, [spy])

    assert spy.calls == []
    assert len(scheduler.soon) == 1

    scheduler.run_pending()

    assert spy.calls == [(1,)]
    assert spy.contexts == ["ctx"]


def test_async_callback_bypasses_armed_hook(dispatcher, scheduler):
    hook = CallbackSpy()
    spy = CallbackSpy()
    behavior = (
        Behavior.create()
        .yields_async("a")
        .set_before_callback_hook(hook)
        .yields_before_callback_hook(None)
    )

    dispatcher.dispatch(behavior, [spy])
    scheduler.run_pending()

    assert hook.calls == []
    assert spy.calls == [("a",)]


def test_async_callback_is_still_located_eagerly(dispatcher, scheduler):
    with pytest.raises(CallbackDispatchError):
        dispatcher.dispatch(Behavior.create().yields_async(), ["no callback"])

    assert scheduler.soon == []


def test_deferred_dispatch_without_running_loop_raises_scheduling_error():
    spy = CallbackSpy()

    with pytest.raises(SchedulingError, match="running event loop"):
        Behavior.create().calls_arg_async(0).invoke(None, [spy])

    assert spy.calls == []


# --- Synchronous hook pipeline ---


def test_sync_hook_injects_arguments_then_fires_inline(dispatcher, scheduler):
    spy = CallbackSpy()
    order: list[str] = []

    def hook(value):
        order.append("hook")
        return [{"pos": 1, "value": value}]

    behavior = (
        Behavior.create()
        .yields(None, "test file")
        .set_before_callback_hook(hook)
        .yields_before_callback_hook(None, "hook invoked")
    )

    dispatcher.dispatch(behavior, [spy])

    assert order == ["hook"]
    assert spy.calls == [(None, "hook invoked")]
    assert scheduler.later == []


def test_sync_hook_runs_with_its_own_context(dispatcher):
    hook = CallbackSpy()
    behavior = (
        Behavior.create()
        .yields()
        .set_before_callback_hook(hook)
        .yields_before_callback_hook("hook ctx", 1, 2)
    )

    dispatcher.dispatch(behavior, [CallbackSpy()])

    assert hook.calls == [(1, 2)]
    assert hook.contexts == ["hook ctx"]


def test_sync_hook_without_injectors_leaves_arguments_alone(dispatcher):
    spy = CallbackSpy()
    behavior = (
        Behavior.create()
        .yields(None, "test file")
        .set_before_callback_hook(lambda: None)
        .yields_before_callback_hook(None)
    )

    dispatcher.dispatch(behavior, [spy])

    assert spy.calls == [(None, "test file")]


def test_sync_hook_with_timeout_schedules_callback(dispatcher, scheduler):
    spy = CallbackSpy()
    behavior = (
        Behavior.create()
        .yields("orig")
        .set_before_callback_hook(lambda: [Injector(pos=0, value="new")], {"timeout": 0.5})
        .yields_before_callback_hook({"sandbox": True})
    )

    dispatcher.dispatch(behavior, [spy])

    assert spy.calls == []
    assert [delay for delay, _fn, _args in scheduler.later] == [0.5]

    scheduler.run_pending()

    assert spy.calls == [("new",)]


def test_registered_but_unarmed_hook_is_skipped(dispatcher):
    hook = CallbackSpy()
    spy = CallbackSpy()

    dispatcher.dispatch(Behavior.create().yields(1).set_before_callback_hook(hook), [spy])

    assert hook.calls == []
    assert spy.calls == [(1,)]


def test_injected_arguments_persist_on_the_record(dispatcher):
    behavior = (
        Behavior.create()
        .yields("orig")
        .set_before_callback_hook(lambda: [{"pos": 0, "value": "new"}])
        .yields_before_callback_hook(None)
    )

    dispatcher.dispatch(behavior, [CallbackSpy()])

    assert behavior.callback_arguments == ["new"]


def test_hook_returning_awaitable_without_promisified_is_ignored(dispatcher, caplog):
    spy = CallbackSpy()

    async def hook():
        return [{"pos": 0, "value": "never"}]

    behavior = (
        Behavior.create()
        .yields("orig")
        .set_before_callback_hook(hook)
        .yields_before_callback_hook(None)
    )

    with caplog.at_level(logging.WARNING, logger="stubkit.behavior.dispatcher"):
        dispatcher.dispatch(behavior, [spy])

    assert spy.calls == [("orig",)]
    assert "promisified=True" in caplog.text


def test_promisified_hook_must_return_awaitable(dispatcher):
    behavior = (
        Behavior.create()
        .yields()
        .set_before_callback_hook(lambda: [], {"promisified": True})
        .yields_before_callback_hook(None)
    )

    with pytest.raises(CallbackDispatchError, match="not awaitable"):
        dispatcher.dispatch(behavior, [CallbackSpy()])


def test_promisified_hook_waits_for_settlement(dispatcher, scheduler):
    spy = CallbackSpy()

    async def hook():
        return []

    behavior = (
        Behavior.create()
        .yields()
        .set_before_callback_hook(hook, {"promisified": True})
        .yields_before_callback_hook(None)
    )

    dispatcher.dispatch(behavior, [spy])

    assert spy.calls == []
    assert len(scheduler.watched) == 1
    awaitable, _on_settled = scheduler.watched[0]
    awaitable.close()


def test_strict_injectors_from_config_reject_malformed_entries(dispatcher):
    set_config(StubkitConfig(strict_injectors=True))
    behavior = (
        Behavior.create()
        .yields()
        .set_before_callback_hook(lambda: [{"value": "no position"}])
        .yields_before_callback_hook(None)
    )

    with pytest.raises(CallbackDispatchError, match="malformed injector"):
        dispatcher.dispatch(behavior, [CallbackSpy()])


# --- Injectors ---


def test_apply_injectors_overwrites_positions_in_place():
    arguments = [None, "test file"]

    report = apply_injectors(arguments, [{"pos": 1, "value": "hook invoked"}])

    assert arguments == [None, "hook invoked"]
    assert report.applied == [Injector(pos=1, value="hook invoked")]


def test_apply_injectors_accepts_injectors_and_attribute_objects():
    arguments = ["a", "b"]

    apply_injectors(arguments, (Injector(pos=0, value="x"), SimpleNamespace(pos=1, value="y")))

    assert arguments == ["x", "y"]


def test_apply_injectors_pads_positions_past_the_end():
    arguments: list = []

    apply_injectors(arguments, [{"pos": 2, "value": "late"}])

    assert arguments == [None, None, "late"]


def test_apply_injectors_skips_malformed_entries():
    arguments = ["orig"]
    malformed = [
        None,
        5,
        {"value": 1},
        {"pos": 0},
        {"pos": "0", "value": 1},
        {"pos": 0.0, "value": 1},
        {"pos": True, "value": 1},
        {"pos": -1, "value": 1},
    ]

    report = apply_injectors(arguments, [*malformed, {"pos": 0, "value": "ok"}])

    assert arguments == ["ok"]
    assert report.skipped == malformed


def test_apply_injectors_ignores_results_that_are_not_sequences():
    arguments = ["orig"]

    apply_injectors(arguments, {"pos": 0, "value": "x"})
    apply_injectors(arguments, None)
    apply_injectors(arguments, "pos")

    assert arguments == ["orig"]


def test_apply_injectors_strict_mode_raises():
    with pytest.raises(CallbackDispatchError):
        apply_injectors([], [None], strict=True)
