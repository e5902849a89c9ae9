"""
Test WorkflowEngine

Covers graph validation, sequential execution, error strategies, retry and
backoff, parallel joins, bounded loops, conditionals, cancellation, context
retention and workflow hooks.
"""
import asyncio

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, Mock, patch

from extensionflow.core.config import register_workflow_hook
from extensionflow.core.errors import NotFoundError, ValidationError
from extensionflow.core.extensions import ExtensionLifecycleManager
from extensionflow.core.types import Result, ResultError
from extensionflow.core.workflow import (
    ExecutionStatus,
    StepStatus,
    WorkflowDefinition,
    WorkflowEngine,
)


def _workflow(steps, **extra):
    return WorkflowDefinition.from_dict({"id": "wf", "name": "Test workflow", "steps": steps, **extra})


def _script(step_id, next_step_id=None, **config):
    step = {"id": step_id, "name": step_id.upper(), "type": "script", "config": config}
    if next_step_id:
        step["nextStepId"] = next_step_id
    return step


def _failing(step_id, next_step_id=None, **fields):
    """Script step that always fails: copies from a variable that does not exist"""
    step = _script(step_id, next_step_id, copy={"target": "missing"})
    step.update(fields)
    return step


def _extension_step(step_id, payload, **fields):
    step = {
        "id": step_id,
        "name": step_id,
        "type": "extension",
        "config": {"extensionId": "text-tools", "operation": "upper", "payload": payload},
    }
    step.update(fields)
    return step


def _ok(task_id="t", **result):
    return Result(task_id=task_id, result=result)


def _err(message, task_id="t"):
    return Result(task_id=task_id, error=ResultError(code="EXECUTION_ERROR", message=message))


@pytest.fixture
def engine():
    return WorkflowEngine(retention_seconds=300)


@pytest_asyncio.fixture
async def manager(text_extension):
    manager = ExtensionLifecycleManager()
    await manager.load_extension(text_extension)
    return manager


class TestValidateWorkflow:
    """Malformed graphs are rejected before anything runs"""

    @pytest.mark.parametrize(
        "steps, extra",
        [
            ([], {}),
            ([_script("a"), _script("a")], {}),
            ([_script("a", next_step_id="ghost")], {}),
            ([_script("a")], {"startStepId": "ghost"}),
            ([{**_script("a"), "errorStepId": "ghost"}], {}),
            ([_script("a")], {"errorHandling": {"strategy": "fallback", "fallbackStepId": "ghost"}}),
            ([{"id": "p", "name": "P", "type": "parallel", "config": {"steps": ["ghost"]}}], {}),
            ([{"id": "p", "name": "P", "type": "parallel", "config": {"steps": []}}], {}),
            ([{"id": "p", "name": "P", "type": "parallel", "config": {"steps": ["p"]}}], {}),
            ([{"id": "l", "name": "L", "type": "loop", "config": {"items": "xs", "body": "ghost"}}], {}),
            ([{"id": "l", "name": "L", "type": "loop", "config": {"items": "xs", "body": "l"}}], {}),
            ([{"id": "e", "name": "E", "type": "extension", "config": {"operation": "upper"}}], {}),
            ([{"id": "e", "name": "E", "type": "extension", "config": {"extensionId": "text-tools"}}], {}),
        ],
    )
    def test_invalid_graphs(self, engine, steps, extra):
        with pytest.raises(ValidationError):
            engine.validate_workflow(_workflow(steps, **extra))

    @pytest.mark.asyncio
    async def test_execute_rejects_invalid_graph_synchronously(self, engine):
        with pytest.raises(ValidationError):
            await engine.execute_workflow(_workflow([_script("a", next_step_id="ghost")]))
        assert engine.list_executions() == []

    def test_cycles_are_legal(self, engine):
        engine.validate_workflow(_workflow([_script("a", next_step_id="b"), _script("b", next_step_id="a")]))

    def test_unknown_step_type_rejected_by_model(self):
        with pytest.raises(ValidationError):
            _workflow([{"id": "x", "name": "X", "type": "teleport"}])


class TestSequentialExecution:
    """Steps follow nextStepId transitions"""

    @pytest.mark.asyncio
    async def test_linear_workflow_completes(self, engine):
        workflow = _workflow(
            [
                _script("a", "b", set={"x": 1}),
                _script("b", "c", increment={"x": 2}),
                _script("c", output={"total": "${x}"}),
            ]
        )

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.COMPLETED
        assert [r.step_id for r in result.step_results] == ["a", "b", "c"]
        assert all(r.status == StepStatus.COMPLETED for r in result.step_results)
        assert result.final_output == {"scriptOutput": {"total": 3}, "updated": []}
        assert result.errors == []
        assert result.duration >= 0

    @pytest.mark.asyncio
    async def test_inputs_override_workflow_variables(self, engine):
        workflow = _workflow([_script("a", output="${name}")], variables={"name": "default", "other": 1})

        result = await engine.execute_workflow(workflow, {"name": "given"})

        assert result.final_output["scriptOutput"] == "given"
        context = engine.get_execution_status(result.execution_id)
        assert context.variables == {"name": "given", "other": 1}

    @pytest.mark.asyncio
    async def test_start_step_id_is_the_entry(self, engine):
        workflow = _workflow([_script("a", "b"), _script("b")], startStepId="b")

        result = await engine.execute_workflow(workflow)

        assert [r.step_id for r in result.step_results] == ["b"]

    @pytest.mark.asyncio
    async def test_disabled_step_is_skipped(self, engine):
        workflow = _workflow([{**_script("a", "b", set={"x": 1}), "enabled": False}, _script("b")])

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.COMPLETED
        assert result.step_results[0].status == StepStatus.SKIPPED
        assert result.step_results[1].status == StepStatus.COMPLETED
        assert "x" not in engine.get_execution_status(result.execution_id).variables

    @pytest.mark.asyncio
    async def test_logs_are_recorded(self, engine):
        result = await engine.execute_workflow(_workflow([_script("a")]))

        messages = [log.message for log in result.logs]
        assert "Executing step: A" in messages
        assert "Step completed: A" in messages


class TestErrorStrategies:
    """Workflow-level error handling"""

    @pytest.mark.asyncio
    async def test_stop_strategy_aborts_run(self, engine):
        workflow = _workflow([_script("a", "b"), _failing("b", "c"), _script("c")])

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.FAILED
        assert [r.step_id for r in result.step_results] == ["a", "b"]
        assert result.step_results[1].status == StepStatus.FAILED
        assert len(result.errors) == 1
        assert result.errors[0].code == "STEP_FAILED"
        assert result.errors[0].step_id == "b"
        assert result.errors[0].recoverable is False
        assert "Script copy source not found: missing" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_continue_routes_to_error_step(self, engine):
        workflow = _workflow(
            [
                _failing("a", "b", errorStepId="handler"),
                _script("b"),
                _script("handler", output="handled"),
            ],
            errorHandling={"strategy": "continue"},
        )

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.FAILED
        assert [r.step_id for r in result.step_results] == ["a", "handler"]
        assert result.final_output["scriptOutput"] == "handled"
        assert result.errors[0].recoverable is True

    @pytest.mark.asyncio
    async def test_continue_without_error_step_ends_run(self, engine):
        workflow = _workflow([_failing("a", "b"), _script("b")], errorHandling={"strategy": "continue"})

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.FAILED
        assert [r.step_id for r in result.step_results] == ["a"]

    @pytest.mark.asyncio
    async def test_fallback_strategy_uses_workflow_fallback(self, engine):
        workflow = _workflow(
            [_failing("a", "b"), _script("b"), _script("fallback", output="recovered")],
            errorHandling={"strategy": "fallback", "fallbackStepId": "fallback"},
        )

        result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.FAILED
        assert [r.step_id for r in result.step_results] == ["a", "fallback"]
        assert result.final_output["scriptOutput"] == "recovered"
        assert result.errors[0].step_id == "a"
        assert result.errors[0].recoverable is True

    @pytest.mark.asyncio
    async def test_step_error_step_wins_over_fallback(self, engine):
        workflow = _workflow(
            [_failing("a", errorStepId="own"), _script("own"), _script("fallback")],
            errorHandling={"strategy": "fallback", "fallbackStepId": "fallback"},
        )

        result = await engine.execute_workflow(workflow)

        assert [r.step_id for r in result.step_results] == ["a", "own"]


class TestRetry:
    """Per-step retry policy"""

    @pytest.mark.asyncio
    async def test_exhausted_retries_with_backoff(self, engine):
        workflow = _workflow(
            [_failing("a", retryPolicy={"maxAttempts": 3, "delayMs": 100, "backoffMultiplier": 2})]
        )

        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(workflow)

        assert [c.args[0] for c in delay.await_args_list] == [100, 200]
        step = result.step_results[0]
        assert step.status == StepStatus.FAILED
        assert step.retries == 3
        assert result.status == ExecutionStatus.FAILED

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        executor = Mock()
        executor.execute = AsyncMock(side_effect=[_err("flaky"), _ok(text="OK")])
        engine = WorkflowEngine(executor=executor)
        workflow = _workflow(
            [_extension_step("a", {"text": "ok"}, retryPolicy={"maxAttempts": 3, "delayMs": 10})]
        )

        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.COMPLETED
        assert result.step_results[0].retries == 1
        assert result.final_output == {"text": "OK"}
        delay.assert_awaited_once_with(10)
        assert executor.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_only_listed_errors_are_retried(self, engine):
        workflow = _workflow(
            [_failing("a", retryPolicy={"maxAttempts": 3, "delayMs": 10, "retryableErrors": ["timeout"]})]
        )

        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(workflow)

        delay.assert_not_awaited()
        assert result.step_results[0].retries == 1

    @pytest.mark.asyncio
    async def test_failed_script_attempts_leave_variables_untouched(self, engine):
        step = _script("a", increment={"n": 1}, append={"s": 1})
        step["retryPolicy"] = {"maxAttempts": 3, "delayMs": 10}
        workflow = _workflow([step])

        with patch.object(engine, "_delay", AsyncMock()):
            result = await engine.execute_workflow(workflow, {"n": 0, "s": "text"})

        assert result.step_results[0].status == StepStatus.FAILED
        assert result.step_results[0].retries == 3
        variables = engine.get_execution_status(result.execution_id).variables
        assert variables["n"] == 0
        assert variables["s"] == "text"

    @pytest.mark.asyncio
    async def test_no_policy_means_single_attempt(self, engine):
        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(_workflow([_failing("a")]))

        delay.assert_not_awaited()
        assert result.step_results[0].retries == 1


class TestExtensionSteps:
    """Extension steps are delegated to the task executor"""

    @pytest.mark.asyncio
    async def test_payload_references_and_output_variable(self, manager):
        engine = WorkflowEngine(executor=manager)
        step = _extension_step("shout", {"text": "${greeting}"}, nextStepId="report")
        step["config"]["outputVariable"] = "shouted"
        workflow = _workflow([step, _script("report", output="${shouted}")])

        result = await engine.execute_workflow(workflow, {"greeting": "hello"})

        assert result.status == ExecutionStatus.COMPLETED
        assert result.step_results[0].output == {"text": "HELLO"}
        assert result.final_output["scriptOutput"] == {"text": "HELLO"}

    @pytest.mark.asyncio
    async def test_task_carries_execution_metadata(self):
        executor = Mock()
        executor.execute = AsyncMock(return_value=_ok(text="X"))
        engine = WorkflowEngine(executor=executor)

        result = await engine.execute_workflow(_workflow([_extension_step("a", {"text": "x"})]), user_id="u-1")

        task = executor.execute.await_args.args[0]
        assert task.extension_id == "text-tools"
        assert task.type == "upper"
        assert task.payload == {"text": "x"}
        assert task.user_id == "u-1"
        assert task.correlation_id == result.execution_id
        assert task.metadata == {"workflow_id": "wf", "step_id": "a"}

    @pytest.mark.asyncio
    async def test_error_result_fails_step(self, manager):
        engine = WorkflowEngine(executor=manager)

        result = await engine.execute_workflow(_workflow([_extension_step("a", {"text": "x", "explode": True})]))

        assert result.status == ExecutionStatus.FAILED
        assert result.step_results[0].error.message == "boom"

    @pytest.mark.asyncio
    async def test_unknown_extension_fails_step(self, manager):
        engine = WorkflowEngine(executor=manager)
        step = _extension_step("a", {"text": "x"})
        step["config"]["extensionId"] = "not-loaded"

        result = await engine.execute_workflow(_workflow([step]))

        assert result.step_results[0].status == StepStatus.FAILED
        assert result.step_results[0].error.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_executor_fails_step(self, engine):
        result = await engine.execute_workflow(_workflow([_extension_step("a", {"text": "x"})]))

        assert result.status == ExecutionStatus.FAILED
        assert "No task executor" in result.step_results[0].error.message


class TestParallelSteps:
    """Parallel fan-out and join"""

    @staticmethod
    def _parallel(join_type, children):
        return _workflow(
            [{"id": "fan", "name": "Fan out", "type": "parallel", "config": {"steps": children, "joinType": join_type}}]
            + [_script("left", set={"left": "L"}), _script("right", set={"right": "R"}), _failing("broken")]
        )

    @pytest.mark.asyncio
    async def test_join_all_succeeds_and_merges_variables(self, engine):
        result = await engine.execute_workflow(self._parallel("all", ["right", "left"]))

        assert result.status == ExecutionStatus.COMPLETED
        output = result.final_output
        assert output["successful"] == 2
        assert output["failed"] == 0
        variables = engine.get_execution_status(result.execution_id).variables
        assert variables["left"] == "L"
        assert variables["right"] == "R"
        assert {r.step_id for r in result.step_results} == {"fan", "left", "right"}

    @pytest.mark.asyncio
    async def test_join_all_fails_on_any_child_failure(self, engine):
        result = await engine.execute_workflow(self._parallel("all", ["left", "broken"]))

        fan = next(r for r in result.step_results if r.step_id == "fan")
        assert fan.status == StepStatus.FAILED
        assert "1 steps failed" in fan.error.message
        assert result.status == ExecutionStatus.FAILED

    @pytest.mark.asyncio
    async def test_join_any_reports_counts(self, engine):
        result = await engine.execute_workflow(self._parallel("any", ["left", "broken"]))

        assert result.status == ExecutionStatus.COMPLETED
        assert result.final_output["successful"] == 1
        assert result.final_output["failed"] == 1
        assert result.final_output["joinType"] == "any"

    @pytest.mark.asyncio
    async def test_children_run_concurrently(self):
        engine = WorkflowEngine()
        started = []
        release = asyncio.Event()

        async def fake_delay(ms):
            started.append(ms)
            if len(started) == 2:
                release.set()
            await release.wait()

        workflow = _workflow(
            [
                {"id": "fan", "name": "Fan", "type": "parallel", "config": {"steps": ["d1", "d2"]}},
                {"id": "d1", "name": "D1", "type": "delay", "config": {"delayMs": 5}},
                {"id": "d2", "name": "D2", "type": "delay", "config": {"delayMs": 7}},
            ]
        )

        with patch.object(engine, "_delay", side_effect=fake_delay):
            result = await asyncio.wait_for(engine.execute_workflow(workflow), timeout=5)

        assert sorted(started) == [5, 7]
        assert result.status == ExecutionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_conflicting_writes_resolve_in_step_id_order(self, engine):
        workflow = _workflow(
            [
                {"id": "fan", "name": "Fan", "type": "parallel", "config": {"steps": ["b", "a"]}},
                _script("a", set={"shared": "from-a"}),
                _script("b", set={"shared": "from-b"}),
            ]
        )

        result = await engine.execute_workflow(workflow)

        assert engine.get_execution_status(result.execution_id).variables["shared"] == "from-b"


class TestLoopSteps:
    """Bounded loops"""

    @pytest.mark.asyncio
    async def test_loop_runs_body_per_item(self, engine):
        workflow = _workflow(
            [
                {
                    "id": "loop",
                    "name": "Loop",
                    "type": "loop",
                    "config": {"items": "numbers", "itemVariable": "n", "body": "add", "indexVariable": "i"},
                },
                _script("add", append={"seen": "${n}"}),
            ]
        )

        result = await engine.execute_workflow(workflow, {"numbers": [1, 2, 3]})

        assert result.status == ExecutionStatus.COMPLETED
        assert result.final_output["iterations"] == 3
        assert len(result.final_output["loopResults"]) == 3
        variables = engine.get_execution_status(result.execution_id).variables
        assert variables["seen"] == [1, 2, 3]
        assert variables["i"] == 2

    @pytest.mark.asyncio
    async def test_loop_bound_exceeded_is_not_retried(self, engine):
        workflow = _workflow(
            [
                {
                    "id": "loop",
                    "name": "Loop",
                    "type": "loop",
                    "config": {"items": "numbers", "body": "noop", "maxIterations": 2},
                    "retryPolicy": {"maxAttempts": 3, "delayMs": 10},
                },
                _script("noop"),
            ]
        )

        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(workflow, {"numbers": [1, 2, 3]})

        loop = next(r for r in result.step_results if r.step_id == "loop")
        assert loop.status == StepStatus.FAILED
        assert loop.error.code == "BOUND_EXCEEDED"
        assert "Max iterations (2) exceeded" in loop.error.message
        assert loop.retries == 1
        delay.assert_not_awaited()
        # body results are recorded as they run, before the loop step itself
        assert [r.step_id for r in result.step_results] == ["noop", "loop"]

    @pytest.mark.asyncio
    async def test_loop_default_bound_from_engine(self):
        engine = WorkflowEngine(max_loop_iterations=1)
        workflow = _workflow(
            [{"id": "loop", "name": "Loop", "type": "loop", "config": {"items": "xs", "body": "noop"}}, _script("noop")]
        )

        result = await engine.execute_workflow(workflow, {"xs": ["a", "b"]})

        loop = next(r for r in result.step_results if r.step_id == "loop")
        assert loop.error.code == "BOUND_EXCEEDED"

    @pytest.mark.asyncio
    async def test_failing_body_iterations_are_counted(self):
        executor = Mock()
        executor.execute = AsyncMock(side_effect=[_err("bad item"), _ok(text="B"), _ok(text="C")])
        engine = WorkflowEngine(executor=executor)
        workflow = _workflow(
            [
                {"id": "loop", "name": "Loop", "type": "loop", "config": {"items": "xs", "body": "shout"}},
                _extension_step("shout", {"text": "${item}"}),
            ]
        )

        result = await engine.execute_workflow(workflow, {"xs": ["a", "b", "c"]})

        loop = next(r for r in result.step_results if r.step_id == "loop")
        assert loop.status == StepStatus.COMPLETED
        assert loop.output["iterations"] == 3
        assert loop.output["successful"] == 2
        assert loop.output["failed"] == 1
        assert [r["status"] for r in loop.output["loopResults"]] == ["failed", "completed", "completed"]
        assert executor.execute.await_count == 3
        assert [c.args[0].payload for c in executor.execute.await_args_list] == [
            {"text": "a"},
            {"text": "b"},
            {"text": "c"},
        ]

    @pytest.mark.asyncio
    async def test_non_sequence_items_fail_loop(self, engine):
        workflow = _workflow(
            [{"id": "loop", "name": "Loop", "type": "loop", "config": {"items": "xs", "body": "noop"}}, _script("noop")]
        )

        result = await engine.execute_workflow(workflow, {"xs": 42})

        assert result.step_results[0].status == StepStatus.FAILED


class TestConditionalAndDelaySteps:
    @pytest.mark.asyncio
    async def test_conditional_reports_branch(self, engine):
        workflow = _workflow(
            [
                {
                    "id": "check",
                    "name": "Check",
                    "type": "conditional",
                    "config": {
                        "conditions": [
                            {"field": "score", "operator": "greaterThan", "value": 90, "label": "high"},
                            {"field": "score", "operator": "greaterThan", "value": 50, "label": "medium"},
                        ],
                        "branches": {"medium": "review"},
                    },
                    "nextStepId": "after",
                },
                _script("after"),
                _script("review"),
            ]
        )

        result = await engine.execute_workflow(workflow, {"score": 70})

        check = result.step_results[0]
        assert check.output["branch"] == "medium"
        assert check.output["target"] == "review"
        # the branch is advisory; routing follows nextStepId
        assert [r.step_id for r in result.step_results] == ["check", "after"]

    @pytest.mark.asyncio
    async def test_conditional_default_branch(self, engine):
        workflow = _workflow(
            [{"id": "check", "name": "Check", "type": "conditional", "config": {"conditions": [], "defaultBranch": "other"}}]
        )

        result = await engine.execute_workflow(workflow)

        assert result.final_output == {"branch": "other", "condition": None}

    @pytest.mark.asyncio
    async def test_delay_step_waits(self, engine):
        workflow = _workflow([{"id": "wait", "name": "Wait", "type": "delay", "config": {"delayMs": 250}}])

        with patch.object(engine, "_delay", AsyncMock()) as delay:
            result = await engine.execute_workflow(workflow)

        delay.assert_awaited_once_with(250)
        assert result.final_output == {"delayMs": 250}


class TestExecutionRecords:
    """Status queries, cancellation and retention"""

    @pytest.mark.asyncio
    async def test_context_retained_after_run(self, engine):
        result = await engine.execute_workflow(_workflow([_script("a")]))

        context = engine.get_execution_status(result.execution_id)
        assert context.status == ExecutionStatus.COMPLETED
        assert context.end_time is not None
        assert engine.list_executions() == [context]

    @pytest.mark.asyncio
    async def test_zero_retention_discards_immediately(self):
        engine = WorkflowEngine(retention_seconds=0)

        result = await engine.execute_workflow(_workflow([_script("a")]))

        assert engine.get_execution_status(result.execution_id) is None

    @pytest.mark.asyncio
    async def test_context_discarded_after_retention(self):
        engine = WorkflowEngine(retention_seconds=0.01)

        result = await engine.execute_workflow(_workflow([_script("a")]))
        assert engine.get_execution_status(result.execution_id) is not None

        await asyncio.sleep(0.05)
        assert engine.get_execution_status(result.execution_id) is None

    @pytest.mark.asyncio
    async def test_cancel_stops_at_next_step_boundary(self, engine):
        async def cancel_during_delay(ms):
            await engine.cancel_execution(engine.list_executions()[0].execution_id)

        workflow = _workflow(
            [{"id": "wait", "name": "Wait", "type": "delay", "config": {"delayMs": 1}, "nextStepId": "b"}, _script("b")]
        )

        with patch.object(engine, "_delay", side_effect=cancel_during_delay):
            result = await engine.execute_workflow(workflow)

        assert result.status == ExecutionStatus.CANCELLED
        assert [r.step_id for r in result.step_results] == ["wait"]
        assert result.step_results[0].status == StepStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_finished_execution_returns_false(self, engine):
        result = await engine.execute_workflow(_workflow([_script("a")]))

        assert await engine.cancel_execution(result.execution_id) is False

    @pytest.mark.asyncio
    async def test_cancel_unknown_execution_raises(self, engine):
        with pytest.raises(NotFoundError):
            await engine.cancel_execution("missing")


class TestWorkflowHooks:
    """Workflow lifecycle hooks from the config registry"""

    @pytest.mark.asyncio
    async def test_started_and_completed_hooks(self, engine):
        started = AsyncMock()
        completed = Mock()
        register_workflow_hook("on_workflow_started")(started)
        register_workflow_hook("on_workflow_completed")(completed)

        result = await engine.execute_workflow(_workflow([_script("a")]))

        started.assert_awaited_once()
        completed.assert_called_once()
        assert completed.call_args.args[0].execution_id == result.execution_id

    @pytest.mark.asyncio
    async def test_failed_hook(self, engine):
        failed = Mock()
        register_workflow_hook("on_workflow_failed")(failed)

        await engine.execute_workflow(_workflow([_failing("a")]))

        failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancelled_hook(self, engine):
        cancelled = Mock()
        register_workflow_hook("on_workflow_cancelled")(cancelled)

        async def cancel_during_delay(ms):
            await engine.cancel_execution(engine.list_executions()[0].execution_id)

        workflow = _workflow([{"id": "wait", "name": "Wait", "type": "delay", "config": {"delayMs": 1}}])
        with patch.object(engine, "_delay", side_effect=cancel_during_delay):
            await engine.execute_workflow(workflow)

        cancelled.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_fail_run(self, engine):
        register_workflow_hook("on_workflow_started")(Mock(side_effect=RuntimeError("hook broke")))

        result = await engine.execute_workflow(_workflow([_script("a")]))

        assert result.status == ExecutionStatus.COMPLETED
