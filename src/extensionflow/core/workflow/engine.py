"""
Workflow engine

Executes workflow definitions as step graphs with support for extension
invocation, conditional evaluation, parallel fan-out, bounded loops, delays
and script steps, with per-step retry/backoff and a workflow-level error
handling strategy.
"""

import asyncio
import traceback
from inspect import iscoroutinefunction
from typing import Any, Awaitable, Callable, Dict, List, Optional

from extensionflow.core.config import get_config, get_workflow_hooks
from extensionflow.core.errors import (
    BoundExceededError,
    ExecutionError,
    ExtensionFlowError,
    NotFoundError,
    ValidationError,
)
from extensionflow.core.extensions.protocol import TaskExecutor
from extensionflow.core.types import Task, TaskPriority
from extensionflow.core.utils.helpers import elapsed_ms, resolve_references, utcnow
from extensionflow.core.utils.logger import get_logger
from extensionflow.core.workflow.conditions import select_branch
from extensionflow.core.workflow.models import (
    ErrorStrategy,
    ExecutionError as ExecutionErrorRecord,
    ExecutionLog,
    ExecutionStatus,
    RetryPolicy,
    StepExecutionResult,
    StepStatus,
    StepType,
    WorkflowDefinition,
    WorkflowExecutionContext,
    WorkflowExecutionResult,
    WorkflowStep,
)
from extensionflow.core.workflow.script import run_script

logger = get_logger(__name__)

StepHandler = Callable[[WorkflowStep, WorkflowExecutionContext, WorkflowDefinition], Awaitable[Any]]


def _cfg(config: Dict[str, Any], *names: str, default: Any = None) -> Any:
    """Read a step config value accepting both camelCase and snake_case keys"""
    for name in names:
        if name in config and config[name] is not None:
            return config[name]
    return default


class WorkflowEngine:
    """
    Workflow execution engine

    Steps reached through next_step_id / error_step_id run strictly one after
    another. A parallel step is the one exception: its children start together
    and the engine waits for all of them to settle before moving on. Each
    parallel child works on a private copy of the variables; changes are
    merged back into the run's context in step-id order after the join.

    Cancellation is observed at step boundaries only; a step that is already
    running is never interrupted.

    Example:
        manager = ExtensionLifecycleManager()
        await manager.load_extension(EchoExtension())
        engine = WorkflowEngine(executor=manager)
        result = await engine.execute_workflow(workflow, {"message": "hello"})
    """

    def __init__(
        self,
        executor: Optional[TaskExecutor] = None,
        retention_seconds: Optional[float] = None,
        max_loop_iterations: Optional[int] = None,
    ):
        """
        Initialize WorkflowEngine

        Args:
            executor: Task executor for extension steps (typically an ExtensionLifecycleManager)
            retention_seconds: How long finished execution contexts stay queryable
                (default: config registry setting)
            max_loop_iterations: Loop bound used when a loop step sets none
                (default: config registry setting)
        """
        config = get_config()
        self.executor = executor
        self.retention_seconds = (
            retention_seconds if retention_seconds is not None else config.execution_retention_seconds
        )
        self.max_loop_iterations = (
            max_loop_iterations if max_loop_iterations is not None else config.max_loop_iterations
        )
        self.default_retry_delay_ms = config.default_retry_delay_ms
        self._executions: Dict[str, WorkflowExecutionContext] = {}
        self._step_handlers: Dict[StepType, StepHandler] = {
            StepType.EXTENSION: self._execute_extension_step,
            StepType.CONDITIONAL: self._execute_conditional_step,
            StepType.PARALLEL: self._execute_parallel_step,
            StepType.LOOP: self._execute_loop_step,
            StepType.DELAY: self._execute_delay_step,
            StepType.SCRIPT: self._execute_script_step,
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_workflow(self, workflow: WorkflowDefinition) -> None:
        """
        Check the step graph for malformed references

        Raises:
            ValidationError: On an empty workflow, duplicate step ids, an
                unknown start step, a dangling transition/child/body
                reference, or an extension step without target
        """
        if not workflow.steps:
            raise ValidationError(f"Workflow {workflow.id} has no steps")

        step_ids = [step.id for step in workflow.steps]
        duplicates = sorted({sid for sid in step_ids if step_ids.count(sid) > 1})
        if duplicates:
            raise ValidationError(
                f"Workflow {workflow.id} has duplicate step ids: {duplicates}",
                details={"duplicates": duplicates},
            )
        known = set(step_ids)

        def require(step_id: Optional[str], what: str) -> None:
            if step_id not in known:
                raise ValidationError(
                    f"Workflow {workflow.id}: {what} references unknown step '{step_id}'",
                    details={"step_id": step_id},
                )

        require(workflow.entry_step_id(), "start step")
        if workflow.error_handling.fallback_step_id:
            require(workflow.error_handling.fallback_step_id, "error handling fallback")

        for step in workflow.steps:
            if step.next_step_id:
                require(step.next_step_id, f"step '{step.id}' nextStepId")
            if step.error_step_id:
                require(step.error_step_id, f"step '{step.id}' errorStepId")

            if step.type == StepType.PARALLEL:
                children = _cfg(step.config, "steps", default=[])
                if not children:
                    raise ValidationError(f"Parallel step '{step.id}' has no child steps")
                for child in children:
                    require(child, f"parallel step '{step.id}'")
                    if child == step.id:
                        raise ValidationError(f"Parallel step '{step.id}' cannot run itself")
            elif step.type == StepType.LOOP:
                body = _cfg(step.config, "body")
                require(body, f"loop step '{step.id}' body")
                if body == step.id:
                    raise ValidationError(f"Loop step '{step.id}' cannot use itself as body")
            elif step.type == StepType.EXTENSION:
                if not _cfg(step.config, "extensionId", "extension_id"):
                    raise ValidationError(f"Extension step '{step.id}' has no extensionId")
                if not _cfg(step.config, "operation", "taskType", "task_type"):
                    raise ValidationError(f"Extension step '{step.id}' has no operation")

    # ------------------------------------------------------------------
    # Workflow execution
    # ------------------------------------------------------------------

    async def execute_workflow(
        self,
        workflow: WorkflowDefinition,
        inputs: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> WorkflowExecutionResult:
        """
        Execute a workflow definition

        Args:
            workflow: Workflow to run
            inputs: Initial variables (override the workflow's own variables)
            user_id: Optional user the run is attributed to

        Returns:
            WorkflowExecutionResult with every step result, the output of the
            last step that ran, the error list and the log trail

        Raises:
            ValidationError: If the workflow graph is malformed
        """
        self.validate_workflow(workflow)

        context = WorkflowExecutionContext(
            workflow_id=workflow.id,
            workflow_version=workflow.version,
            variables={**workflow.variables, **(inputs or {})},
            user_id=user_id,
        )
        execution_id = context.execution_id
        self._executions[execution_id] = context

        logger.debug(
            f"Starting workflow execution: {execution_id} "
            f"(workflow: {workflow.id}, version: {workflow.version})"
        )
        await self._execute_workflow_hooks("on_workflow_started", context)

        try:
            await self._run_steps(workflow, context)
        except Exception as e:
            logger.error(f"Workflow execution failed: {execution_id}: {e}")
            context.errors.append(
                ExecutionErrorRecord(
                    code="WORKFLOW_ERROR",
                    message=str(e),
                    stack=traceback.format_exc(),
                    recoverable=False,
                )
            )
            context.status = ExecutionStatus.FAILED
        finally:
            self._schedule_discard(execution_id)

        if context.status == ExecutionStatus.RUNNING:
            # routed failures still leave their record in errors
            context.status = ExecutionStatus.FAILED if context.errors else ExecutionStatus.COMPLETED
        context.end_time = utcnow()
        context.current_step_id = None

        result = WorkflowExecutionResult(
            execution_id=execution_id,
            workflow_id=workflow.id,
            status=context.status,
            start_time=context.start_time,
            end_time=context.end_time,
            duration=elapsed_ms(context.start_time, context.end_time),
            step_results=list(context.step_results.values()),
            final_output=self._get_final_output(context),
            errors=list(context.errors),
            logs=list(context.logs),
        )

        logger.debug(
            f"Workflow execution finished: {execution_id} "
            f"(status: {result.status.value}, duration: {result.duration}ms, errors: {len(result.errors)})"
        )
        await self._execute_workflow_hooks(f"on_workflow_{context.status.value}", context)
        return result

    async def _run_steps(self, workflow: WorkflowDefinition, context: WorkflowExecutionContext) -> None:
        current_step_id = workflow.entry_step_id()

        while current_step_id is not None:
            if context.status == ExecutionStatus.CANCELLED:
                self._log(context, "warn", "Execution cancelled, not starting next step", current_step_id)
                return

            step = workflow.get_step(current_step_id)
            if step is None:
                raise NotFoundError(f"Step not found: {current_step_id}")

            context.current_step_id = step.id
            result = await self._execute_step(step, context, workflow)
            context.step_results[step.id] = result
            context.last_step_id = step.id

            if context.status == ExecutionStatus.CANCELLED:
                self._log(context, "warn", "Execution cancelled", step.id)
                return

            if result.status != StepStatus.FAILED:
                current_step_id = step.next_step_id
                continue

            strategy = workflow.error_handling.strategy
            message = result.error.message if result.error else "unknown error"

            if strategy == ErrorStrategy.STOP:
                context.errors.append(
                    ExecutionErrorRecord(
                        step_id=step.id,
                        code="STEP_FAILED",
                        message=f"Step {step.name} failed: {message}",
                        stack=result.error.stack if result.error else None,
                        recoverable=False,
                    )
                )
                context.status = ExecutionStatus.FAILED
                return

            target = step.error_step_id
            if target is None and strategy == ErrorStrategy.FALLBACK:
                target = workflow.error_handling.fallback_step_id

            context.errors.append(
                ExecutionErrorRecord(
                    step_id=step.id,
                    code="STEP_FAILED",
                    message=f"Step {step.name} failed: {message}",
                    stack=result.error.stack if result.error else None,
                    recoverable=target is not None,
                )
            )
            if target is None:
                self._log(context, "error", "No error step configured, ending run", step.id)
                context.status = ExecutionStatus.FAILED
                return

            self._log(context, "warn", f"Routing to error step: {target}", step.id)
            current_step_id = target

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _execute_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> StepExecutionResult:
        """
        Execute a single step with its retry policy

        Never raises for step failures: the outcome is always a
        StepExecutionResult. BoundExceededError is never retried.
        """
        result = StepExecutionResult(step_id=step.id, step_name=step.name, start_time=utcnow())

        if not step.enabled:
            result.status = StepStatus.SKIPPED
            result.end_time = utcnow()
            result.duration = 0
            self._log(context, "info", f"Step disabled, skipping: {step.name}", step.id)
            return result

        policy = step.retry_policy or RetryPolicy(delay_ms=self.default_retry_delay_ms)
        handler = self._step_handlers.get(step.type)
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(policy.max_attempts):
            attempts = attempt + 1
            try:
                if handler is None:
                    raise ExecutionError(f"Unknown step type: {step.type}")

                self._log(context, "info", f"Executing step: {step.name}", step.id, {"attempt": attempt})
                output = await handler(step, context, workflow)

                result.status = StepStatus.COMPLETED
                result.output = output
                result.retries = attempt
                result.end_time = utcnow()
                result.duration = elapsed_ms(result.start_time, result.end_time)
                self._log(
                    context, "info", f"Step completed: {step.name}", step.id, {"duration": result.duration}
                )
                return result
            except BoundExceededError as e:
                last_error = e
                break
            except Exception as e:
                last_error = e
                if attempt < policy.max_attempts - 1 and policy.is_retryable(str(e)):
                    wait_ms = policy.wait_ms(attempt)
                    self._log(
                        context,
                        "warn",
                        f"Step failed, retrying in {wait_ms}ms",
                        step.id,
                        {"attempt": attempt, "error": str(e)},
                    )
                    await self._delay(wait_ms)
                else:
                    break

        result.status = StepStatus.FAILED
        result.retries = attempts
        result.end_time = utcnow()
        result.duration = elapsed_ms(result.start_time, result.end_time)
        if last_error is not None:
            result.error = ExecutionErrorRecord(
                step_id=step.id,
                code=last_error.code if isinstance(last_error, ExtensionFlowError) else "STEP_EXECUTION_FAILED",
                message=str(last_error),
                stack="".join(
                    traceback.format_exception(type(last_error), last_error, last_error.__traceback__)
                ),
                recoverable=not isinstance(last_error, BoundExceededError),
            )

        self._log(
            context,
            "error",
            f"Step failed: {step.name}",
            step.id,
            {"retries": attempts, "error": str(last_error) if last_error else None},
        )
        return result

    async def _execute_extension_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        """Delegate to the task executor; the step output is the Result payload"""
        if self.executor is None:
            raise ExecutionError("No task executor configured for extension steps")

        config = step.config
        extension_id = _cfg(config, "extensionId", "extension_id")
        task = Task(
            type=_cfg(config, "operation", "taskType", "task_type"),
            extension_id=extension_id,
            payload=resolve_references(_cfg(config, "payload", default={}), context.variables),
            priority=TaskPriority(_cfg(config, "priority", default=TaskPriority.NORMAL.value)),
            timeout=step.timeout,
            user_id=context.user_id,
            correlation_id=context.execution_id,
            metadata={"workflow_id": workflow.id, "step_id": step.id},
        )

        result = await self.executor.execute(task)
        if result.error is not None:
            raise ExecutionError(
                result.error.message,
                details={"code": result.error.code, "task_id": task.task_id, "extension_id": extension_id},
            )

        output_variable = _cfg(config, "outputVariable", "output_variable")
        if output_variable:
            context.variables[output_variable] = result.result
        return result.result

    async def _execute_conditional_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        """
        Evaluate conditions in order and report the chosen branch

        The branch is advisory: routing still follows next_step_id / error_step_id.
        """
        config = step.config
        branch, condition = select_branch(
            _cfg(config, "conditions", default=[]),
            context.variables,
            _cfg(config, "defaultBranch", "default_branch", default="default"),
        )
        output: Dict[str, Any] = {"branch": branch, "condition": condition}
        branches = _cfg(config, "branches")
        if branches:
            output["target"] = branches.get(branch)
        return output

    async def _execute_parallel_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        """
        Run child steps concurrently and join on all of them

        joinType "all" fails the step if any child failed; any other join
        type succeeds and reports the success/failure counts.
        """
        step_ids: List[str] = list(_cfg(step.config, "steps", default=[]))
        join_type = _cfg(step.config, "joinType", "join_type", default="all")

        snapshot = dict(context.variables)
        children = []
        for step_id in step_ids:
            child_step = workflow.get_step(step_id)
            if child_step is None:
                raise NotFoundError(f"Step not found: {step_id}")
            child_context = context.model_copy(update={"variables": dict(snapshot), "step_results": {}})
            children.append((child_step, child_context))

        results = await asyncio.gather(
            *(self._execute_step(child_step, child_context, workflow) for child_step, child_context in children)
        )

        for (child_step, child_context), child_result in sorted(
            zip(children, results), key=lambda item: item[0][0].id
        ):
            _merge_variables(context.variables, snapshot, child_context.variables)
            context.step_results.update(child_context.step_results)
            context.step_results[child_step.id] = child_result

        successful = sum(1 for r in results if r.status == StepStatus.COMPLETED)
        failed = sum(1 for r in results if r.status == StepStatus.FAILED)

        if join_type == "all" and failed > 0:
            raise ExecutionError(
                f"Parallel execution failed: {failed} steps failed",
                details={"successful": successful, "failed": failed},
            )

        return {
            "parallelResults": [r.model_dump(mode="json") for r in results],
            "successful": successful,
            "failed": failed,
            "joinType": join_type,
        }

    async def _execute_loop_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        """
        Run the body step once per element of a sequence variable

        A failing body iteration is recorded and the loop moves on to the next
        element. Raises BoundExceededError once more than maxIterations
        elements would be processed.
        """
        config = step.config
        items_source = _cfg(config, "items")
        items = items_source if isinstance(items_source, list) else context.variables.get(items_source)
        if items is None:
            items = []
        if not isinstance(items, (list, tuple)):
            raise ExecutionError(
                f"Loop items '{items_source}' is not a sequence (got {type(items).__name__})"
            )

        item_variable = _cfg(config, "itemVariable", "item_variable", default="item")
        index_variable = _cfg(config, "indexVariable", "index_variable")
        max_iterations = int(_cfg(config, "maxIterations", "max_iterations", default=self.max_loop_iterations))
        body_step = workflow.get_step(_cfg(config, "body"))
        if body_step is None:
            raise NotFoundError(f"Loop body step not found: {_cfg(config, 'body')}")

        loop_results = []
        iterations = 0
        successful = failed = 0
        for item in items:
            if iterations >= max_iterations:
                raise BoundExceededError(
                    f"Max iterations ({max_iterations}) exceeded",
                    details={"max_iterations": max_iterations, "items": len(items)},
                )

            context.variables[item_variable] = item
            if index_variable:
                context.variables[index_variable] = iterations

            body_result = await self._execute_step(body_step, context, workflow)
            context.step_results[body_step.id] = body_result
            loop_results.append(body_result.model_dump(mode="json"))
            iterations += 1

            if body_result.status == StepStatus.COMPLETED:
                successful += 1
            elif body_result.status == StepStatus.FAILED:
                failed += 1
                message = body_result.error.message if body_result.error else "unknown error"
                logger.warning(f"Loop body step {body_step.id} failed at iteration {iterations}: {message}")

        return {
            "loopResults": loop_results,
            "iterations": iterations,
            "successful": successful,
            "failed": failed,
        }

    async def _execute_delay_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        delay_ms = _cfg(step.config, "delayMs", "delay_ms", default=1000)
        await self._delay(delay_ms)
        return {"delayMs": delay_ms}

    async def _execute_script_step(
        self,
        step: WorkflowStep,
        context: WorkflowExecutionContext,
        workflow: WorkflowDefinition,
    ) -> Any:
        # variables change only once every operation has succeeded
        variables = dict(context.variables)
        output = run_script(step.config, variables)
        context.variables.clear()
        context.variables.update(variables)
        return output

    # ------------------------------------------------------------------
    # Execution records
    # ------------------------------------------------------------------

    def get_execution_status(self, execution_id: str) -> Optional[WorkflowExecutionContext]:
        return self._executions.get(execution_id)

    def list_executions(self) -> List[WorkflowExecutionContext]:
        return list(self._executions.values())

    async def cancel_execution(self, execution_id: str) -> bool:
        """
        Request cancellation of a running execution

        The run stops at the next step boundary; the step in flight finishes.

        Returns:
            True if the execution was running and is now marked cancelled,
            False if it had already finished

        Raises:
            NotFoundError: If the execution id is unknown (or already discarded)
        """
        context = self._executions.get(execution_id)
        if context is None:
            raise NotFoundError(
                f"Execution not found: {execution_id}",
                details={"execution_id": execution_id},
            )
        if context.status != ExecutionStatus.RUNNING:
            return False
        context.status = ExecutionStatus.CANCELLED
        logger.info(f"Execution cancelled: {execution_id}")
        return True

    def _schedule_discard(self, execution_id: str) -> None:
        if self.retention_seconds <= 0:
            self._executions.pop(execution_id, None)
            return
        loop = asyncio.get_running_loop()
        loop.call_later(self.retention_seconds, self._executions.pop, execution_id, None)

    def _get_final_output(self, context: WorkflowExecutionContext) -> Any:
        if context.last_step_id is None:
            return None
        last_result = context.step_results.get(context.last_step_id)
        return last_result.output if last_result else None

    def _log(
        self,
        context: WorkflowExecutionContext,
        level: str,
        message: str,
        step_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        context.logs.append(ExecutionLog(level=level, message=message, step_id=step_id, context=data))
        logger.debug(f"[{context.execution_id}] {message}")

    async def _delay(self, ms: float) -> None:
        await asyncio.sleep(ms / 1000)

    async def _execute_workflow_hooks(self, hook_type: str, context: WorkflowExecutionContext) -> None:
        for hook in get_workflow_hooks(hook_type):
            try:
                if iscoroutinefunction(hook):
                    await hook(context)
                else:
                    hook(context)
            except Exception as e:
                logger.warning(
                    f"Workflow hook {getattr(hook, '__name__', hook)} ({hook_type}) failed "
                    f"for execution {context.execution_id}: {str(e)}"
                )


def _merge_variables(target: Dict[str, Any], snapshot: Dict[str, Any], changed: Dict[str, Any]) -> None:
    """Apply one parallel child's variable changes (relative to the pre-fan-out snapshot)"""
    for name, value in changed.items():
        if name not in snapshot or snapshot[name] is not value:
            target[name] = value
    for name in snapshot:
        if name not in changed:
            target.pop(name, None)


__all__ = ["WorkflowEngine"]
