"""
Flow controller: conditional sequencing of steps on exit status.

A Flow is a start step plus, for each step, an ordered list of TransitionRules.
After a step runs, its exit status is matched against that step's rules in
declaration order; the first match names the next step or ends the flow.
Flows are built and validated by FlowBuilder and are immutable afterwards.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Optional, Union

from .exceptions import FlowConfigurationError
from .execution import StepResult
from .state import ExecutionContext
from .status import WILDCARD, ExitCode, ExitStatus, pattern_matches

if TYPE_CHECKING:
    from ..steps.base import AbstractStep


logger = logging.getLogger(__name__)


class _End:
    """Marker for the terminal state of a flow."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END = _End()


@dataclass(frozen=True)
class TransitionRule:
    """
    One row of a flow's transition table.

    Attributes:
        from_step: Name of the step the rule applies to
        pattern: Exit code or wildcard pattern ('*' any run, '?' one character)
        to_step: Name of the next step, or None if the rule ends the flow
        end_status: Status the flow ends with; None ends with the step's own
                    exit status (only meaningful when to_step is None)

    Example:
        >>> TransitionRule("step1", "FAILED", to_step="conditionalJobStep3").matches(ExitStatus.FAILED)
        True
    """

    from_step: str
    pattern: str
    to_step: Optional[str] = None
    end_status: Optional[ExitStatus] = None

    @property
    def is_end(self) -> bool:
        return self.to_step is None

    def matches(self, exit_status: ExitStatus) -> bool:
        return pattern_matches(self.pattern, exit_status.code)

    def __str__(self) -> str:
        target = self.to_step if self.to_step is not None else f"END({self.end_status or 'step status'})"
        return f"({self.from_step}, {self.pattern!r}) -> {target}"


def _is_catch_all(pattern: str) -> bool:
    return bool(pattern) and set(pattern) == {WILDCARD}


class Flow:
    """
    Immutable step graph driven by exit statuses.

    Resolution is a pure function of the rule table and the exit status, so
    the same statuses always produce the same path.

    Example:
        >>> flow = (
        ...     FlowBuilder("stepNextConditionalJob")
        ...     .start(step1).on("FAILED").to(step3)
        ...     .from_(step1).on("*").to(step2)
        ...     .from_(step2).on("*").to(step3)
        ...     .from_(step3).on("*").end()
        ...     .build()
        ... )
        >>> flow.resolve("step1", ExitStatus.FAILED)
        'conditionalJobStep3'
    """

    def __init__(
        self,
        name: str,
        start: str,
        steps: Mapping[str, "AbstractStep"],
        rules: Mapping[str, list[TransitionRule]],
    ):
        """
        Build and validate a flow.

        Steps without rules get an implicit '*' -> END rule. Prefer FlowBuilder
        over calling this directly.

        Args:
            name: Flow (job) name, for logs and errors
            start: Name of the first step
            steps: Step name -> step
            rules: Step name -> ordered transition rules

        Raises:
            FlowConfigurationError: If the flow is malformed
        """
        self.name = name
        self.start = start

        table = {}
        for step_name in steps:
            step_rules = list(rules.get(step_name, ()))
            if not step_rules:
                step_rules = [TransitionRule(step_name, WILDCARD)]
            table[step_name] = tuple(step_rules)

        self.steps = MappingProxyType(dict(steps))
        self.rules = MappingProxyType(table)

        problems = self._validate(rules)
        if problems:
            raise FlowConfigurationError(flow_name=name, problems=problems)

    def _validate(self, declared: Mapping[str, list[TransitionRule]]) -> list[str]:
        problems = []

        if not self.start or self.start not in self.steps:
            problems.append(f"Start step {self.start!r} is not part of the flow")

        for step_name in declared:
            if step_name not in self.steps:
                problems.append(f"Transition declared from unknown step {step_name!r}")

        for step_name, step_rules in self.rules.items():
            for rule in step_rules:
                if rule.to_step is not None and rule.to_step not in self.steps:
                    problems.append(f"{rule} targets unknown step {rule.to_step!r}")

            patterns = [rule.pattern for rule in step_rules]
            codes = self.steps[step_name].possible_exit_codes
            if codes is None:
                if not any(_is_catch_all(p) for p in patterns):
                    problems.append(
                        f"Step {step_name!r} can exit with any code and needs a '*' transition"
                    )
                continue

            for code in sorted(codes):
                if not any(pattern_matches(p, code) for p in patterns):
                    problems.append(f"Step {step_name!r} has no transition for exit code {code!r}")

        return problems

    def match(self, step_name: str, exit_status: ExitStatus) -> Optional[TransitionRule]:
        """Return the first rule of a step matching the exit status, or None."""
        for rule in self.rules[step_name]:
            if rule.matches(exit_status):
                return rule
        return None

    def resolve(self, step_name: str, exit_status: ExitStatus) -> Union[str, _End]:
        """
        Return the name of the step to run next, or END.

        Args:
            step_name: Step that just finished
            exit_status: Its exit status

        Returns:
            Next step name, or END when the matching rule ends the flow or no
            rule matches
        """
        rule = self.match(step_name, exit_status)
        if rule is None or rule.is_end:
            return END
        return rule.to_step

    def run(
        self,
        execution_contexts: Optional[Mapping[str, ExecutionContext]] = None,
        job_logger: Optional[logging.Logger] = None,
    ) -> tuple[ExitStatus, list[StepResult]]:
        """
        Execute steps from the start step until the flow ends.

        Args:
            execution_contexts: Optional step name -> context to start each
                                step from (restart); each step gets a copy
            job_logger: Logger for transition messages (defaults to module logger)

        Returns:
            Tuple of (final exit status, step results in execution order)
        """
        log = job_logger or logger
        contexts = execution_contexts or {}
        results = []

        current = self.start
        while True:
            step = self.steps[current]
            seed = contexts.get(current)
            result = step.run(seed.copy() if seed is not None else None)
            results.append(result)

            rule = self.match(current, result.exit_status)
            if rule is None:
                log.warning(
                    f"No transition from {current!r} matches {result.exit_status}; ending flow"
                )
                return result.exit_status, results

            if rule.is_end:
                final = rule.end_status if rule.end_status is not None else result.exit_status
                log.info(f"{rule} matched {result.exit_status}; flow ends with {final}")
                return final, results

            log.info(f"{rule} matched {result.exit_status}")
            current = rule.to_step

    def describe(self) -> list[str]:
        """Return the transition table as readable lines, start step first."""
        lines = []
        for step_name in sorted(self.rules, key=lambda n: (n != self.start, n)):
            lines.extend(str(rule) for rule in self.rules[step_name])
        return lines

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"Flow(name={self.name!r}, start={self.start!r}, steps={list(self.steps)!r})"


class TransitionBuilder:
    """Pending transition returned by FlowBuilder.on(); completed by to(), end() or fail()."""

    def __init__(self, parent: "FlowBuilder", from_step: str, pattern: str):
        self._parent = parent
        self._from_step = from_step
        self._pattern = pattern

    def to(self, step: "AbstractStep") -> "FlowBuilder":
        """Go to a step on match; the builder then continues from that step."""
        self._parent._register(step)
        self._parent._add_rule(TransitionRule(self._from_step, self._pattern, to_step=step.name))
        self._parent._current = step.name
        return self._parent

    def end(self, status: Union[ExitStatus, ExitCode, str, None] = None) -> "FlowBuilder":
        """End the flow on match, with the given status or the step's own exit status."""
        end_status = ExitStatus.of(status) if status is not None else None
        self._parent._add_rule(
            TransitionRule(self._from_step, self._pattern, end_status=end_status)
        )
        return self._parent

    def fail(self) -> "FlowBuilder":
        """End the flow with FAILED on match."""
        return self.end(ExitStatus.FAILED)


class FlowBuilder:
    """
    Fluent builder for flows.

    The builder tracks a current step: start(), to() and next() move it to the
    step they name, from_() moves it back to an earlier step. on(pattern)
    opens a transition from the current step.

    Example:
        >>> flow = (
        ...     FlowBuilder("stepNextConditionalJob")
        ...     .start(step1)
        ...         .on("FAILED").to(step3)
        ...         .on("*").end()
        ...     .from_(step1)
        ...         .on("*").to(step2)
        ...         .next(step3)
        ...     .build()
        ... )
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError("Flow name cannot be empty")

        self.name = name
        self._start: Optional[str] = None
        self._current: Optional[str] = None
        self._steps: dict[str, "AbstractStep"] = {}
        self._rules: dict[str, list[TransitionRule]] = {}
        self._problems: list[str] = []

    def _register(self, step: "AbstractStep") -> None:
        existing = self._steps.get(step.name)
        if existing is None:
            self._steps[step.name] = step
        elif existing is not step:
            problem = f"Two different steps are named {step.name!r}"
            if problem not in self._problems:
                self._problems.append(problem)

    def _add_rule(self, rule: TransitionRule) -> None:
        step_rules = self._rules.setdefault(rule.from_step, [])
        # Repeating an identical rule (e.g. two paths converging on one step) is a no-op
        if rule not in step_rules:
            step_rules.append(rule)

    def _require_current(self, operation: str) -> str:
        if self._current is None:
            raise FlowConfigurationError(
                flow_name=self.name,
                problems=[f"{operation}() called before start()"],
            )
        return self._current

    def start(self, step: "AbstractStep") -> "FlowBuilder":
        """Set the first step of the flow."""
        if self._start is not None and self._start != step.name:
            self._problems.append(
                f"Flow already starts with {self._start!r}; cannot start with {step.name!r}"
            )
        self._register(step)
        self._start = step.name
        self._current = step.name
        return self

    def on(self, pattern: Union[ExitCode, str]) -> TransitionBuilder:
        """Open a transition from the current step for exit codes matching pattern."""
        from_step = self._require_current("on")
        if isinstance(pattern, ExitCode):
            pattern = pattern.value
        if not pattern:
            raise ValueError("Transition pattern cannot be empty")
        return TransitionBuilder(self, from_step, pattern)

    def next(self, step: "AbstractStep") -> "FlowBuilder":
        """Go to step whatever the current step's exit code; same as on('*').to(step)."""
        return self.on(WILDCARD).to(step)

    def from_(self, step: "AbstractStep") -> "FlowBuilder":
        """Continue declaring transitions from an already declared step."""
        self._require_current("from_")
        if step.name not in self._steps:
            self._problems.append(
                f"from_() refers to step {step.name!r} which is not reachable from start()"
            )
        self._register(step)
        self._current = step.name
        return self

    def build(self) -> Flow:
        """
        Validate the declarations and return the immutable Flow.

        Raises:
            FlowConfigurationError: If the flow is empty or malformed
        """
        if self._start is None:
            raise FlowConfigurationError(flow_name=self.name, problems=["Flow has no start step"])

        try:
            flow = Flow(self.name, self._start, self._steps, self._rules)
        except FlowConfigurationError as e:
            raise FlowConfigurationError(
                flow_name=self.name, problems=self._problems + e.problems
            ) from None

        if self._problems:
            raise FlowConfigurationError(flow_name=self.name, problems=list(self._problems))

        return flow
