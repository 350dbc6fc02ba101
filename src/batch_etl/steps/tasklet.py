"""
TaskletStep: a step that runs one opaque unit of work.

Used for steps that are not naturally chunked, such as decision points. The
tasklet receives the StepContribution and may set its exit status to steer
the flow.
"""

from typing import Callable, Iterable, Optional, Union

from ..core.execution import StepContribution
from ..core.status import ExitCode, ExitStatus
from .base import AbstractStep


Tasklet = Callable[[StepContribution], None]


class TaskletStep(AbstractStep):
    """
    Single-shot step wrapping a callable.

    Example:
        >>> def always_fails(contribution: StepContribution) -> None:
        ...     contribution.exit_status = ExitStatus.FAILED
        ...
        >>> step = TaskletStep("step1", always_fails, exit_codes=["FAILED"])
        >>> step.run().exit_status.code
        'FAILED'
    """

    def __init__(
        self,
        name: str,
        tasklet: Tasklet,
        exit_codes: Optional[Iterable[Union[str, ExitCode, ExitStatus]]] = None,
    ):
        """
        Initialize the tasklet step.

        Args:
            name: Step identifier
            tasklet: Callable receiving the StepContribution
            exit_codes: Codes the tasklet may set on the contribution. If None,
                        the tasklet may set any code and only a '*' transition
                        covers this step when the flow is built.
        """
        super().__init__(name)
        self.tasklet = tasklet
        self.exit_codes = (
            frozenset(ExitStatus.of(code).code for code in exit_codes)
            if exit_codes is not None
            else None
        )

    @property
    def possible_exit_codes(self) -> Optional[frozenset[str]]:
        if self.exit_codes is None:
            return None
        return self.exit_codes | {ExitCode.COMPLETED.value, ExitCode.FAILED.value}

    def execute(self, contribution: StepContribution) -> None:
        self.tasklet(contribution)
