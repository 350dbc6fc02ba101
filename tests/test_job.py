"""
Tests for Job and JobBuilder.

Validates:
- Every run returns a fresh JobResult
- Dry run validates without executing steps
- Step errors are recorded, never raised
- Restart of failed steps from a previous result
"""

import logging

import pytest

from batch_etl.core.exceptions import FlowConfigurationError
from batch_etl.core.execution import StepContribution
from batch_etl.core.job import Job, JobBuilder
from batch_etl.core.status import BatchStatus, ExitStatus
from batch_etl.processors.base import FunctionProcessor
from batch_etl.sinks.base import AbstractSink
from batch_etl.sources.memory import ListSource
from batch_etl.steps.chunk import ChunkStep
from batch_etl.steps.tasklet import TaskletStep


class CollectingSink(AbstractSink):
    def __init__(self):
        self.items = []

    def write(self, items):
        self.items.extend(items)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def two_step_job(calls):
    def first(contribution: StepContribution) -> None:
        calls.append("first")

    def second(contribution: StepContribution) -> None:
        calls.append("second")

    return (
        JobBuilder("twoStepJob")
        .start(TaskletStep("first", first))
        .next(TaskletStep("second", second))
        .build()
    )


def test_run_returns_fresh_result_each_time(two_step_job, calls):
    """Test that repeated runs share no result state."""
    first = two_step_job.run()
    second = two_step_job.run()

    assert first is not second
    assert first.step_results is not second.step_results
    assert first.step_names == second.step_names == ["first", "second"]
    assert calls == ["first", "second", "first", "second"]
    assert first.exit_status == ExitStatus.COMPLETED
    assert first.status is BatchStatus.COMPLETED


def test_dry_run_executes_nothing(two_step_job, calls, caplog):
    """Test that a dry run logs the flow and runs no step."""
    with caplog.at_level(logging.INFO, logger="batch_etl.job.twoStepJob"):
        result = two_step_job.run(dry_run=True)

    assert calls == []
    assert result.step_results == []
    assert result.exit_status == ExitStatus.NOOP
    messages = [r.getMessage() for r in caplog.records if r.name == "batch_etl.job.twoStepJob"]
    assert "Dry run validation completed successfully" in messages
    assert "  (first, '*') -> second" in messages


def test_run_logs_start_and_summary(two_step_job, caplog):
    with caplog.at_level(logging.INFO, logger="batch_etl.job.twoStepJob"):
        two_step_job.run()

    messages = [r.getMessage() for r in caplog.records if r.name == "batch_etl.job.twoStepJob"]
    assert messages[0] == "Job 'twoStepJob' starting at step 'first'"
    assert messages[-1].startswith("Job 'twoStepJob' finished with COMPLETED after 2 steps")


def test_step_errors_do_not_escape_run():
    """Test that a raising step produces a FAILED job result instead of an exception."""

    def explode(contribution: StepContribution) -> None:
        raise RuntimeError("boom")

    job = JobBuilder("explodingJob").start(TaskletStep("explode", explode)).build()

    result = job.run()

    assert result.exit_status == ExitStatus.FAILED
    assert result.status is BatchStatus.FAILED
    step_result = result.step_result("explode")
    assert step_result.failed
    assert isinstance(step_result.failure, RuntimeError)


def test_plain_string_exit_status_is_routed():
    """Test that a tasklet may report its exit code as a plain string."""

    def give_up(contribution: StepContribution) -> None:
        contribution.exit_status = "FAILED"

    def recover(contribution: StepContribution) -> None:
        pass

    giving_up = TaskletStep("giveUp", give_up)
    job = (
        JobBuilder("stringStatusJob")
        .start(giving_up)
            .on("FAILED").to(TaskletStep("recover", recover))
        .from_(giving_up)
            .on("*").end()
        .build()
    )

    result = job.run()

    assert result.step_names == ["giveUp", "recover"]
    assert result.step_result("giveUp").exit_status == ExitStatus.FAILED
    assert result.exit_status == ExitStatus.COMPLETED


def test_keyboard_interrupt_is_not_swallowed():
    def interrupt(contribution: StepContribution) -> None:
        raise KeyboardInterrupt

    job = JobBuilder("interruptedJob").start(TaskletStep("interrupt", interrupt)).build()

    with pytest.raises(KeyboardInterrupt):
        job.run()


def test_restart_resumes_failed_chunk_step():
    """Test that restart_from seeds the failed step with its last committed position."""
    broken = {"active": True}

    def flaky(n):
        if broken["active"] and n == 23:
            raise RuntimeError("transient")
        return n

    sink = CollectingSink()
    step = ChunkStep(
        "copyStep",
        ListSource(list(range(30)), name="numbers"),
        sink,
        processor=FunctionProcessor(flaky),
        chunk_size=10,
    )
    job = JobBuilder("copyJob").start(step).build()

    failed = job.run()
    assert failed.status is BatchStatus.FAILED
    assert sink.items == list(range(20))

    broken["active"] = False
    resumed = job.run(restart_from=failed)

    assert resumed.status is BatchStatus.COMPLETED
    assert resumed.step_result("copyStep").read_count == 10
    assert sink.items == list(range(30))


def test_restart_does_not_seed_completed_steps(calls):
    """Test that only steps that failed in the previous run are seeded."""
    seen_contexts = {}

    def remember(name):
        def tasklet(contribution: StepContribution) -> None:
            seen_contexts[name] = dict(
                (key, contribution.execution_context.get(key))
                for key in contribution.execution_context
            )
            contribution.execution_context.put("marker", name)
            if name == "second" and not calls:
                calls.append("failed once")
                raise RuntimeError("first attempt fails")

        return tasklet

    job = (
        JobBuilder("restartJob")
        .start(TaskletStep("first", remember("first")))
        .next(TaskletStep("second", remember("second")))
        .build()
    )

    failed = job.run()
    assert failed.step_result("second").failed

    resumed = job.run(restart_from=failed)

    assert resumed.status is BatchStatus.COMPLETED
    assert seen_contexts["first"] == {}
    assert seen_contexts["second"] == {"marker": "second"}
    # The previous result keeps its own context
    assert failed.step_result("second").execution_context.get("marker") == "second"


def test_restart_from_another_job_is_rejected(two_step_job):
    other = JobBuilder("otherJob").start(TaskletStep("only", lambda c: None)).build()

    with pytest.raises(ValueError):
        two_step_job.run(restart_from=other.run())


def test_job_builder_validates_flow():
    step = TaskletStep("step", lambda c: None)
    other = TaskletStep("other", lambda c: None)

    with pytest.raises(FlowConfigurationError):
        JobBuilder("brokenJob").start(step).on("COMPLETED").to(other).build()


def test_job_builder_end_and_fail():
    step = TaskletStep("step", lambda c: None)

    ended = JobBuilder("endedJob").start(step).on("*").end("DONE").build()
    failed = JobBuilder("failedJob").start(step).on("*").fail().build()

    assert ended.run().exit_status.code == "DONE"
    assert failed.run().status is BatchStatus.FAILED


def test_job_requires_name(two_step_job):
    with pytest.raises(ValueError):
        Job("", two_step_job.flow)


def test_step_result_lookup(two_step_job):
    result = two_step_job.run()

    assert result.step_result("second").name == "second"
    assert result.step_result("missing") is None
    assert result.duration_seconds >= 0
