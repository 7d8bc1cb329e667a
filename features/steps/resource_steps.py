from pathlib import Path
from typing import Any

from behave import given, then, when

from batchkit.constants import RESOURCE_DISPOSAL_FAILED, RESOURCE_DISPOSED, RESOURCE_PRE_DISPOSAL
from batchkit.core.handles import unwrap
from batchkit.kinds import register_standard_kinds
from batchkit.lifecycle import Job


class Owner(Job):
    """Owning context used outside a job run."""


class FileJob(Job):
    def execute(self, *names: str) -> None:
        for name in names:
            self.get_file(Path(self.config["tmp_dir"]) / name, "w")

    def fail(self, name: str, message: str) -> None:
        self.get_file(Path(self.config["tmp_dir"]) / name, "w")
        raise OSError(message)


def count_published(context, event: str) -> None:
    def record(source: Any, *payload: Any) -> None:
        context.published[event] = context.published.get(event, 0) + 1

    context.runtime.bus.subscribe(None, event, record)


def open_files(context, *names: str) -> None:
    for name in names:
        context.files[name] = context.owner.get_file(Path(context.tmp_dir) / name, "w")


@given("the standard resource kinds are registered")
def step_standard_kinds(context) -> None:
    register_standard_kinds(context.runtime.manager)

    def record_disposal(source: Any) -> None:
        context.disposed_names.append(Path(source.name).name)

    context.runtime.bus.subscribe(None, RESOURCE_DISPOSED, record_disposal)
    for event in (RESOURCE_DISPOSED, RESOURCE_DISPOSAL_FAILED):
        count_published(context, event)


@given("an owning context")
def step_owning_context(context) -> None:
    context.owner = Owner(
        config={"tmp_dir": context.tmp_dir}, resource_manager=context.runtime.manager
    )
    context.files = {}


@given('the owner has opened files "{first}" and "{second}"')
def step_open_two_files(context, first: str, second: str) -> None:
    open_files(context, first, second)


@given('the owner has opened file "{name}"')
def step_open_file(context, name: str) -> None:
    open_files(context, name)


@given('a subscriber vetoes disposal of file "{name}"')
def step_veto_disposal(context, name: str) -> None:
    context.runtime.bus.subscribe(
        context.files[name], RESOURCE_PRE_DISPOSAL, lambda source: False
    )


@when("the owner cleans up its resources")
def step_cleanup(context) -> None:
    context.owner.cleanup_resources()


@when('the owner disposes of file "{name}"')
def step_dispose(context, name: str) -> None:
    context.owner.dispose_resource(context.files[name])


@when('the owner closes file "{name}" directly')
def step_close_directly(context, name: str) -> None:
    context.files[name].close()


@when('a job opens files "{first}" and "{second}" and finishes')
def step_job_run(context, first: str, second: str) -> None:
    context.job = FileJob(config={"tmp_dir": context.tmp_dir})
    context.runtime.runner().run(context.job, "execute", first, second)


@when('a job opens file "{name}" and fails with "{message}"')
def step_job_failure(context, name: str, message: str) -> None:
    context.job = FileJob(config={"tmp_dir": context.tmp_dir})
    try:
        context.runtime.runner().run(context.job, "fail", name, message)
    except OSError as e:
        context.error = e
    else:
        raise AssertionError("Expected the job to fail")


@then('the files are disposed in the order "{order}"')
def step_disposal_order(context, order: str) -> None:
    expected = [name.strip() for name in order.split(",")]
    assert context.disposed_names == expected, context.disposed_names


@then("the owner holds no resources")
def step_owner_empty(context) -> None:
    assert context.owner.held_resources == []


@then("the owner holds {count:d} resource")
def step_owner_holds(context, count: int) -> None:
    assert len(context.owner.held_resources) == count


@then("the job holds no resources")
def step_job_empty(context) -> None:
    assert context.job.held_resources == []


@then('"{event}" was published {count:d} times')
def step_published_count(context, event: str, count: int) -> None:
    assert context.published.get(event, 0) == count, context.published


@then('file "{name}" is still open')
def step_still_open(context, name: str) -> None:
    assert not unwrap(context.files[name]).closed


@then('the job failure "{message}" is logged once')
def step_failure_logged(context, message: str) -> None:
    failures = [
        record
        for record in context.log_capture.records
        if record.name == "batchkit.jobs" and message in record.getMessage()
    ]
    assert len(failures) == 1, [record.getMessage() for record in failures]
