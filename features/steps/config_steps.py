from pathlib import Path

import yaml
from behave import given, then, when

from batchkit.core.config import ConfigLoader
from batchkit.exceptions import ConfigurationError
from batchkit.lifecycle import Job


def write_config(context, config_data: dict) -> None:
    context.config_path = Path(context.tmp_dir) / "batchkit.yaml"
    context.config_path.write_text(yaml.dump(config_data))


@given('a config file declaring "{helper}" as "{kind}" acquired with "{acquire}"')
def step_config_with_resource(context, helper: str, kind: str, acquire: str) -> None:
    write_config(
        context,
        {
            "defaults": {"log_level": "info"},
            "resources": {helper: {"kind": kind, "acquire": acquire}},
        },
    )


@given('a config file with default "{key}" "{default}" and job "{job}" using "{override}"')
def step_config_with_job(context, key: str, default: str, job: str, override: str) -> None:
    write_config(context, {"defaults": {key: default}, "jobs": {job: {key: override}}})


@when("I apply the configuration")
def step_apply_config(context) -> None:
    loader = ConfigLoader()
    context.merged_config = loader.get_runtime_config(loader.load_config(str(context.config_path)))
    loader.validate_config(context.merged_config)
    context.runtime.configure(context.merged_config)


@when('I load the runtime configuration for job "{job}"')
def step_load_job_config(context, job: str) -> None:
    loader = ConfigLoader()
    context.merged_config = loader.get_runtime_config(
        loader.load_config(str(context.config_path)), job
    )


@when("I validate the configuration")
def step_validate_config(context) -> None:
    loader = ConfigLoader()
    merged = loader.get_runtime_config(loader.load_config(str(context.config_path)))
    try:
        loader.validate_config(merged)
    except ConfigurationError as e:
        context.error = e
    else:
        context.error = None


@then('helper "{helper}" is registered with disposal "{disposal}"')
def step_helper_registered(context, helper: str, disposal: str) -> None:
    assert helper in context.runtime.manager
    assert context.runtime.manager.helper(helper).disposal_method == disposal


@then('an owner can query a connection from "{helper}"')
def step_query_connection(context, helper: str) -> None:
    context.owner = Job(resource_manager=context.runtime.manager)
    connection = context.owner.acquire_resource(helper, ":memory:")
    assert connection.execute("SELECT 1").fetchone() == (1,)


@then('setting "{key}" is "{value}"')
def step_setting_value(context, key: str, value: str) -> None:
    assert context.merged_config[key] == value, context.merged_config


@then('a configuration error mentioning "{text}" is raised')
def step_configuration_error(context, text: str) -> None:
    assert context.error is not None, "Expected a configuration error"
    assert text in str(context.error), str(context.error)
