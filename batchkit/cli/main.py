"""CLI entry point for batchkit."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from typing import Any

import fire
import paramiko

from batchkit.constants import (
    DEBUG_ENV_VAR,
    RESOURCE_ACQUIRED,
    RESOURCE_ACQUISITION_FAILED,
    RESOURCE_DISPOSAL_FAILED,
    RESOURCE_DISPOSED,
    RESOURCE_PRE_ACQUIRE,
    RESOURCE_PRE_DISPOSAL,
)
from batchkit.core.config import ConfigLoader
from batchkit.core.events import Subscription
from batchkit.core.handles import unwrap
from batchkit.exceptions import ConfigurationError, ResourceError
from batchkit.kinds import register_standard_kinds
from batchkit.lifecycle import Job
from batchkit.logging import configure_logging
from batchkit.runtime import Runtime

PROBED_EVENTS = (
    RESOURCE_PRE_ACQUIRE,
    RESOURCE_ACQUIRED,
    RESOURCE_ACQUISITION_FAILED,
    RESOURCE_PRE_DISPOSAL,
    RESOURCE_DISPOSED,
    RESOURCE_DISPOSAL_FAILED,
)


class ProbeJob(Job):
    """Throwaway owning context used to try out a configured resource."""

    def execute(self, helper: str, *args: Any) -> Any:
        return self.acquire_resource(helper, *args)


class EventRecorder:
    """Subscriber collecting the names of events it receives.

    Attributes
    ----------
    events : list[str]
        Event names in delivery order
    """

    def __init__(self) -> None:
        self.events: list[str] = []
        self.subscriptions: list[Subscription] = []

    def attach(self, runtime: Runtime, events: tuple[str, ...]) -> None:
        for event in events:
            self.subscriptions.append(runtime.bus.subscribe(None, event, self._recorder(event)))

    def detach(self, runtime: Runtime) -> None:
        for subscription in self.subscriptions:
            runtime.bus.cancel(subscription)
        self.subscriptions.clear()

    def _recorder(self, event: str) -> Callable[..., bool]:
        def record(source: Any, *payload: Any) -> bool:
            self.events.append(event)
            # Observing only; never veto pre-acquire or pre-disposal
            return True

        return record


class BatchKitCLI:
    """Inspect and try out configured resource kinds.

    Parameters
    ----------
    config_loader : ConfigLoader | None
        Configuration loader (default: ConfigLoader)
    runtime_factory : Callable[..., Runtime] | None
        Factory creating the runtime (default: Runtime.create)
    """

    def __init__(
        self,
        config_loader: ConfigLoader | None = None,
        runtime_factory: Callable[..., Runtime] | None = None,
    ) -> None:
        self._config_loader = config_loader or ConfigLoader()
        self._runtime_factory = runtime_factory or Runtime.create

    def _load(
        self, config: str | None, job: str | None, standard_kinds: bool
    ) -> tuple[dict[str, Any], Runtime]:
        """Load, validate and apply configuration to a new runtime.

        Parameters
        ----------
        config : str | None
            Config file path
        job : str | None
            Job section to merge
        standard_kinds : bool
            Also register the built-in file, SQLite, SSH and AWS kinds

        Returns
        -------
        tuple[dict[str, Any], Runtime]
            Merged configuration and configured runtime
        """
        full_config = self._config_loader.load_config(config)
        merged = self._config_loader.get_runtime_config(full_config, job)
        self._config_loader.validate_config(merged)

        runtime = self._runtime_factory()
        if standard_kinds:
            register_standard_kinds(runtime.manager)
        runtime.configure(merged)
        return merged, runtime

    def check(self, config: str | None = None, job: str | None = None) -> str:
        """Validate configuration and the resource kinds it declares.

        Parameters
        ----------
        config : str | None
            Config file path (default: $BATCHKIT_CONFIG or batchkit.yaml)
        job : str | None
            Job section to merge into the defaults

        Returns
        -------
        str
            Summary line
        """
        merged, _ = self._load(config, job, standard_kinds=False)
        return f"Configuration OK: {len(merged.get('resources', {}))} resource kind(s) declared"

    def kinds(
        self, config: str | None = None, job: str | None = None, standard_kinds: bool = True
    ) -> list[str]:
        """List registered resource kinds.

        Parameters
        ----------
        config : str | None
            Config file path (default: $BATCHKIT_CONFIG or batchkit.yaml)
        job : str | None
            Job section to merge into the defaults
        standard_kinds : bool
            Include the built-in kinds

        Returns
        -------
        list[str]
            One ``helper: kind (disposal)`` line per kind
        """
        _, runtime = self._load(config, job, standard_kinds)
        lines = []
        for helper_name in runtime.manager.helper_names():
            registration = runtime.manager.helper(helper_name)
            kind = registration.kind
            lines.append(
                f"{helper_name}: {kind.__module__}.{kind.__qualname__} "
                f"(#{registration.disposal_method})"
            )
        return lines

    def probe(
        self,
        helper: str,
        *args: Any,
        config: str | None = None,
        job: str | None = None,
    ) -> dict[str, Any]:
        """Acquire a resource, then release it, reporting lifecycle events.

        Parameters
        ----------
        helper : str
            Acquisition helper name, e.g. get_sqlite_connection
        *args : Any
            Arguments for the acquisition helper
        config : str | None
            Config file path (default: $BATCHKIT_CONFIG or batchkit.yaml)
        job : str | None
            Job section whose settings the probe owner uses

        Returns
        -------
        dict[str, Any]
            Helper name, resource type and events observed
        """
        merged, runtime = self._load(config, job, standard_kinds=True)
        recorder = EventRecorder()
        recorder.attach(runtime, PROBED_EVENTS)

        probe_job = ProbeJob(config=merged, resource_manager=runtime.manager)
        try:
            resource = runtime.runner().run(probe_job, "execute", helper, *args)
        finally:
            recorder.detach(runtime)

        return {
            "helper": helper,
            "acquired": resource is not None,
            "resource_type": type(unwrap(resource)).__name__ if resource is not None else None,
            "events": recorder.events,
        }


def handle_configuration_error(error: ConfigurationError, debug_mode: bool) -> None:
    """Handle invalid configuration.

    Parameters
    ----------
    error : ConfigurationError
        The configuration error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ConfigurationError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Configuration error: {error}", file=sys.stderr)
    print("Fix it:", file=sys.stderr)
    print("  batchkit check --config batchkit.yaml", file=sys.stderr)
    sys.exit(2)


def handle_resource_error(error: ResourceError, debug_mode: bool) -> None:
    """Handle resource registration or lookup error.

    Parameters
    ----------
    error : ResourceError
        The resource error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ResourceError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Resource error: {error}", file=sys.stderr)
    print("List registered kinds with:", file=sys.stderr)
    print("  batchkit kinds", file=sys.stderr)
    sys.exit(1)


def handle_value_error(error: ValueError, debug_mode: bool) -> None:
    """Handle value error raised by a helper call or resource kind.

    Parameters
    ----------
    error : ValueError
        The value error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ValueError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    error_msg = str(error)

    if "ssh_host" in error_msg:
        print("Configuration error\n", file=sys.stderr)
        print("SSH sessions need a host to connect to\n", file=sys.stderr)
        print("Add it to your configuration:", file=sys.stderr)
        print("  defaults:", file=sys.stderr)
        print("    ssh_host: batch.example.com", file=sys.stderr)
        sys.exit(2)
    else:
        print(f"Configuration error: {error_msg}", file=sys.stderr)
        sys.exit(2)


def handle_ssh_error(debug_mode: bool) -> None:
    """Handle SSH connectivity error.

    Parameters
    ----------
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    paramiko.SSHException
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print("SSH connectivity error\n", file=sys.stderr)
    print("This usually means:", file=sys.stderr)
    print("  - Host key or credentials rejected", file=sys.stderr)
    print("  - SSH server not reachable on the configured port\n", file=sys.stderr)
    print("Check ssh_host, ssh_username and ssh_key_file in your configuration", file=sys.stderr)
    sys.exit(1)


def handle_acquisition_error(error: Exception, debug_mode: bool) -> None:
    """Handle failure raised while acquiring or releasing a resource.

    Parameters
    ----------
    error : Exception
        The error raised by the acquisition or disposal body
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    Exception
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Resource probe failed: {type(error).__name__}: {error}", file=sys.stderr)
    sys.exit(1)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps the public methods of BatchKitCLI to sub-commands. Set
    BATCHKIT_DEBUG=1 to get tracebacks instead of short error messages.
    """
    debug_mode = os.environ.get(DEBUG_ENV_VAR) == "1"
    configure_logging("debug" if debug_mode else "info")

    try:
        fire.Fire(BatchKitCLI())
    except ConfigurationError as e:
        handle_configuration_error(e, debug_mode)
    except ResourceError as e:
        handle_resource_error(e, debug_mode)
    except ValueError as e:
        handle_value_error(e, debug_mode)
    except paramiko.SSHException:
        handle_ssh_error(debug_mode)
    except (OSError, RuntimeError) as e:
        handle_acquisition_error(e, debug_mode)


if __name__ == "__main__":
    main()
