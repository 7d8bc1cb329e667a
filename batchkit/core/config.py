import copy
import importlib
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from batchkit.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_ACQUISITION_METHOD,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DISPOSAL_METHOD,
)
from batchkit.core.registry import ResourceManager
from batchkit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("error", "warning", "info", "detail", "debug", "trace")

RESOURCE_KEYS = {"kind", "acquire", "acquisition_method", "disposal_method"}


class ConfigLoader:
    """Load and merge YAML configuration with defaults."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS = {
            "log_level": "info",
            "events_debug": False,
            "resources": {},
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks BATCHKIT_CONFIG env var,
            then falls back to batchkit.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with defaults, resources and jobs sections,
            with all variable interpolations resolved

        Raises
        ------
        ConfigurationError
            If the file is not valid YAML or variables cannot be resolved
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)

        config_file = Path(config_path)

        if not config_file.exists():
            logger.debug("No config file at %s, using built-in defaults", config_file)
            return {"defaults": {}}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {"defaults": {}}

        if "vars" in cfg:
            vars_dict = OmegaConf.to_container(cfg.vars, resolve=False)
            for key, value in vars_dict.items():
                if key not in cfg:
                    cfg[key] = value

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e

        config.setdefault("defaults", {})
        return config

    def get_runtime_config(
        self, config: dict[str, Any], job_name: str | None = None
    ) -> dict[str, Any]:
        """Get merged configuration for a specific job or defaults.

        Parameters
        ----------
        config : dict[str, Any]
            Full configuration from YAML
        job_name : str | None
            Name of job section to apply, or None for defaults only

        Returns
        -------
        dict[str, Any]
            Merged configuration (built-in defaults + YAML defaults +
            resources + job settings)

        Raises
        ------
        ConfigurationError
            If ``job_name`` is not defined
        """
        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)

        for key, value in config.get("defaults", {}).items():
            merged[key] = value

        if "resources" in config:
            merged["resources"] = copy.deepcopy(config["resources"])

        if job_name is not None:
            jobs = config.get("jobs", {})

            if job_name not in jobs:
                available = list(jobs.keys())

                if not available:
                    raise ConfigurationError(
                        f"Job '{job_name}' not found in configuration. "
                        f"No jobs are defined in the config file."
                    )

                raise ConfigurationError(
                    f"Job '{job_name}' not found in configuration. Available jobs: {available}"
                )

            for key, value in (jobs[job_name] or {}).items():
                merged[key] = value

        return merged

    def validate_config(self, config: dict[str, Any]) -> None:
        """Validate configuration has correct types and resolvable resources.

        Parameters
        ----------
        config : dict[str, Any]
            Merged configuration to validate

        Raises
        ------
        ConfigurationError
            If configuration is invalid
        """
        log_level = config.get("log_level", "info")
        if not isinstance(log_level, str) or log_level.lower() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log_level '{log_level}'. Must be one of: {', '.join(LOG_LEVELS)}"
            )

        if not isinstance(config.get("events_debug", False), bool):
            raise ConfigurationError("events_debug must be a boolean")

        self._validate_resources(config.get("resources", {}))

    def _validate_resources(self, resources: Any) -> None:
        """Validate the resources section.

        Parameters
        ----------
        resources : Any
            Mapping of helper names to resource declarations

        Raises
        ------
        ConfigurationError
            If a declaration is malformed or names an unimportable object
        """
        if not isinstance(resources, dict):
            raise ConfigurationError("resources must be a mapping of helper names to declarations")

        for helper_name, declaration in resources.items():
            if not isinstance(helper_name, str) or not helper_name.isidentifier():
                raise ConfigurationError(
                    f"Invalid resource helper name '{helper_name}': must be a Python identifier"
                )

            if not isinstance(declaration, dict):
                raise ConfigurationError(f"resources.{helper_name} must be a mapping")

            unknown = set(declaration) - RESOURCE_KEYS
            if unknown:
                raise ConfigurationError(
                    f"resources.{helper_name} has unknown keys: {sorted(unknown)}"
                )

            if "kind" not in declaration:
                raise ConfigurationError(f"resources.{helper_name}.kind is required")

            for key in RESOURCE_KEYS:
                if key in declaration and not isinstance(declaration[key], str):
                    raise ConfigurationError(f"resources.{helper_name}.{key} must be a string")

            kind = import_object(declaration["kind"])
            if not isinstance(kind, type):
                raise ConfigurationError(
                    f"resources.{helper_name}.kind '{declaration['kind']}' is not a class"
                )

            if "acquire" in declaration and not callable(import_object(declaration["acquire"])):
                raise ConfigurationError(
                    f"resources.{helper_name}.acquire '{declaration['acquire']}' is not callable"
                )


def import_object(dotted_path: str) -> Any:
    """Import an object from a dotted path such as ``sqlite3.Connection``.

    Parameters
    ----------
    dotted_path : str
        Module path followed by attribute path

    Returns
    -------
    Any
        The imported object

    Raises
    ------
    ConfigurationError
        If no prefix of the path is an importable module with the remaining
        attributes
    """
    parts = dotted_path.split(".")

    for index in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:index])
        try:
            target = importlib.import_module(module_name)
        except ImportError:
            continue

        try:
            for attribute in parts[index:]:
                target = getattr(target, attribute)
        except AttributeError as e:
            raise ConfigurationError(f"Cannot import '{dotted_path}': {e}") from e
        return target

    raise ConfigurationError(f"Cannot import '{dotted_path}': no importable module")


def register_configured_resources(manager: ResourceManager, config: dict[str, Any]) -> list[str]:
    """Register the resource kinds declared in a configuration.

    Parameters
    ----------
    manager : ResourceManager
        Manager to register kinds with
    config : dict[str, Any]
        Configuration containing a ``resources`` section

    Returns
    -------
    list[str]
        Helper names registered
    """
    registered = []

    for helper_name, declaration in config.get("resources", {}).items():
        kind = import_object(declaration["kind"])
        acquire = None

        if "acquire" in declaration:
            acquire = _owner_agnostic(import_object(declaration["acquire"]))

        manager.register(
            kind,
            helper_name,
            acquire,
            acquisition_method=declaration.get("acquisition_method", DEFAULT_ACQUISITION_METHOD),
            disposal_method=declaration.get("disposal_method", DEFAULT_DISPOSAL_METHOD),
        )
        registered.append(helper_name)

    logger.debug("Registered %d configured resource kinds", len(registered))
    return registered


def _owner_agnostic(factory: Any) -> Any:
    def acquire(_owner: Any, *args: Any, **kwargs: Any) -> Any:
        return factory(*args, **kwargs)

    return acquire
