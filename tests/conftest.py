"""Pytest configuration and fixtures for batchkit tests."""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import yaml

from batchkit.runtime import set_default_runtime


@pytest.fixture(autouse=True)
def reset_default_runtime() -> Generator[None, None, None]:
    """Ensure every test starts without a process-wide runtime.

    Yields
    ------
    None
        Control back to test; the default runtime is dropped afterwards
    """
    set_default_runtime(None)

    yield

    set_default_runtime(None)


@pytest.fixture
def config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary config file path and point BATCHKIT_CONFIG at it.

    Parameters
    ----------
    tmp_path : Path
        Pytest temporary directory path

    Yields
    ------
    Path
        Path to temporary config file
    """
    config_path = tmp_path / "batchkit.yaml"

    original_env = os.environ.get("BATCHKIT_CONFIG")
    os.environ["BATCHKIT_CONFIG"] = str(config_path)

    yield config_path

    if original_env is not None:
        os.environ["BATCHKIT_CONFIG"] = original_env
    elif "BATCHKIT_CONFIG" in os.environ:
        del os.environ["BATCHKIT_CONFIG"]


@pytest.fixture
def write_config(config_file: Path):
    """Helper fixture to write config data to file.

    Parameters
    ----------
    config_file : Path
        Path to config file from config_file fixture

    Returns
    -------
    callable
        Function that takes config_data dict and writes to file
    """

    def _write(config_data: dict[str, Any]) -> None:
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

    return _write
