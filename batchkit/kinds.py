"""Standard resource kinds for batch jobs.

Each acquisition body receives the owning context first, so connection
details that are not passed explicitly are read from the owner's ``config``
mapping.
"""

from __future__ import annotations

import io
import logging
import os
import sqlite3
from typing import Any

import boto3
import paramiko
from botocore.client import BaseClient

from batchkit.core.registry import ResourceManager

logger = logging.getLogger(__name__)

DEFAULT_AWS_REGION = "us-east-1"
DEFAULT_SSH_USERNAME = "ubuntu"
DEFAULT_SSH_PORT = 22
SSH_TIMEOUT_SECONDS = 30


def owner_config(owner: Any) -> dict[str, Any]:
    """Return the owner's ``config`` mapping, or an empty one."""
    return getattr(owner, "config", None) or {}


def open_file(owner: Any, path: str | os.PathLike, mode: str = "r", **kwargs: Any) -> Any:
    """Open a file for an owning context."""
    logger.debug("Opening file %s (mode %s)", path, mode)
    return open(path, mode, **kwargs)


def connect_sqlite(owner: Any, database: str | None = None, **kwargs: Any) -> sqlite3.Connection:
    """Open a SQLite connection, defaulting to the owner's ``sqlite_database``."""
    database = database or owner_config(owner).get("sqlite_database", ":memory:")
    logger.debug("Connecting to SQLite database %s", database)
    return sqlite3.connect(database, **kwargs)


def connect_ssh(
    owner: Any,
    host: str | None = None,
    username: str | None = None,
    port: int | None = None,
    key_file: str | None = None,
) -> paramiko.SSHClient:
    """Open an SSH session.

    Parameters
    ----------
    owner : Any
        Owning context; its config supplies ``ssh_host``, ``ssh_username``,
        ``ssh_port`` and ``ssh_key_file`` for arguments not given
    host : str | None
        Remote host
    username : str | None
        SSH username (default: ubuntu)
    port : int | None
        SSH port (default: 22)
    key_file : str | None
        Private key file; agent and default keys are used when None

    Returns
    -------
    paramiko.SSHClient
        Connected client

    Raises
    ------
    ValueError
        If no host is given or configured
    """
    config = owner_config(owner)
    host = host or config.get("ssh_host")
    if not host:
        raise ValueError("ssh_host is required to open an SSH session")

    username = username or config.get("ssh_username", DEFAULT_SSH_USERNAME)
    port = port or config.get("ssh_port", DEFAULT_SSH_PORT)
    key_file = key_file or config.get("ssh_key_file")

    logger.info("Connecting to %s@%s:%s", username, host, port)

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    client.connect(
        hostname=host,
        port=port,
        username=username,
        key_filename=key_file,
        timeout=SSH_TIMEOUT_SECONDS,
    )
    return client


def aws_client(owner: Any, service_name: str, region: str | None = None, **kwargs: Any) -> Any:
    """Create a boto3 client, defaulting to the owner's ``aws_region``."""
    region = region or owner_config(owner).get("aws_region", DEFAULT_AWS_REGION)
    logger.debug("Creating %s client in %s", service_name, region)
    return boto3.client(service_name, region_name=region, **kwargs)


def register_standard_kinds(manager: ResourceManager) -> None:
    """Register files, SQLite connections, SSH sessions and AWS clients.

    Parameters
    ----------
    manager : ResourceManager
        Manager to register the kinds with. Registering twice is harmless.
    """
    manager.register(io.IOBase, "get_file", open_file)
    manager.register(sqlite3.Connection, "get_sqlite_connection", connect_sqlite)
    manager.register(paramiko.SSHClient, "get_ssh_client", connect_ssh)
    manager.register(BaseClient, "get_aws_client", aws_client)
