"""Unit tests for the standard resource kinds."""

import io
import sqlite3
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import boto3
import paramiko
import pytest
from botocore.client import BaseClient
from moto import mock_aws

from batchkit.core.events import EventBus
from batchkit.core.handles import unwrap
from batchkit.core.registry import ResourceManager
from batchkit.kinds import register_standard_kinds
from tests.unit.conftest import EventLog, Owner


@pytest.fixture
def standard(manager: ResourceManager) -> ResourceManager:
    register_standard_kinds(manager)
    return manager


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    with mock_aws():
        yield


def test_register_standard_kinds(standard: ResourceManager) -> None:
    assert standard.helper_names() == [
        "get_file",
        "get_sqlite_connection",
        "get_ssh_client",
        "get_aws_client",
    ]


def test_register_standard_kinds_twice(standard: ResourceManager) -> None:
    register_standard_kinds(standard)

    assert len(standard.kinds()) == 4


class TestFileKind:
    def test_read_file(self, standard: ResourceManager, tmp_path: Path) -> None:
        path = tmp_path / "input.csv"
        path.write_text("id,name\n1,alpha\n")
        owner = Owner(standard)

        handle = owner.get_file(path)

        assert isinstance(handle, io.IOBase)
        assert list(handle) == ["id,name\n", "1,alpha\n"]

        owner.cleanup_resources()

        assert unwrap(handle).closed

    def test_write_file(self, standard: ResourceManager, tmp_path: Path) -> None:
        path = tmp_path / "output.txt"
        owner = Owner(standard)

        with owner.get_file(path, "w") as handle:
            handle.write("done\n")

        assert path.read_text() == "done\n"
        assert owner.held_resources == []

    def test_binary_file_uses_same_kind(self, standard: ResourceManager, tmp_path: Path) -> None:
        path = tmp_path / "blob.bin"
        path.write_bytes(b"\x00\x01")
        owner = Owner(standard)

        handle = owner.get_file(path, "rb")

        assert handle.read() == b"\x00\x01"
        assert standard.disposal_method(handle) == "close"

    def test_missing_file(self, standard: ResourceManager, bus: EventBus, tmp_path: Path) -> None:
        events = EventLog().listen(bus, "resource.acquisition_failed")
        owner = Owner(standard)

        with pytest.raises(FileNotFoundError):
            owner.get_file(tmp_path / "missing.csv")

        assert len(events.of("resource.acquisition_failed")) == 1
        assert owner.held_resources == []


class TestSqliteKind:
    def test_database_from_owner_config(self, standard: ResourceManager, tmp_path: Path) -> None:
        database = tmp_path / "jobs.db"
        owner = Owner(standard, {"sqlite_database": str(database)})

        connection = owner.get_sqlite_connection()
        connection.execute("CREATE TABLE runs (id INTEGER)")
        connection.commit()
        owner.cleanup_resources()

        with pytest.raises(sqlite3.ProgrammingError):
            unwrap(connection).execute("SELECT 1")
        assert database.exists()

    def test_in_memory_by_default(self, standard: ResourceManager) -> None:
        owner = Owner(standard)

        connection = owner.get_sqlite_connection()

        assert isinstance(connection, sqlite3.Connection)
        assert connection.execute("SELECT 1").fetchone() == (1,)

    def test_explicit_database_argument(self, standard: ResourceManager, tmp_path: Path) -> None:
        database = tmp_path / "explicit.db"
        owner = Owner(standard, {"sqlite_database": str(tmp_path / "ignored.db")})

        owner.get_sqlite_connection(str(database))
        owner.cleanup_resources()

        assert database.exists()
        assert not (tmp_path / "ignored.db").exists()


class TestSshKind:
    def test_connect_from_owner_config(self, standard: ResourceManager) -> None:
        owner = Owner(
            standard,
            {"ssh_host": "10.0.0.5", "ssh_username": "batch", "ssh_key_file": "/keys/id_ed25519"},
        )

        with patch.object(paramiko.SSHClient, "connect") as mock_connect:
            client = owner.get_ssh_client()

        assert isinstance(client, paramiko.SSHClient)
        mock_connect.assert_called_once_with(
            hostname="10.0.0.5",
            port=22,
            username="batch",
            key_filename="/keys/id_ed25519",
            timeout=30,
        )

    def test_arguments_override_config(self, standard: ResourceManager) -> None:
        owner = Owner(standard, {"ssh_host": "10.0.0.5"})

        with patch.object(paramiko.SSHClient, "connect") as mock_connect:
            owner.get_ssh_client("bastion.internal", "admin", 2222)

        mock_connect.assert_called_once_with(
            hostname="bastion.internal",
            port=2222,
            username="admin",
            key_filename=None,
            timeout=30,
        )

    def test_cleanup_closes_session(self, standard: ResourceManager) -> None:
        owner = Owner(standard, {"ssh_host": "10.0.0.5"})

        with patch.object(paramiko.SSHClient, "connect"):
            owner.get_ssh_client()

        with patch.object(paramiko.SSHClient, "close") as mock_close:
            owner.cleanup_resources()

        mock_close.assert_called_once_with()

    def test_host_required(self, standard: ResourceManager) -> None:
        with pytest.raises(ValueError, match="ssh_host is required"):
            Owner(standard).get_ssh_client()

    def test_connection_failure_not_tracked(self, standard: ResourceManager) -> None:
        owner = Owner(standard, {"ssh_host": "10.0.0.5"})

        with patch.object(
            paramiko.SSHClient, "connect", side_effect=paramiko.SSHException("refused")
        ):
            with pytest.raises(paramiko.SSHException):
                owner.get_ssh_client()

        assert owner.held_resources == []


class TestAwsClientKind:
    def test_client_region_from_owner_config(
        self, standard: ResourceManager, aws_credentials: None
    ) -> None:
        owner = Owner(standard, {"aws_region": "eu-west-1"})

        s3 = owner.get_aws_client("s3")
        s3.create_bucket(
            Bucket="batch-output",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-1"},
        )

        assert isinstance(s3, BaseClient)
        assert s3.meta.region_name == "eu-west-1"
        assert [b["Name"] for b in s3.list_buckets()["Buckets"]] == ["batch-output"]

    def test_default_region(self, standard: ResourceManager, aws_credentials: None) -> None:
        client = Owner(standard).get_aws_client("s3")

        assert client.meta.region_name == "us-east-1"

    def test_cleanup_closes_client(
        self, standard: ResourceManager, aws_credentials: None
    ) -> None:
        owner = Owner(standard)
        client = owner.get_aws_client("s3", region="us-west-2")

        with patch.object(unwrap(client), "close") as mock_close:
            owner.cleanup_resources()

        mock_close.assert_called_once_with()

    def test_client_not_shared_with_untracked_clients(
        self, standard: ResourceManager, aws_credentials: None
    ) -> None:
        owner = Owner(standard)
        tracked = owner.get_aws_client("s3")
        untracked = boto3.client("s3", region_name="us-east-1")

        untracked.close()

        assert owner.held_resources == [tracked]
