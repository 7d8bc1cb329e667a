"""Fake resources for exercising the resource manager without real I/O."""

from tests.fakes.fake_resources import (
    DisposalLog,
    FakeConnection,
    FakeFile,
    FakePooledConnection,
    FakeTable,
    Readable,
)

__all__ = [
    "DisposalLog",
    "FakeConnection",
    "FakeFile",
    "FakePooledConnection",
    "FakeTable",
    "Readable",
]
