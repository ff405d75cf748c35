"""Fixtures for the secrets cache test suite."""

import pytest
from fakes import EventRecorder, FakeSecretSource, RecordingSleep


@pytest.fixture()
def source() -> FakeSecretSource:
    return FakeSecretSource()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def recorder() -> EventRecorder:
    return EventRecorder()
