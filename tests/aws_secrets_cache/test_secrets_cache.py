"""
Test Suite for SecretsCache (aws_secrets_cache/cache.py).

This module exercises the public facade end to end with a scripted secret
source:
- initialize() populates the cache and starts the scheduled refresh
- Scheduled refresh picks up changed values
- add/remove alias mappings, clear_cache(), get_cache_stats()
- Notification suppression and logger handling
- Configuration validation before any fetch

See also:
    - aws_secrets_cache/engine.py - Fetch engine under the facade
    - aws_secrets_cache/scheduler.py - Recurring timer
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from unittest.mock import MagicMock, Mock, patch

import pytest
from fakes import EventRecorder, FakeSecretSource, RecordingSleep, text_payload
from pydantic import ValidationError

from aws_secrets_cache.cache import CacheStats, SecretsCache
from aws_secrets_cache.config import SecretsCacheConfig
from aws_secrets_cache.events import EventType
from aws_secrets_cache.exceptions import SecretAccessError, SecretFetchError
from aws_secrets_cache.source import AWSSecretSource, SecretPayload

SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:test"

CacheFactory = Callable[..., SecretsCache]


@pytest.fixture()
def make_cache(
    source: FakeSecretSource, recording_sleep: RecordingSleep
) -> Iterator[CacheFactory]:
    created: list[SecretsCache] = []

    def factory(**options: object) -> SecretsCache:
        settings = {
            "secret_mappings": {"testSecret": SECRET_ARN},
            "refresh_interval_seconds": 1.0,
            "max_retries": 3,
            "retry_delay_seconds": 0.1,
        }
        logger = options.pop("logger", None)
        settings.update(options)
        cache = SecretsCache(settings, client=source, sleep=recording_sleep, logger=logger)
        created.append(cache)
        return cache

    yield factory

    for cache in created:
        cache.close()


def _subscribe_all(cache: SecretsCache, recorder: EventRecorder) -> None:
    for kind in EventType:
        cache.on(kind, recorder)


class TestSecretsCacheInitialize:
    """Test suite for initialize()."""

    @pytest.mark.unit()
    def test_initializes_and_caches_secret(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()

        cache.initialize()

        assert source.call_count() == 1
        assert cache.get_secret("testSecret") == {"key": "value"}
        assert cache.is_running is True

    @pytest.mark.unit()
    def test_emits_update_then_start(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()
        _subscribe_all(cache, recorder)

        cache.initialize()

        assert [event.event_type for event in recorder.events] == [
            EventType.UPDATE,
            EventType.START,
        ]
        assert recorder.events[0].alias == "testSecret"
        assert recorder.events[0].value == {"key": "value"}

    @pytest.mark.unit()
    def test_failures_do_not_raise(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, SecretAccessError(SECRET_ARN, "aws", "Denied"))
        cache = make_cache()
        cache.on("error", recorder)

        cache.initialize()

        assert cache.get_secret("testSecret") is None
        assert source.call_count() == 4
        assert len(recorder.events) == 1
        assert isinstance(recorder.events[0].error, SecretFetchError)
        assert cache.is_running is True

    @pytest.mark.unit()
    def test_scheduled_cycle_picks_up_new_value(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(
            SECRET_ARN,
            text_payload({"key": "value"}),
            text_payload({"key": "newValue"}),
        )
        cache = make_cache()
        cache.on("update", recorder)

        cache.initialize()
        assert len(recorder.events) == 1

        # Equivalent of one timer tick
        cache.refresh_now()

        assert len(recorder.events) == 2
        assert recorder.events[-1].alias == "testSecret"
        assert recorder.events[-1].value == {"key": "newValue"}
        assert cache.get_secret("testSecret") == {"key": "newValue"}

    @pytest.mark.integration()
    def test_timer_refresh_picks_up_new_value(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(
            SECRET_ARN,
            text_payload({"key": "value"}),
            text_payload({"key": "newValue"}),
        )
        cache = make_cache(refresh_interval_seconds=0.05)
        second_update = threading.Event()
        updates: list[object] = []

        def on_update(event: object) -> None:
            updates.append(event)
            if len(updates) == 2:
                second_update.set()

        cache.on("update", on_update)

        cache.initialize()

        assert second_update.wait(timeout=5)
        assert cache.get_secret("testSecret") == {"key": "newValue"}


class TestSecretsCacheScheduling:
    """Test suite for stop_scheduled_refresh()."""

    @pytest.mark.unit()
    def test_stops_scheduled_refresh(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()
        cache.on("stop", recorder)
        cache.initialize()

        assert cache.stop_scheduled_refresh() is True
        assert cache.stop_scheduled_refresh() is False
        assert cache.is_running is False
        assert len(recorder.events) == 1

    @pytest.mark.integration()
    def test_no_fetches_after_stop(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache(refresh_interval_seconds=0.2)

        cache.initialize()
        cache.stop_scheduled_refresh()
        time.sleep(0.6)

        assert source.call_count() == 1


class TestSecretsCacheAliasMappings:
    """Test suite for add_alias_mapping() / remove_alias_mapping()."""

    @pytest.mark.unit()
    def test_adds_and_removes_mapping(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        new_arn = "arn:aws:secretsmanager:us-east-1:123456789012:secret:new"
        source.script(new_arn, text_payload({"key": "value"}))
        cache = make_cache()
        cache.on("remove", recorder)

        changed = cache.add_alias_mapping("newSecret", new_arn)

        assert changed is True
        assert source.call_count() == 1
        assert cache.get_secret("newSecret") == {"key": "value"}
        assert cache.aliases["newSecret"] == new_arn

        cache.remove_alias_mapping("newSecret")

        assert cache.get_secret("newSecret") is None
        assert "newSecret" not in cache.aliases
        assert recorder.events[0].alias == "newSecret"

    @pytest.mark.unit()
    def test_binary_secret_decoded_as_text_single_fetch(
        self,
        make_cache: CacheFactory,
        source: FakeSecretSource,
        recording_sleep: RecordingSleep,
    ) -> None:
        source.script("idB", SecretPayload(secret_binary=b'{"key": "binaryValue"}'))
        cache = make_cache()

        cache.add_alias_mapping("b", "idB")

        assert cache.get_secret("b") == '{"key": "binaryValue"}'
        assert source.call_count("idB") == 1
        assert recording_sleep.delays == []

    @pytest.mark.unit()
    def test_remapping_alias_fetches_new_secret(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(SECRET_ARN, text_payload("old"))
        source.script("rotated", text_payload("new"))
        cache = make_cache()
        cache.refresh_now()

        cache.add_alias_mapping("testSecret", "rotated")

        assert cache.get_secret("testSecret") == "new"
        assert cache.get_cache_stats() == CacheStats(size=1, aliases=1)

    @pytest.mark.unit()
    def test_remove_unknown_alias_still_notifies(
        self, make_cache: CacheFactory, recorder: EventRecorder
    ) -> None:
        cache = make_cache()
        cache.on("remove", recorder)

        cache.remove_alias_mapping("never-added")

        assert len(recorder.events) == 1

    @pytest.mark.unit()
    @pytest.mark.parametrize(("alias", "secret_id"), [("", "id"), ("  ", "id"), ("a", "")])
    def test_rejects_empty_alias_or_id(
        self, make_cache: CacheFactory, source: FakeSecretSource, alias: str, secret_id: str
    ) -> None:
        cache = make_cache()

        with pytest.raises(ValueError):
            cache.add_alias_mapping(alias, secret_id)

        assert source.call_count() == 0


class TestSecretsCacheClear:
    """Test suite for clear_cache()."""

    @pytest.mark.unit()
    def test_clears_cache_and_stops_refresh(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()
        _subscribe_all(cache, recorder)
        cache.initialize()

        cache.clear_cache()

        assert cache.get_secret("testSecret") is None
        assert cache.get_cache_stats().size == 0
        assert cache.is_running is False
        assert [event.event_type for event in recorder.events][-2:] == [
            EventType.STOP,
            EventType.CLEAR,
        ]

    @pytest.mark.unit()
    def test_aliases_survive_clear(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()
        cache.initialize()

        cache.clear_cache()
        cache.refresh_now()

        assert cache.aliases == {"testSecret": SECRET_ARN}
        assert cache.get_secret("testSecret") == {"key": "value"}

    @pytest.mark.unit()
    def test_clear_when_not_running_emits_only_clear(
        self, make_cache: CacheFactory, recorder: EventRecorder
    ) -> None:
        cache = make_cache()
        _subscribe_all(cache, recorder)

        cache.clear_cache()

        assert [event.event_type for event in recorder.events] == [EventType.CLEAR]


class TestSecretsCacheReads:
    """Test suite for get_all_secrets() and get_cache_stats()."""

    @pytest.mark.unit()
    def test_get_all_secrets_returns_only_fetched_aliases(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script("idA", text_payload({"user": "a"}))
        cache = make_cache(
            secret_mappings={"a": "idA", "missing": "idMissing"},
            max_retries=0,
        )

        cache.refresh_now()

        assert cache.get_all_secrets() == {"a": {"user": "a"}}
        assert cache.get_cache_stats() == CacheStats(size=1, aliases=2)

    @pytest.mark.unit()
    def test_returned_values_are_copies(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"user": "app", "roles": ["read"]}))
        cache = make_cache()
        cache.on("update", recorder)
        cache.refresh_now()

        cache.get_secret("testSecret")["user"] = "tampered"
        cache.get_all_secrets()["testSecret"]["roles"].append("admin")
        recorder.events[0].value["user"] = "tampered-too"

        assert cache.get_secret("testSecret") == {"user": "app", "roles": ["read"]}

    @pytest.mark.unit()
    def test_context_manager_closes(self, source: FakeSecretSource) -> None:
        source.script(SECRET_ARN, text_payload("v"))

        with SecretsCache(secret_mappings={"s": SECRET_ARN}, client=source) as cache:
            cache.initialize()
            assert cache.is_running is True

        assert cache.is_running is False
        assert cache.get_cache_stats().size == 0


class TestSecretsCacheEventsAndLogging:
    """Test notification suppression and logger handling."""

    @pytest.mark.unit()
    def test_does_not_emit_events_when_disabled(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache(disable_events=True)
        _subscribe_all(cache, recorder)

        cache.initialize()
        cache.remove_alias_mapping("testSecret")
        cache.clear_cache()

        assert recorder.events == []

    @pytest.mark.unit()
    def test_disabled_events_still_populate_cache(
        self, make_cache: CacheFactory, source: FakeSecretSource
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache(disable_events=True)

        cache.initialize()

        assert cache.get_secret("testSecret") == {"key": "value"}

    @pytest.mark.unit()
    def test_off_removes_handler(
        self, make_cache: CacheFactory, source: FakeSecretSource, recorder: EventRecorder
    ) -> None:
        source.script(SECRET_ARN, text_payload({"key": "value"}))
        cache = make_cache()
        cache.on("update", recorder)

        assert cache.off("update", recorder) is True
        cache.refresh_now()

        assert recorder.events == []

    @pytest.mark.unit()
    def test_default_logger_records_updates(
        self,
        make_cache: CacheFactory,
        source: FakeSecretSource,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        source.script(SECRET_ARN, text_payload({"password": "hunter2"}))
        cache = make_cache()

        with caplog.at_level(logging.DEBUG, logger="aws_secrets_cache"):
            cache.refresh_now()

        assert "Updated cached secret" in caplog.text
        assert "hunter2" not in caplog.text

    @pytest.mark.unit()
    def test_logger_false_disables_logging(
        self,
        make_cache: CacheFactory,
        source: FakeSecretSource,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        source.script(SECRET_ARN, SecretAccessError(SECRET_ARN, "aws", "Denied"))
        cache = make_cache(logger=False)

        with caplog.at_level(logging.DEBUG):
            cache.initialize()
            cache.clear_cache()

        assert caplog.records == []

    @pytest.mark.unit()
    def test_custom_logger_used(self, source: FakeSecretSource) -> None:
        source.script(SECRET_ARN, text_payload("v"))
        custom = MagicMock(spec=logging.Logger)
        cache = SecretsCache(secret_mappings={"s": SECRET_ARN}, client=source, logger=custom)

        cache.refresh_now()

        messages = [call.args[0] for call in custom.info.call_args_list]
        assert "Updated cached secret" in messages


class TestSecretsCacheConfiguration:
    """Test construction-time validation and default client creation."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "options",
        [
            {"secret_mappings": {}},
            {"secret_mappings": {"a": ""}},
            {"secret_mappings": {"a": "id"}, "refresh_interval_seconds": 0},
            {"secret_mappings": {"a": "id"}, "max_retries": -1},
            {"secret_mappings": {"a": "id"}, "retry_delay_seconds": -5},
            {"secret_mappings": {"a": "id"}, "unknown_option": True},
        ],
    )
    def test_invalid_configuration_fails_before_fetch(
        self, source: FakeSecretSource, options: dict[str, object]
    ) -> None:
        with pytest.raises(ValidationError):
            SecretsCache(client=source, **options)

        assert source.call_count() == 0

    @pytest.mark.unit()
    def test_missing_mappings_rejected(self, source: FakeSecretSource) -> None:
        with pytest.raises(ValidationError):
            SecretsCache(client=source)

    @pytest.mark.unit()
    def test_config_object_with_overrides(self, source: FakeSecretSource) -> None:
        config = SecretsCacheConfig(secret_mappings={"a": "id"}, max_retries=5)

        cache = SecretsCache(config, client=source, max_retries=1)

        assert cache.config.max_retries == 1
        assert cache.config.secret_mappings == {"a": "id"}
        assert config.max_retries == 5

    @pytest.mark.unit()
    def test_defaults(self, source: FakeSecretSource) -> None:
        cache = SecretsCache(secret_mappings={"a": "id"}, client=source)

        assert cache.config.region == "us-east-1"
        assert cache.config.refresh_interval_seconds == 300.0
        assert cache.config.max_retries == 3
        assert cache.config.retry_delay_seconds == 1.0
        assert cache.config.disable_events is False

    @pytest.mark.unit()
    @patch("aws_secrets_cache.source.boto3.client")
    def test_default_client_built_from_region(self, mock_boto_client: Mock) -> None:
        mock_boto_client.return_value.get_secret_value.return_value = {
            "SecretString": '{"key": "value"}'
        }

        cache = SecretsCache(secret_mappings={"a": "prod/a"}, region="ap-southeast-2")
        cache.refresh_now()

        mock_boto_client.assert_called_once_with("secretsmanager", region_name="ap-southeast-2")
        assert isinstance(cache._source, AWSSecretSource)
        assert cache.get_secret("a") == {"key": "value"}
