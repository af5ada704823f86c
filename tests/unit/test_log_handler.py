"""Tests for the stdlib logging integration."""

import logging

import pytest

from logrelay.config import DeliveryConfig
from logrelay.controller import DeliveryController
from logrelay.handler import (
    LogRelayHandler,
    build_controller,
    from_env,
    is_ignored_logger,
    setup_logging,
)
from logrelay.transport import HttpTransport


def make_record(name: str, message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


class TestLogRelayHandler:
    """Tests for LogRelayHandler."""

    def test_relays_formatted_message(self, mocker):
        controller = mocker.MagicMock()
        handler = LogRelayHandler(controller)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

        handler.handle(make_record("app.payments", "Payment processed"))

        controller.log.assert_called_once_with("INFO Payment processed")

    def test_respects_min_level(self, mocker):
        controller = mocker.MagicMock()
        handler = LogRelayHandler(controller, min_level=logging.WARNING)
        logger = logging.getLogger("app.min_level")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.addHandler(handler)

        try:
            logger.info("routine detail")
            logger.warning("disk almost full")
        finally:
            logger.removeHandler(handler)

        controller.log.assert_called_once_with("disk almost full")

    @pytest.mark.parametrize(
        "name", ["logrelay", "logrelay.controller", "logrelay.sink", "httpx", "httpcore.http11"]
    )
    def test_ignores_internal_loggers(self, mocker, name):
        """Delivery diagnostics are never fed back into the buffer."""
        controller = mocker.MagicMock()
        handler = LogRelayHandler(controller)

        handler.handle(make_record(name, "Sending batch"))

        controller.log.assert_not_called()

    def test_similar_names_are_relayed(self):
        assert is_ignored_logger("logrelayer") is False
        assert is_ignored_logger("httpx_extras") is False

    def test_controller_error_goes_to_handle_error(self, mocker):
        controller = mocker.MagicMock()
        controller.log.side_effect = RuntimeError("boom")
        handler = LogRelayHandler(controller)
        handle_error = mocker.patch.object(handler, "handleError")

        record = make_record("app", "message")
        handler.handle(record)

        handle_error.assert_called_once_with(record)


class TestSetupLogging:
    """Tests for setup_logging and from_env."""

    @pytest.mark.asyncio
    async def test_setup_logging_attaches_handler(self):
        root_logger = logging.getLogger()
        before = list(root_logger.handlers)

        try:
            controller = setup_logging("http://sink.test/ingest", token="tok", also_console=False)
            added = [h for h in root_logger.handlers if h not in before]

            assert isinstance(controller, DeliveryController)
            assert len(added) == 1
            assert isinstance(added[0], LogRelayHandler)
            assert added[0].controller is controller
            assert isinstance(controller.transport, HttpTransport)
            assert controller.transport.token == "tok"
        finally:
            for handler in list(root_logger.handlers):
                if handler not in before:
                    root_logger.removeHandler(handler)

    def test_from_env_requires_endpoint(self, monkeypatch):
        monkeypatch.delenv("LOGRELAY_ENDPOINT", raising=False)

        with pytest.raises(ValueError, match="LOGRELAY_ENDPOINT"):
            from_env()

    @pytest.mark.asyncio
    async def test_from_env_builds_controller(self, monkeypatch):
        monkeypatch.setenv("LOGRELAY_ENDPOINT", "http://sink.test/ingest")
        monkeypatch.setenv("LOGRELAY_TOKEN", "tok_env")
        monkeypatch.setenv("LOGRELAY_MAX_BATCH_SIZE", "7")
        monkeypatch.delenv("LOGRELAY_RETRY_INTERVALS", raising=False)

        controller = from_env()

        assert controller.config == DeliveryConfig(max_batch_size=7)
        assert controller.transport.endpoint == "http://sink.test/ingest"
        assert controller.transport.token == "tok_env"

    @pytest.mark.asyncio
    async def test_aclose_closes_http_client(self, mocker):
        """Controllers built here own their HttpTransport and its client."""
        client = mocker.MagicMock()
        client.post = mocker.AsyncMock(return_value=mocker.MagicMock(is_success=True))
        client.aclose = mocker.AsyncMock()
        mocker.patch("logrelay.transport.httpx.AsyncClient", return_value=client)

        controller = build_controller("http://sink.test/ingest", token="tok")
        controller.log("Service started")
        await controller.wait_until_idle()
        await controller.aclose()

        client.post.assert_awaited_once()
        client.aclose.assert_awaited_once()
