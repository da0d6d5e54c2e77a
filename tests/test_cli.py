# =====================================================================
# error_alerter CLI Unit Tests
# =====================================================================
# Run with: pytest tests/test_cli.py -v
# =====================================================================

import json
from unittest.mock import Mock, patch

import pytest

from error_alerter import __version__
from error_alerter.cli import build_parser, main

from conftest import APP_ROOT, WEBHOOK_URL, block_text, field_text


pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def no_global_logging_setup():
    with patch("error_alerter.cli.setup_json_logging") as setup:
        yield setup


@pytest.fixture
def env(clean_env):
    clean_env.setenv("ERROR_ALERTER_APP_ROOT", APP_ROOT)
    return clean_env


class TestParser:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: error-alerter" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--version"])

        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_configures_logging(self, env, no_global_logging_setup):
        main(["config", "--no-connect"])

        no_global_logging_setup.assert_called_once()


class TestConfigCommand:

    def test_disabled_configuration(self, env, capsys):
        assert main(["config"]) == 0

        out = capsys.readouterr().out
        assert "enabled: False" in out
        assert "webhook_url: <unset>" in out
        assert "dedup_cache: none" in out
        assert "Alerting is DISABLED" in out

    def test_masks_webhook_secret(self, env, capsys):
        env.setenv("ERROR_ALERTER_WEBHOOK_URL", WEBHOOK_URL)

        main(["config"])

        out = capsys.readouterr().out
        assert "enabled: True" in out
        assert "webhook_url: https://hooks.slack.com/***" in out
        assert "XXXX" not in out
        assert "DISABLED" not in out

    def test_reports_validation_warnings(self, env, capsys):
        env.setenv("ERROR_ALERTER_WEBHOOK_URL", "hooks.slack.com/services/T000")

        main(["config"])

        out = capsys.readouterr().out
        assert "Warnings:" in out
        assert "webhook_url must start with http:// or https://." in out

    def test_no_connect_skips_redis(self, env, capsys):
        env.setenv("ERROR_ALERTER_REDIS_URL", "redis://cache:6379/0")

        with patch("error_alerter.redis_connector.get_redis_client") as get_client:
            main(["config", "--no-connect"])

        get_client.assert_not_called()
        assert "dedup_cache: none" in capsys.readouterr().out


class TestSendTestCommand:

    def test_disabled_returns_1(self, env, capsys):
        with patch("error_alerter.webhook_client.requests.post") as mock_post:
            assert main(["send-test"]) == 1

        mock_post.assert_not_called()
        assert "alerting is disabled" in capsys.readouterr().out

    def test_delivered_returns_0(self, env, capsys):
        env.setenv("ERROR_ALERTER_WEBHOOK_URL", WEBHOOK_URL)
        env.setenv("ERROR_ALERTER_APP_NAME", "Billing")

        with patch("error_alerter.webhook_client.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200, text="ok")
            assert main(["send-test", "--message", "hello from staging", "--queue", "default"]) == 0

        assert "Test alert delivered." in capsys.readouterr().out
        payload = json.loads(mock_post.call_args.kwargs["data"].decode("utf-8"))
        assert payload["blocks"][0]["text"]["text"] == "Billing: Application Failed"
        assert field_text(payload, "Source") == "*Source:*\n`error-alerter:send-test`"
        assert field_text(payload, "Error") == "*Error:*\n`ErrorAlerterTest`"
        assert field_text(payload, "Queue") == "*Queue:*\ndefault"
        assert block_text(payload, "Message") == "*Message:*\n```hello from staging```"

    def test_custom_source(self, env):
        env.setenv("ERROR_ALERTER_WEBHOOK_URL", WEBHOOK_URL)

        with patch("error_alerter.webhook_client.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=200, text="ok")
            main(["send-test", "--source", "Worker", "--detail", "HardWorker"])

        payload = json.loads(mock_post.call_args.kwargs["data"].decode("utf-8"))
        assert payload["blocks"][0]["text"]["text"] == "Worker Failed"

    def test_rejected_returns_1(self, env, capsys):
        env.setenv("ERROR_ALERTER_WEBHOOK_URL", WEBHOOK_URL)

        with patch("error_alerter.webhook_client.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=403, text="invalid_token")
            assert main(["send-test"]) == 1

        assert "webhook delivery failed" in capsys.readouterr().out
