"""Tests for the Typer CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from semoss_openai import __version__
from semoss_openai.cli.main import app
from semoss_openai.config import SemossConfig
from semoss_openai.errors import InitializationError
from tests.conftest import FakeInsight, FakePixelClient, pixel_result

runner = CliRunner()


@pytest.fixture(autouse=True)
def _config():
    with patch("semoss_openai.cli._helpers.load_config", return_value=SemossConfig()) as m:
        yield m


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestModels:
    def test_lists_builtin_models(self):
        result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "Llama-3.1-8B-Instruct" in result.output
        assert "Qwen2.5-7B-Instruct" in result.output

    def test_lists_configured_models(self, _config):
        _config.return_value = SemossConfig(models={"my-model": "engine-1"})
        result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "my-model" in result.output


class TestChat:
    def test_builds_messages(self):
        with patch("semoss_openai.cli.chat_cmd._run_chat", new_callable=AsyncMock) as mock_run:
            result = runner.invoke(
                app, ["chat", "Hello", "--system", "Be terse", "--model", "m", "--no-stream"]
            )
        assert result.exit_code == 0
        _cfg, messages, model, stream = mock_run.call_args.args
        assert messages == [
            {"role": "system", "content": "Be terse"},
            {"role": "user", "content": "Hello"},
        ]
        assert model == "m"
        assert stream is False

    def test_error_exits_nonzero(self):
        with patch(
            "semoss_openai.cli.chat_cmd._run_chat",
            new_callable=AsyncMock,
            side_effect=InitializationError("Failed to initialize SEMOSS SDK"),
        ):
            result = runner.invoke(app, ["chat", "Hello"])
        assert result.exit_code == 1
        assert "Failed to initialize SEMOSS SDK" in result.output

    @pytest.mark.parametrize("extra_args", [[], ["--no-stream"]])
    def test_prints_reply(self, extra_args):
        from semoss_openai.client import SemossOpenAI

        def build(cfg):
            return SemossOpenAI(
                SemossConfig(poll_interval=0.01, warmup=0.01, race_timeout=0.01),
                client=FakePixelClient(pixel_result("General Kenobi"), text="General Kenobi"),
                insight_factory=FakeInsight,
            )

        with patch("semoss_openai.client.SemossOpenAI", side_effect=build):
            result = runner.invoke(app, ["chat", "Hello there", *extra_args])
        assert result.exit_code == 0, result.output
        assert "General Kenobi" in result.output


class TestServe:
    def test_serve_calls_run_server(self):
        with patch("semoss_openai.server.app.run_server") as mock_run:
            result = runner.invoke(
                app, ["serve", "--port", "9001", "--api-key", "k", "--cors-origin", "http://a"]
            )
        assert result.exit_code == 0, result.output
        kwargs = mock_run.call_args.kwargs
        assert kwargs["port"] == 9001
        assert kwargs["api_key"] == "k"
        assert kwargs["cors_origins"] == ["http://a"]
        assert "enabled" in result.output
