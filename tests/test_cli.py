"""Tests for the command-line interface."""

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from chat_gateway.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(cli, ["--version"], obj={})
    assert result.exit_code == 0
    assert "chat-gateway" in result.output


def test_init_writes_config(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["init"], obj={})

        assert result.exit_code == 0
        content = Path("gateway.yaml").read_text()
        assert "rate_limit:" in content
        assert "${OPENAI_API_KEY}" in content


def test_init_keeps_existing_file_unless_confirmed(runner):
    with runner.isolated_filesystem():
        Path("gateway.yaml").write_text("keep: me\n")

        result = runner.invoke(cli, ["init"], input="n\n", obj={})

        assert result.exit_code == 0
        assert Path("gateway.yaml").read_text() == "keep: me\n"


def test_config_masks_api_key(runner, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-verysecretvalue1234")

    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["config"], obj={})

    assert result.exit_code == 0
    assert "sk-verysecretvalue1234" not in result.output
    assert "1234" in result.output


def test_config_reads_env_file(runner, monkeypatch):
    monkeypatch.delenv("RATE_LIMIT_MAX", raising=False)

    with runner.isolated_filesystem():
        Path(".env").write_text("RATE_LIMIT_MAX=77\n")
        result = runner.invoke(cli, ["config"], obj={})

    # load_dotenv writes straight into os.environ
    os.environ.pop("RATE_LIMIT_MAX", None)

    assert result.exit_code == 0
    assert "77" in result.output


def test_missing_config_file(runner):
    with runner.isolated_filesystem():
        result = runner.invoke(cli, ["-c", "missing.yaml", "config"], obj={})

    assert result.exit_code == 1
    assert "not found" in result.output
