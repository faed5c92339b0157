#!/usr/bin/env python3
"""CLI Smoke Tests - "Does it still work?" tests

These tests detect when the app is fundamentally broken:
- Import errors
- Config file corruption
- Basic CLI functionality

NOT testing edge cases or complex logic - just "can the app start?"
"""

import json

from click.testing import CliRunner

from voicescore.cli import cli


class TestCLIImports:
    """Test that core components can be imported without crashing."""

    def test_package_imports(self):
        from voicescore.transcription.client import RelayClient, TranscriptionClient
        from voicescore.transcription.server import RelayServer, main

        assert callable(main)
        assert RelayServer is not None
        assert RelayClient is not None
        assert TranscriptionClient is not None


class TestCommands:
    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "score", "transcribe", "stream"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_score_json(self):
        result = CliRunner().invoke(cli, ["score", "", "--duration", "0", "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["overall"] == 3
        assert payload["pronunciation"] == 5

    def test_score_table(self):
        result = CliRunner().invoke(cli, ["score", "I went to the park yesterday.", "-d", "5"])
        assert result.exit_code == 0, result.output
        assert "Overall" in result.output

    def test_score_rejects_negative_duration(self):
        result = CliRunner().invoke(cli, ["score", "hello", "--duration", "-1"])
        assert result.exit_code != 0

    def test_transcribe_without_credential_fails_cleanly(self, tmp_path):
        audio = tmp_path / "answer.mp3"
        audio.write_bytes(b"ID3fake")

        result = CliRunner().invoke(cli, ["transcribe", str(audio), "--json"])

        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["success"] is False
        assert payload["details"] == "AssemblyAI API key not configured"
