"""Integration tests for the CLI layer."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from async_emitter.cli.main import cli


class TestConfigCommand:
    """Tests for the ``config`` sub-command."""

    def test_help_shows_options(self) -> None:
        """``--help`` displays usage information without errors."""
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "--help"])

        assert result.exit_code == 0
        assert "--config-dir" in result.output
        assert "--emitter" in result.output
        assert "--set" in result.output

    def test_prints_resolved_settings(self, tmp_path: Path) -> None:
        """Global and per-emitter TOML values are merged and printed."""
        (tmp_path / "emitters").mkdir()
        (tmp_path / "config.toml").write_text("[emitter]\nstrict = true\n")
        (tmp_path / "emitters" / "ui.toml").write_text("[emitter]\ndebug_timeout = 3.0\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "--config-dir", str(tmp_path), "--emitter", "ui"])

        assert result.exit_code == 0
        assert "strict = true" in result.output
        assert "debug = false" in result.output
        assert "debug_timeout = 3.0" in result.output

    def test_invalid_config_exits_with_error(self, tmp_path: Path) -> None:
        """Malformed values are reported instead of raising a traceback."""
        (tmp_path / "config.toml").write_text('[emitter]\nstrict = "maybe"\n')

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "--config-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "'strict' must be a boolean" in result.output

    def test_set_overrides_global_options(self, tmp_path: Path) -> None:
        """``--set`` values override config.toml and are parsed as TOML literals."""
        (tmp_path / "config.toml").write_text("[emitter]\nstrict = false\n")

        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["config", "--config-dir", str(tmp_path), "--set", "strict=true", "-s", "debug_timeout=0.5"],
        )

        assert result.exit_code == 0
        assert "strict = true" in result.output
        assert "debug_timeout = 0.5" in result.output

    def test_per_emitter_file_wins_over_set(self, tmp_path: Path) -> None:
        """An emitter's own file still takes precedence over a global override."""
        (tmp_path / "emitters").mkdir()
        (tmp_path / "emitters" / "ui.toml").write_text("[emitter]\ndebug = false\n")

        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["config", "--config-dir", str(tmp_path), "--emitter", "ui", "--set", "debug=true"],
        )

        assert result.exit_code == 0
        assert "debug = false" in result.output

    def test_malformed_set_is_rejected(self, tmp_path: Path) -> None:
        """An override without ``=`` is a usage error."""
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "--config-dir", str(tmp_path), "--set", "strict"])

        assert result.exit_code == 2
        assert "expected KEY=VALUE" in result.output


class TestSimulateCommand:
    """Tests for the ``simulate`` sub-command."""

    def test_async_listeners_complete(self) -> None:
        """Delayed listeners complete and the count is reported."""
        runner = CliRunner()
        result = runner.invoke(cli, ["simulate", "--listeners", "4", "--delay", "5"])

        assert result.exit_code == 0
        assert "Completed 'simulated' after 4 listener(s)" in result.output

    def test_zero_listeners_complete(self) -> None:
        """An event without listeners completes immediately."""
        runner = CliRunner()
        result = runner.invoke(cli, ["simulate", "-n", "0", "--event", "idle"])

        assert result.exit_code == 0
        assert "Completed 'idle' after 0 listener(s)" in result.output

    def test_sync_listeners_fail_in_strict_mode(self) -> None:
        """Strict mode turns same-turn completion into a CLI error."""
        runner = CliRunner()
        result = runner.invoke(cli, ["simulate", "--sync", "--strict"])

        assert result.exit_code == 1
        assert "synchronously during dispatch" in result.output

    def test_sync_listeners_complete_without_strict(self) -> None:
        """Without strict mode, same-turn completion still finishes."""
        runner = CliRunner()
        result = runner.invoke(cli, ["simulate", "--sync", "-n", "2"])

        assert result.exit_code == 0
        assert "Completed 'simulated' after 2 listener(s)" in result.output
