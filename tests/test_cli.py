"""Tests for the th command line entry point."""

from click.testing import CliRunner

from th import __version__
from th.cli import cli


class TestCli:
    """Tests for argument handling in cli()."""

    def test_no_task_prints_usage(self) -> None:
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 1
        assert "Usage: th <task description>" in result.output

    def test_words_are_joined_into_one_task(self, monkeypatch) -> None:
        seen = []

        class FakeAssistant:
            def __init__(self, settings=None, ui=None):
                self.settings = settings

            async def run(self, task: str) -> int:
                seen.append(task)
                return 4

        monkeypatch.setattr("th.cli.CommandAssistant", FakeAssistant)

        result = CliRunner().invoke(cli, ["list", "-la", "files"])

        assert seen == ["list -la files"]
        assert result.exit_code == 4

    def test_settings_come_from_environment(self, monkeypatch) -> None:
        captured = {}

        class FakeAssistant:
            def __init__(self, settings=None, ui=None):
                captured["settings"] = settings

            async def run(self, task: str) -> int:
                return 0

        monkeypatch.setattr("th.cli.CommandAssistant", FakeAssistant)
        monkeypatch.setenv("TH_MODEL", "gpt-4.1")

        result = CliRunner().invoke(cli, ["pwd"])

        assert result.exit_code == 0
        assert captured["settings"].model == "gpt-4.1"

    def test_interrupt_exits_130(self, monkeypatch) -> None:
        class FakeAssistant:
            def __init__(self, settings=None, ui=None):
                pass

            async def run(self, task: str) -> int:
                raise KeyboardInterrupt

        monkeypatch.setattr("th.cli.CommandAssistant", FakeAssistant)

        result = CliRunner().invoke(cli, ["sleep", "10"])

        assert result.exit_code == 130

    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
