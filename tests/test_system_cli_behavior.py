"""
CLI Behavior Tests

Verifies that command-line interface behaves correctly,
parses arguments properly, and produces expected outputs.

Test data and expected values are defined in tests/test_config.py.
Update that file to change test parameters without modifying this script.
"""

import pytest
from unittest.mock import patch

from main import WEB_HOST, create_parser, main
from idea_intake.config import IntakeSettings
from idea_intake.pipeline import IntakePipeline
from idea_intake.services.rate_limiter import RateLimiter
from idea_intake.storage import MockStorage

# Import externalized test configuration
from tests.fakes import FakeLanguageModel
from tests.test_config import EXPECTED, MESSAGES, get_enriched_json


@pytest.fixture
def cli_storage():
    return MockStorage()


@pytest.fixture
def cli_pipeline(cli_storage):
    """Patch main.build_pipeline to an in-memory pipeline with a scripted model."""
    llm = FakeLanguageModel(enrichment=get_enriched_json())
    pipeline = IntakePipeline(cli_storage, llm, rate_limiter=RateLimiter(per_user=1, global_limit=50))
    with patch("main.build_pipeline", return_value=pipeline) as build:
        yield build


@pytest.mark.system_cli_behavior
class TestArgumentParsing:
    """Tests for correct argument parsing."""

    def test_submit_parsed_correctly(self):
        """
        GIVEN: CLI invoked with submit and idea text
        WHEN: Arguments are parsed
        THEN: command is 'submit' with the text and default submitter
        """
        parser = create_parser()
        args = parser.parse_args(["submit", "Add dark mode toggle"])

        assert args.command == "submit"
        assert args.text == "Add dark mode toggle"
        assert args.user_id == 0, "default user id should be 0"
        assert args.username == "cli"
        assert args.db is None

    def test_submit_options(self):
        parser = create_parser()
        args = parser.parse_args(["submit", "text", "--user-id", "42", "--username", "alice", "--db", "/tmp/x.db"])

        assert args.user_id == 42
        assert isinstance(args.user_id, int), "user id should be int"
        assert args.username == "alice"
        assert args.db == "/tmp/x.db"

    def test_web_options(self):
        parser = create_parser()
        args = parser.parse_args(["web", "--host", "0.0.0.0", "--port", "9000"])

        assert args.command == "web"
        assert args.host == "0.0.0.0"
        assert args.port == 9000

    def test_verbose_short_flag(self):
        args = create_parser().parse_args(["-v", "web"])
        assert args.verbose is True


@pytest.mark.system_cli_behavior
class TestInvalidArguments:
    """Tests for rejection of invalid arguments."""

    def test_non_integer_user_id_rejected(self):
        """
        GIVEN: CLI invoked with --user-id abc
        WHEN: Arguments are parsed
        THEN: SystemExit with argparse's error code
        """
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["submit", "text", "--user-id", "abc"])

        assert exc_info.value.code == EXPECTED["cli"]["exit_code_argparse_error"]

    def test_unknown_command_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["export"])

        assert exc_info.value.code == EXPECTED["cli"]["exit_code_argparse_error"]


@pytest.mark.system_cli_behavior
class TestHelpText:
    """Tests for help output."""

    def test_help_lists_commands_and_flags(self, capsys):
        """
        GIVEN: CLI invoked with --help
        WHEN: Help is printed
        THEN: Commands and global flags are mentioned
        """
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--help"])
        out = capsys.readouterr().out

        assert exc_info.value.code == 0
        for fragment in MESSAGES["cli_help"].values():
            assert fragment in out, f"help should mention {fragment}"

    def test_no_command_prints_help_and_fails(self, capsys):
        exit_code = main([])

        assert exit_code == EXPECTED["cli"]["exit_code_failure"]
        assert "usage" in capsys.readouterr().out.lower()


@pytest.mark.system_cli_behavior
class TestShowConfigBehavior:
    """Tests for --show-config."""

    def test_show_config_exits_zero(self, capsys):
        exit_code = main(["--show-config"])

        assert exit_code == EXPECTED["cli"]["exit_code_success"]
        assert "Idea Intake Configuration" in capsys.readouterr().out

    def test_show_config_does_not_build_pipeline(self):
        """
        GIVEN: CLI invoked with --show-config and a command
        WHEN: main() runs
        THEN: No pipeline is built
        """
        with patch("main.build_pipeline") as build:
            main(["--show-config", "submit", "Add dark mode toggle"])

        build.assert_not_called()


@pytest.mark.system_cli_behavior
class TestSubmitCommand:
    """Tests for the submit command end to end through the chat handler."""

    def test_successful_submission_returns_zero(self, cli_pipeline, cli_storage, capsys):
        """
        GIVEN: A valid idea and a working model
        WHEN: submit runs
        THEN: Exit code 0, the idea is stored and the summary is printed
        """
        exit_code = main(["submit", "Add a dark mode toggle to settings"])
        out = capsys.readouterr().out

        assert exit_code == EXPECTED["cli"]["exit_code_success"]
        assert cli_storage.count() == 1
        assert cli_storage.get_record(1).enriched.title == "Dark mode toggle"
        assert "Idea #1 saved and enriched" in out
        assert MESSAGES["bot"]["thinking"] in out

    def test_submitter_passed_through(self, cli_pipeline, cli_storage):
        main(["submit", "Add a dark mode toggle to settings", "--user-id", "7", "--username", "alice"])

        record = cli_storage.get_record(1)
        assert record.user_id == 7
        assert record.username == "alice"

    def test_db_option_overrides_settings(self, cli_pipeline):
        main(["submit", "Add a dark mode toggle to settings", "--db", "/tmp/other.db"])

        settings = cli_pipeline.call_args[0][0]
        assert settings.sqlite_path == "/tmp/other.db"

    def test_submit_starts_hourly_limiter_reset(self, cli_pipeline):
        with patch("idea_intake.bot.handler.IdeaBot.start_cleanup") as start_cleanup:
            main(["submit", "Add a dark mode toggle to settings"])

        start_cleanup.assert_called_once_with(3600)

    def test_submit_ignores_chat_allow_list(self, cli_pipeline, cli_storage):
        """
        GIVEN: ALLOWED_CHATS restricts the bot to one group
        WHEN: submit runs from the console
        THEN: The idea is still accepted
        """
        settings = IntakeSettings(allowed_chats=(-100123,))
        with patch("main.IntakeSettings.from_env", return_value=settings):
            exit_code = main(["submit", "Add a dark mode toggle to settings"])

        assert exit_code == EXPECTED["cli"]["exit_code_success"]
        assert cli_storage.count() == 1

    def test_too_short_returns_nonzero(self, cli_pipeline, cli_storage, capsys):
        exit_code = main(["submit", "short"])

        assert exit_code == EXPECTED["cli"]["exit_code_failure"]
        assert cli_storage.count() == 0
        assert MESSAGES["bot"]["too_short"] in capsys.readouterr().out

    def test_rate_limited_returns_nonzero(self, cli_pipeline, cli_storage):
        """
        GIVEN: A per-user quota of one and a second submission from the same user
        WHEN: submit runs twice
        THEN: The second run exits non-zero and stores nothing
        """
        main(["submit", "Add a dark mode toggle to settings"])
        exit_code = main(["submit", "Export the idea list to CSV"])

        assert exit_code == EXPECTED["cli"]["exit_code_failure"]
        assert cli_storage.count() == 1


@pytest.mark.system_cli_behavior
class TestExitCodes:
    """Tests for error exit codes."""

    def test_keyboard_interrupt_returns_130(self):
        with patch("main.run_submit", side_effect=KeyboardInterrupt):
            exit_code = main(["submit", "Add a dark mode toggle to settings"])

        assert exit_code == EXPECTED["cli"]["exit_code_interrupted"]

    def test_unexpected_error_returns_one(self, capsys):
        with patch("main.build_pipeline", side_effect=RuntimeError("database is locked")):
            exit_code = main(["submit", "Add a dark mode toggle to settings"])

        assert exit_code == EXPECTED["cli"]["exit_code_failure"]
        assert "database is locked" in capsys.readouterr().out

    def test_web_command_runs_server(self):
        with patch("web.app.run") as run:
            exit_code = main(["web", "--port", "9000"])

        assert exit_code == EXPECTED["cli"]["exit_code_success"]
        run.assert_called_once_with(host=WEB_HOST, port=9000)
