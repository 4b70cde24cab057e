"""
Tests for run logging.
"""

import json

from rich.console import Console

from browserbot.logger import RunLogger, redact_arguments, slugify
from browserbot.prompts import parse_verdict
from browserbot.types import ExitReason, TaskResult, TextFragment, ToolEnded, ToolStarted, Verdict


class TestRunLogger:
    """JSONL step log and console rendering."""

    def test_step_log(self, tmp_path):
        run_logger = RunLogger("Open example.com!", enable_console=False, runs_dir=tmp_path)
        run_logger.log_step(1, "Navigating", ("browser_navigate",))
        run_logger.log_step(2, "TASK COMPLETE", verdict=Verdict(is_complete=True))
        run_logger.log_step(3, "", error="connection reset")

        assert run_logger.run_dir.name.endswith("open_examplecom")
        entries = [json.loads(line) for line in run_logger.steps_file.read_text().splitlines()]
        assert [e["step"] for e in entries] == [1, 2, 3]
        assert entries[0]["tools_invoked"] == ["browser_navigate"]
        assert entries[1]["is_complete"] is True
        assert entries[2]["error"] == "connection reset"

    def test_step_log_records_sections(self, tmp_path):
        """Structured OBSERVATION/REASONING/ACTION sections land in the step log."""
        run_logger = RunLogger("task", enable_console=False, runs_dir=tmp_path)
        response = "OBSERVATION: search page\nREASONING: need results\nACTION: click Search"
        run_logger.log_step(1, response, verdict=parse_verdict(response))
        run_logger.log_step(2, "", error="timeout")

        first, second = [json.loads(line) for line in run_logger.steps_file.read_text().splitlines()]
        assert first["observation"] == "search page"
        assert first["reasoning"] == "need results"
        assert first["action"] == "click Search"
        assert second["reasoning"] is None

    def test_verdict_sections_printed(self, tmp_path):
        run_logger = RunLogger("task", runs_dir=None)
        run_logger.console = Console(record=True, width=120)
        run_logger.print_verdict(parse_verdict("REASONING: the [/bold] page is ready\nTASK COMPLETE"))

        output = run_logger.console.export_text()
        assert "Reasoning: the [/bold] page is ready" in output
        assert "Model declared the task complete" in output

    def test_no_runs_dir_disables_log(self):
        run_logger = RunLogger("task", enable_console=False)
        run_logger.log_step(1, "text")
        assert run_logger.steps_file is None

    def test_console_rendering_does_not_fail(self, tmp_path):
        run_logger = RunLogger("task", runs_dir=tmp_path)
        run_logger.print_header("qwen2.5:7b", 10)
        run_logger.print_iteration(1, "Step 1/10 (10%) | Consecutive failures: 0/3")
        run_logger.handle_event(TextFragment("Looking"))
        run_logger.handle_event(ToolStarted("browser_type", {"element": "Password", "ref": "e2", "text": "hunter2"}))
        run_logger.handle_event(ToolEnded("browser_type", error="browser_type: Timeout"))
        run_logger.print_verdict(Verdict(is_failed=True))
        run_logger.print_summary(TaskResult(
            success=False,
            message="Task stopped: error",
            steps_taken=1,
            exit_reason=ExitReason.ERROR,
        ))


class TestHelpers:
    """Slugs and redaction."""

    def test_slugify(self):
        assert slugify("Play Lofi -- music!") == "play_lofi_music"
        assert len(slugify("x" * 100)) == 30

    def test_password_redacted(self):
        args = {"element": "Password field", "ref": "e2", "text": "hunter2"}
        assert redact_arguments("browser_type", args)["text"] == "[REDACTED]"
        assert args["text"] == "hunter2"

    def test_other_fields_kept(self):
        args = {"element": "Search box", "ref": "e1", "text": "lofi"}
        assert redact_arguments("browser_type", args) is args
        assert redact_arguments("browser_click", {"element": "Password"}) == {"element": "Password"}
