"""
Unit Tests for the gpt-compiler command line
"""
import logging
from unittest.mock import AsyncMock, patch

import pytest

from gpt_compiler.exceptions import ServiceError
from gpt_compiler.main import create_parser, main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("gpt_compiler")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def no_dotenv(tmp_path):
    """Point --env-file at a file that does not exist"""
    return ["--env-file", str(tmp_path / "absent.env")]


def run_cli(args):
    with pytest.raises(SystemExit) as exc_info:
        main(args)
    return exc_info.value.code


class TestParser:
    """Tests for argument parsing"""

    def test_commands(self):
        """Test the three subcommands parse"""
        parser = create_parser()

        assert parser.parse_args(["compile", "a.gpt"]).file == "a.gpt"
        assert parser.parse_args(["watch"]).dir == "."
        args = parser.parse_args(["new", "todo", "-l", "rust"])
        assert (args.file, args.lang) == ("todo", "rust")

    def test_new_defaults_to_python(self):
        """Test the template language default"""
        assert create_parser().parse_args(["new", "x"]).lang == "python"

    def test_version(self, capsys):
        """Test --version exits cleanly"""
        assert run_cli(["--version"]) == 0
        assert "1.0.0" in capsys.readouterr().out

    def test_no_command_shows_help(self, capsys):
        """Test running without a command prints help and fails"""
        assert run_cli([]) == 1
        assert "usage" in capsys.readouterr().out.lower()


class TestCompileCommand:
    """Tests for `compile`"""

    def test_missing_file(self, tmp_path, no_dotenv, capsys):
        """Test a missing document exits with 1"""
        assert run_cli(no_dotenv + ["compile", str(tmp_path / "none.gpt")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_wrong_extension(self, tmp_path, no_dotenv, capsys):
        """Test only .gpt files are compiled"""
        path = tmp_path / "notes.txt"
        path.write_text("hi", encoding="utf-8")

        assert run_cli(no_dotenv + ["compile", str(path)]) == 1
        assert "Only .gpt files can be compiled" in capsys.readouterr().out

    def test_missing_api_key(self, tmp_path, no_dotenv, capsys):
        """Test the missing credential is fatal before compiling"""
        path = tmp_path / "a.gpt"
        path.write_text("body", encoding="utf-8")

        with patch("gpt_compiler.main.run_compile") as run_compile:
            assert run_cli(no_dotenv + ["compile", str(path)]) == 1

        run_compile.assert_not_called()
        assert "OPENROUTER_API_KEY" in capsys.readouterr().out

    def test_bad_config_file_value(self, tmp_path, no_dotenv, capsys):
        """Test a mistyped config file setting is an error message, not a traceback"""
        config_file = tmp_path / "config.json"
        config_file.write_text('{"max_concurrent": "many"}', encoding="utf-8")
        path = tmp_path / "a.gpt"
        path.write_text("body", encoding="utf-8")

        assert run_cli(no_dotenv + ["--config", str(config_file), "compile", str(path)]) == 1
        assert "Invalid value for max_concurrent" in capsys.readouterr().out

    def test_successful_compile(self, tmp_path, no_dotenv, monkeypatch):
        """Test a good document exits 0 and writes the artifact"""
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        path = tmp_path / "hello.gpt"
        path.write_text("@language: python\n\nPrint hello world", encoding="utf-8")

        with patch("gpt_compiler.main.CompilationClient.compile",
                   new=AsyncMock(return_value="print('hello world')")):
            assert run_cli(no_dotenv + ["compile", str(path)]) == 0

        assert (tmp_path / "hello.py").read_text(encoding="utf-8") == "print('hello world')"

    def test_failed_compile(self, tmp_path, no_dotenv, monkeypatch, capsys):
        """Test a failure outcome exits 1"""
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        path = tmp_path / "hello.gpt"
        path.write_text("body", encoding="utf-8")

        with patch("gpt_compiler.main.CompilationClient.compile",
                   new=AsyncMock(side_effect=ServiceError("quota exceeded", status_code=402))):
            assert run_cli(no_dotenv + ["compile", str(path)]) == 1

        assert "quota exceeded" in capsys.readouterr().out
        assert not (tmp_path / "hello.js").exists()

    def test_model_flag(self, tmp_path, no_dotenv, monkeypatch):
        """Test -m overrides the configured model"""
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        monkeypatch.setenv("AI_MODEL", "from/env")
        path = tmp_path / "m.gpt"
        path.write_text("body", encoding="utf-8")
        seen = {}

        async def fake_run_compile(config, file_path):
            seen["model"] = config.model
            from gpt_compiler.pipeline import PipelineOutcome
            return PipelineOutcome.succeeded(file_path.with_suffix(".js"), "javascript")

        with patch("gpt_compiler.main.run_compile", new=fake_run_compile):
            assert run_cli(no_dotenv + ["-m", "from/flag", "compile", str(path)]) == 0

        assert seen["model"] == "from/flag"


class TestWatchCommand:
    """Tests for `watch` argument checks"""

    def test_missing_directory(self, tmp_path, no_dotenv, capsys):
        """Test a missing directory exits with 1"""
        assert run_cli(no_dotenv + ["watch", str(tmp_path / "nowhere")]) == 1
        assert "Directory not found" in capsys.readouterr().out

    def test_missing_api_key(self, tmp_path, no_dotenv):
        """Test watch refuses to start without a key"""
        with patch("gpt_compiler.main.run_watch") as run_watch:
            assert run_cli(no_dotenv + ["watch", str(tmp_path)]) == 1

        run_watch.assert_not_called()


class TestNewCommand:
    """Tests for `new`"""

    def test_creates_document_without_api_key(self, tmp_path, no_dotenv):
        """Test scaffolding works without credentials"""
        assert run_cli(no_dotenv + ["new", str(tmp_path / "todo"), "--lang", "javascript"]) == 0

        text = (tmp_path / "todo.gpt").read_text(encoding="utf-8")
        assert text.startswith("@language: javascript\n@output: todo.js\n")

    def test_existing_document(self, tmp_path, no_dotenv, capsys):
        """Test an existing file is not overwritten"""
        (tmp_path / "todo.gpt").write_text("keep", encoding="utf-8")

        assert run_cli(no_dotenv + ["new", str(tmp_path / "todo")]) == 1
        assert (tmp_path / "todo.gpt").read_text(encoding="utf-8") == "keep"
        assert "File already exists" in capsys.readouterr().out
