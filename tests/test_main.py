"""
Test Command Line Module
========================

Tests for the offline CLI modes.
"""

import pytest
from pathlib import Path
from unittest.mock import patch
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import main


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("main.setup_logging"):
        yield


class TestMain:
    """Tests for main.main."""

    def test_check(self, write_settings, capsys):
        settings = write_settings({"on_message": [{"contains": "hello", "response": "Hi!"}]})

        assert main.main(["--check", "--settings", settings.settings_path]) == 0
        out = capsys.readouterr().out
        assert "Actions: 7" in out
        assert "Page 1/1\nhello" in out

    def test_test_message(self, write_settings, capsys):
        settings = write_settings({"on_message": [{"contains": "hello", "response": "Hi!"}]})

        assert main.main(["--test", "hello", "--settings", settings.settings_path]) == 0
        assert "Hi!" in capsys.readouterr().out

    def test_test_message_context(self, write_settings, capsys):
        settings = write_settings({"on_message": [{"chat": "poke", "response": "Poked"}]})

        main.main(["--test", "anything", "poke", "--settings", settings.settings_path])
        assert "Poked" in capsys.readouterr().out

    def test_no_reply(self, write_settings, capsys):
        settings = write_settings({})
        main.main(["--test", "hello", "--settings", settings.settings_path])
        assert "(no reply)" in capsys.readouterr().out

    def test_invalid_actions(self, write_settings, capsys):
        """Test configuration errors exit with status 1."""
        settings = write_settings({"on_message": [{"matches": "(", "response": "x"}]})

        assert main.main(["--check", "--settings", settings.settings_path]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_setup(self, tmp_path, capsys):
        path = tmp_path / "conf" / "settings.yaml"
        assert main.main(["--setup", "--settings", str(path)]) == 0
        assert path.exists()
