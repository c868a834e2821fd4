"""
Tests for the config command.
"""

from argparse import Namespace
from unittest.mock import patch

import pytest

from devstrap.cli.commands import config as config_cmd
from devstrap.core.config import load_config
from devstrap.core.exceptions import ConfigError


@pytest.fixture
def config_file(isolated_home, tmp_path):
    return tmp_path / "settings" / "config.yaml"


def args_for(config_file, action, **extra):
    return Namespace(config=config_file, config_command=action, **extra)


class TestConfigCommand:
    """Test show/get/set/edit/reset."""

    def test_set_then_get(self, config_file, capsys):
        assert config_cmd.run(args_for(config_file, "set", key="java.version", value="17")) == 0
        assert load_config(config_file, create=False).java_version == "17"

        capsys.readouterr()
        config_cmd.run(args_for(config_file, "get", key="java.version"))
        assert capsys.readouterr().out.strip() == "17"

    def test_set_mirror(self, config_file):
        config_cmd.run(
            args_for(config_file, "set", key="mirrors.go", value="https://mirror.example.com/go")
        )
        assert load_config(config_file, create=False).mirrors == {
            "go": "https://mirror.example.com/go"
        }

    def test_unknown_key(self, config_file):
        with pytest.raises(ConfigError):
            config_cmd.run(args_for(config_file, "get", key="colour"))

    def test_show_is_default_action(self, config_file, capsys):
        assert config_cmd.run(args_for(config_file, None)) == 0
        out = capsys.readouterr().out
        assert str(config_file) in out
        assert "java:" in out

    def test_reset(self, config_file, capsys):
        config_cmd.run(args_for(config_file, "set", key="go.version", value="1.23.4"))
        assert config_cmd.run(args_for(config_file, "reset")) == 0
        assert not config_file.exists()

        config_cmd.run(args_for(config_file, "reset"))
        assert "already at defaults" in capsys.readouterr().out

    def test_edit_runs_editor_and_validates(self, config_file, monkeypatch):
        monkeypatch.setenv("VISUAL", "code --wait")
        with patch.object(config_cmd.subprocess, "run") as mock_run, patch.object(
            config_cmd, "detect_platform"
        ) as mock_platform:
            mock_platform.return_value.is_windows = False
            assert config_cmd.run(args_for(config_file, "edit")) == 0

        assert mock_run.call_args[0][0] == ["code", "--wait", str(config_file)]

    def test_edit_reports_broken_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("VISUAL", "vi")

        def break_file(command, check):
            config_file.write_text("java: [unclosed")

        with patch.object(config_cmd.subprocess, "run", side_effect=break_file):
            with pytest.raises(ConfigError):
                config_cmd.run(args_for(config_file, "edit"))

    def test_default_editor(self, monkeypatch):
        monkeypatch.delenv("VISUAL", raising=False)
        monkeypatch.delenv("EDITOR", raising=False)
        with patch.object(config_cmd, "detect_platform") as mock_platform:
            mock_platform.return_value.is_windows = True
            assert config_cmd.get_editor() == "notepad"
