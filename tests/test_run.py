import ast
from pathlib import Path
from unittest import mock

import pytest

from tag_vision import run
from tag_vision.field_layout import load_field_layout

CONFIGS = Path(__file__).resolve().parents[1] / "configs"
SAMPLE_LAYOUT = CONFIGS / "sample_field_layout.json"


def _printed(capsys):
    return ast.literal_eval(capsys.readouterr().out.strip().splitlines()[-1])


def test_main_with_layout(capsys):
    assert run.main(["--layout", str(SAMPLE_LAYOUT), "--cycles", "5", "--seed", "1"]) == 0
    assert set(_printed(capsys)) == {"LLLeft", "LLRight"}


def test_main_with_config(capsys):
    argv = ["--config", str(CONFIGS / "vision.yaml"), "--cycles", "3", "--alliance", "red", "--seed", "1"]
    assert run.main(argv) == 0
    counts = _printed(capsys)
    assert all(0 <= n <= 3 for n in counts.values())


def test_layout_flag_overrides_config():
    with mock.patch.object(run, "load_field_layout", wraps=load_field_layout) as loader:
        run.main(["--config", str(CONFIGS / "vision.yaml"), "--layout", str(SAMPLE_LAYOUT), "--cycles", "1"])
    loader.assert_called_once_with(str(SAMPLE_LAYOUT))


def test_layout_is_required():
    with pytest.raises(SystemExit):
        run.main(["--cycles", "1"])


def test_log_file(tmp_path):
    log_path = tmp_path / "vision.log"
    run.main(["--layout", str(SAMPLE_LAYOUT), "--cycles", "2", "--log-file", str(log_path)])
    text = log_path.read_text(encoding="utf-8")
    assert "summary cycles=2" in text
