"""
Unit Tests for the preprocess_image CLI

This module tests scripts/preprocess_image.py:
- key=value override parsing
- --list output
- Running presets end to end on a temporary image
- Exit codes for user errors
"""

import argparse
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterator, List

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent
SCRIPT_PATH = PROJECT_ROOT / "scripts" / "preprocess_image.py"


def load_script() -> ModuleType:
    spec = importlib.util.spec_from_file_location("preprocess_image", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


cli = load_script()


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def restore_logging(clean_config: None, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """main() reconfigures the root logger; put it back afterwards."""
    monkeypatch.delenv("TENSORPREP_PRESETS_PATH", raising=False)
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """Random 40x60 PNG on disk."""
    rng = np.random.default_rng(11)
    path = tmp_path / "input.png"
    cv2.imwrite(str(path), rng.integers(0, 256, (40, 60, 3), dtype=np.uint8))
    return path


def run_main(monkeypatch: pytest.MonkeyPatch, argv: List[str]) -> int:
    monkeypatch.setattr(sys, "argv", ["preprocess_image.py", *argv])
    return cli.main()


# =============================================================================
# Override Parsing
# =============================================================================

class TestParseOverrides:
    """Tests for parse_overrides."""

    def test_yaml_values(self) -> None:
        """Values are parsed as YAML scalars and lists."""
        overrides = cli.parse_overrides(["height=320", "mode=bicubic", "dims=[2, 0, 1]", "scale=127.5"])
        assert overrides == {"height": 320, "mode": "bicubic", "dims": [2, 0, 1], "scale": 127.5}

    def test_empty(self) -> None:
        """No pairs means no overrides."""
        assert cli.parse_overrides([]) == {}

    @pytest.mark.parametrize("pair", ["height", "=320"])
    def test_malformed(self, pair: str) -> None:
        """Pairs need a key and an equals sign."""
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_overrides([pair])


# =============================================================================
# Main
# =============================================================================

class TestMain:
    """Tests for main."""

    def test_list(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
        """--list prints every preset and exits 0."""
        assert run_main(monkeypatch, ["--list"]) == 0

        output = capsys.readouterr().out
        assert "imagenet_classification" in output
        assert "tflite" in output

    def test_default_preset(self, monkeypatch: pytest.MonkeyPatch, image_file: Path, tmp_path: Path) -> None:
        """The ImageNet preset runs by default and saves a .npy tensor."""
        output = tmp_path / "out" / "tensor.npy"

        assert run_main(monkeypatch, [str(image_file), str(output)]) == 0

        tensor = np.load(output)
        assert tensor.shape == (1, 3, 224, 224)
        assert tensor.dtype == np.float32

    def test_preset_with_overrides(self, monkeypatch: pytest.MonkeyPatch, image_file: Path, tmp_path: Path) -> None:
        """--set replaces step parameters."""
        output = tmp_path / "tensor.npy"
        argv = [str(image_file), str(output), "--preset", "object_detection", "--set", "height=32", "--set", "width=48"]

        assert run_main(monkeypatch, argv) == 0
        assert np.load(output).shape == (1, 3, 32, 48)

    @pytest.mark.parametrize(
        "extra",
        [
            ["--preset", "does_not_exist"],
            ["--set", "height"],
            ["--set", "shortest_edge=10", "--preset", "minimal"],
            ["--set", "height=0", "--preset", "minimal"],
        ],
    )
    def test_user_errors_exit_1(self, monkeypatch: pytest.MonkeyPatch, image_file: Path, tmp_path: Path, extra: List[str]) -> None:
        """Bad presets and overrides are reported with exit code 1."""
        output = tmp_path / "tensor.npy"

        assert run_main(monkeypatch, [str(image_file), str(output), *extra]) == 1
        assert not output.exists()

    def test_missing_image(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Unreadable images exit 1."""
        assert run_main(monkeypatch, [str(tmp_path / "missing.png"), str(tmp_path / "out.npy")]) == 1

    def test_missing_arguments(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """image and output are required without --list."""
        with pytest.raises(SystemExit) as exc_info:
            run_main(monkeypatch, [])
        assert exc_info.value.code == 2

    @pytest.mark.slow
    def test_async(self, monkeypatch: pytest.MonkeyPatch, image_file: Path, tmp_path: Path) -> None:
        """--async runs the preset in the worker pool."""
        monkeypatch.setenv("TENSORPREP_DISPATCH_WORKERS", "1")
        output = tmp_path / "tensor.npy"

        assert run_main(monkeypatch, [str(image_file), str(output), "--preset", "minimal", "--async", "--timeout", "60"]) == 0
        assert np.load(output).shape == (1, 3, 224, 224)
