"""Tests for configuration dataclasses and run logging."""

from pathlib import Path

import pytest

from subtest.core.config import FitConfig, OutputConfig
from subtest.utils.logging import setup_logging, write_run_log


class TestFitConfig:
    def test_defaults_validate(self):
        FitConfig().validate()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_iterations", 0),
            ("tolerance", 0.0),
            ("concentration_C", -1.0),
            ("log_interval", 0),
            ("accel_rho_cap", 1.0),
            ("accel_sd_floor", 0.0),
            ("rho_margin", 0.0),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ValueError):
            FitConfig(**{field: value}).validate()

    def test_sd_floor(self):
        assert FitConfig().sd_floor == 0.0
        assert FitConfig(enforce_min_sd_1=True).sd_floor == 1.0


class TestOutputConfig:
    def test_paths(self, tmp_path: Path):
        config = OutputConfig(outdir=tmp_path / "out", prefix="run")
        assert config.log_path == tmp_path / "out" / "run.log.txt"
        assert config.history_path.name == "run.history.txt"
        assert config.params_path.name == "run.pars.txt"

    def test_ensure_outdir(self, tmp_path: Path):
        config = OutputConfig(outdir=tmp_path / "a" / "b")
        config.ensure_outdir()
        assert config.outdir.is_dir()


class TestRunLog:
    def test_write_run_log(self, tmp_path: Path):
        import subtest

        config = OutputConfig(outdir=tmp_path, prefix="run")
        path = write_run_log(
            config, {"n_observations": 10}, {"total": 1.5}, "subtest fit -z z.txt"
        )
        text = path.read_text()
        assert f"## subtest Version = {subtest.__version__}" in text
        assert "## Command Line Input = subtest fit -z z.txt" in text
        assert "## n_observations = 10" in text
        assert "## total time = 1.50 seconds" in text

    def test_setup_logging_file_sink(self, tmp_path: Path):
        from loguru import logger

        log_file = tmp_path / "debug.json"
        setup_logging(verbose=True, log_file=log_file)
        logger.debug("hello from test")
        logger.remove()
        setup_logging()
        assert "hello from test" in log_file.read_text()
