"""
Tests for the lgc command-line interface.

Runs each command through click's CliRunner against small CSV files.
"""

import logging

import pytest
from click.testing import CliRunner

from local_correlation.cli import cli
from local_correlation.core.config import EngineConfig


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers bound to the runner's streams after each test."""
    yield
    logger = logging.getLogger("local_correlation")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestVersion:
    """Test version output."""

    def test_version_command(self, runner):
        """Test the version command."""
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert "v0.1.0" in result.output

    def test_version_option(self, runner):
        """Test --version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestInitConfig:
    """Test sample config generation."""

    def test_writes_loadable_config(self, runner, tmp_path):
        """Test the sample config loads with default values."""
        output = tmp_path / "configs" / "lgc.yaml"

        result = runner.invoke(cli, ["init-config", str(output)])

        assert result.exit_code == 0
        assert output.exists()
        config = EngineConfig.from_yaml(str(output))
        assert config.grid_size == 30
        assert config.bootstrap_iterations == 200
        assert config.bandwidth is None


class TestAnalyze:
    """Test the analyze command."""

    def test_basic_analysis(self, runner, csv_file):
        """Test a summary is printed for a valid column pair."""
        result = runner.invoke(cli, ["analyze", str(csv_file), "-x", "income", "-y", "spending", "-g", "8"])

        assert result.exit_code == 0, result.output
        assert "SUMMARY" in result.output
        assert "Pearson r" in result.output
        assert "300 of 302 rows" in result.output
        assert "8 x 8" in result.output
        assert "Significant cells" not in result.output

    def test_bootstrap_analysis(self, runner, csv_file):
        """Test bootstrap progress and significance output."""
        result = runner.invoke(cli, [
            "analyze", str(csv_file), "-x", "income", "-y", "spending",
            "-g", "6", "--bootstrap", "-n", "20", "--seed", "3"
        ])

        assert result.exit_code == 0, result.output
        assert "Bootstrap complete" in result.output
        assert "100%" in result.output
        assert "Significant cells" in result.output

    def test_quiet_bootstrap(self, runner, csv_file):
        """Test --quiet hides bootstrap progress."""
        result = runner.invoke(cli, [
            "analyze", str(csv_file), "-x", "income", "-y", "spending",
            "-g", "5", "--bootstrap", "-n", "10", "-q"
        ])

        assert result.exit_code == 0, result.output
        assert "Bootstrap complete" not in result.output
        assert "Significant cells" in result.output

    def test_config_file(self, runner, csv_file, tmp_path):
        """Test settings come from the config file unless overridden."""
        config = tmp_path / "lgc.yaml"
        config.write_text("local_correlation:\n  grid_size: 7\n  bandwidth: 0.9\n")

        from_file = runner.invoke(cli, ["analyze", str(csv_file), "-x", "income", "-y", "spending", "-c", str(config)])
        overridden = runner.invoke(cli, [
            "analyze", str(csv_file), "-x", "income", "-y", "spending", "-c", str(config), "-g", "4"
        ])

        assert from_file.exit_code == 0, from_file.output
        assert "7 x 7" in from_file.output
        assert "(fixed)" in from_file.output
        assert "4 x 4" in overridden.output

    def test_tab_delimiter(self, runner, tmp_path):
        """Test a literal \\t selects tab-separated input."""
        path = tmp_path / "data.tsv"
        rows = ["a\tb"] + [f"{i}\t{(i * 7) % 13}" for i in range(30)]
        path.write_text("\n".join(rows) + "\n")

        result = runner.invoke(cli, ["analyze", str(path), "-x", "a", "-y", "b", "-d", "\\t", "-g", "5"])

        assert result.exit_code == 0, result.output
        assert "30 of 30 rows" in result.output

    def test_missing_column(self, runner, csv_file):
        """Test an unknown column exits with status 1."""
        result = runner.invoke(cli, ["analyze", str(csv_file), "-x", "income", "-y", "salary"])

        assert result.exit_code == 1
        assert "Column 'salary' not found" in result.output

    def test_too_few_rows(self, runner, tmp_path):
        """Test fewer than ten valid pairs exits with status 1."""
        path = tmp_path / "small.csv"
        path.write_text("a,b\n" + "".join(f"{i},{i * 2}\n" for i in range(5)))

        result = runner.invoke(cli, ["analyze", str(path), "-x", "a", "-y", "b"])

        assert result.exit_code == 1
        assert "at least 10" in result.output

    def test_constant_column(self, runner, tmp_path):
        """Test a constant column exits with status 1."""
        path = tmp_path / "flat.csv"
        path.write_text("a,b\n" + "".join(f"{i},1\n" for i in range(20)))

        result = runner.invoke(cli, ["analyze", str(path), "-x", "a", "-y", "b"])

        assert result.exit_code == 1
        assert "constant" in result.output

    def test_invalid_config(self, runner, csv_file, tmp_path):
        """Test an out-of-range config value exits with status 1."""
        config = tmp_path / "bad.yaml"
        config.write_text("grid_size: 1\n")

        result = runner.invoke(cli, ["analyze", str(csv_file), "-x", "income", "-y", "spending", "-c", str(config)])

        assert result.exit_code == 1
        assert "grid_size" in result.output

    def test_log_file(self, runner, csv_file, tmp_path):
        """Test --log-file receives engine log lines."""
        log_file = tmp_path / "lgc.log"

        result = runner.invoke(cli, [
            "analyze", str(csv_file), "-x", "income", "-y", "spending", "-g", "5",
            "--log-level", "INFO", "--log-file", str(log_file)
        ])

        assert result.exit_code == 0, result.output
        assert "local correlation grid" in log_file.read_text()
