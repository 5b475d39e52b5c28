"""
Command-line interface for the local correlation engine.

Provides commands for:
- Running a local correlation analysis over two columns of a CSV file
- Generating a sample engine configuration
"""

import click
import sys
from pathlib import Path

import pandas as pd

from local_correlation import __version__
from local_correlation.core.config import EngineConfig
from local_correlation.core.exceptions import LocalCorrelationException
from local_correlation.core.logging_config import setup_logging, get_logger
from local_correlation.core.observers import CLIProgressObserver
from local_correlation.core.pretty_output import PrettyOutput as po
from local_correlation.engine import LocalCorrelationEngine
from local_correlation.estimation.inputs import pairs_from_frame

logger = get_logger(__name__)


def _format_number(value, digits=3):
    if value is None:
        return "n/a"
    return f"{value:.{digits}f}"


def _curve_range(curve):
    if curve.count() == 0:
        return "n/a"
    return f"{curve.min():.3f} .. {curve.max():.3f}"


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Local Gaussian correlation - where in the data two variables move together.

    Estimates how the correlation between two numeric columns varies across
    their joint distribution and, optionally, how significant that local
    correlation is under bootstrap resampling.
    """
    pass


@cli.command()
@click.argument('data_file', type=click.Path(exists=True))
@click.option('--x-column', '-x', required=True, help='Column holding the x variable')
@click.option('--y-column', '-y', required=True, help='Column holding the y variable')
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True), help='YAML engine configuration')
@click.option('--grid-size', '-g', type=int, default=None, help='Grid points per axis (overrides config)')
@click.option('--bandwidth', '-b', type=float, default=None, help='Bandwidth for both axes (default: Silverman)')
@click.option('--min-weight', type=float, default=None, help='Minimum kernel weight for a supported cell')
@click.option('--bootstrap/--no-bootstrap', default=False, help='Estimate bootstrap t-statistics')
@click.option('--iterations', '-n', type=int, default=None, help='Bootstrap resamples (overrides config)')
@click.option('--seed', type=int, default=None, help='Random seed for the bootstrap')
@click.option('--delimiter', '-d', default=',', help='Column delimiter of the CSV file. Use "\\t" for tab.')
@click.option('--verbose/--quiet', '-v/-q', default=True, help='Show bootstrap progress')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='WARNING', help='Logging level')
@click.option('--log-file', type=click.Path(), help='Optional log file path')
def analyze(data_file, x_column, y_column, config_file, grid_size, bandwidth, min_weight,
            bootstrap, iterations, seed, delimiter, verbose, log_level, log_file):
    """
    Analyze the local correlation of two columns.

    DATA_FILE: CSV file containing both columns

    Examples:

    \b
    # Correlation grid with Silverman bandwidth
    lgc analyze data.csv -x income -y spending

    \b
    # With bootstrap significance
    lgc analyze data.csv -x income -y spending --bootstrap -n 500 --seed 7

    \b
    # Settings from a config file, grid size from the command line
    lgc analyze data.csv -x income -y spending -c lgc.yaml -g 40
    """
    setup_logging(level=log_level, log_file=log_file)
    logger.info(f"Starting analysis: {data_file} ({x_column} vs {y_column})")

    if delimiter == '\\t':
        delimiter = '\t'

    try:
        config = EngineConfig.from_yaml(config_file) if config_file else EngineConfig()
        config = config.with_overrides(
            grid_size=grid_size,
            bandwidth=bandwidth,
            min_weight=min_weight,
            iterations=iterations,
            random_seed=seed
        )

        logger.debug(f"Reading {data_file}")
        df = pd.read_csv(data_file, sep=delimiter)
        x, y = pairs_from_frame(df, x_column, y_column)

        observers = [CLIProgressObserver(verbose=verbose)]
        engine = LocalCorrelationEngine(config, observers=observers)

        po.header("LOCAL CORRELATION ANALYSIS")
        po.key_value("File", data_file)
        po.key_value("Columns", f"{x_column} (x) vs {y_column} (y)")
        po.key_value("Valid pairs", f"{len(x):,} of {len(df):,} rows")
        if len(x) < len(df):
            po.warning(f"Skipped {len(df) - len(x):,} rows with missing or non-numeric values", indent=2)

        result = engine.compute(x, y)
        if bootstrap:
            engine.bootstrap(x, y)
        summary = engine.summarize(x, y)

    except LocalCorrelationException as e:
        po.blank_line()
        po.error(str(e))
        sys.exit(1)

    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        po.blank_line()
        po.error(f"Error reading CSV file: {str(e)}")
        po.info("Tip: Try specifying the delimiter with the -d option")
        sys.exit(1)

    global_corr = summary["global_correlation"]
    local = summary["local_correlation"]
    items = [
        ("Bandwidth (x, y)", f"{summary['bandwidth']['x']:.4g}, {summary['bandwidth']['y']:.4g}"
            + ("" if summary['bandwidth']['automatic'] else " (fixed)"), po.PRIMARY),
        ("Grid", f"{result.grid_size} x {result.grid_size}", po.PRIMARY),
        ("Supported cells", f"{summary['supported_cells']} ({summary['supported_fraction']:.0%})", po.PRIMARY),
        ("Pearson r", f"{global_corr['correlation']:.3f} ({global_corr['strength']}, p={global_corr['p_value']:.3g})",
            po.SUCCESS if global_corr['is_significant'] else po.WARNING),
        ("Local r range", f"{_format_number(local['min'])} .. {_format_number(local['max'])}", po.PRIMARY),
        ("Weighted mean r", _format_number(local['density_weighted_mean']), po.PRIMARY),
        ("Marginal over x", _curve_range(result.marginal_x), po.PRIMARY),
        ("Marginal over y", _curve_range(result.marginal_y), po.PRIMARY),
    ]
    if "bootstrap" in summary:
        boot = summary["bootstrap"]
        items.append(("Bootstrap iterations", boot["iterations"], po.PRIMARY))
        items.append((
            f"Significant cells (|t| > {boot['critical_t']:.2f})",
            f"{boot['significant_cells']} of {boot['cells_with_t']} ({boot['significant_fraction']:.0%})",
            po.SUCCESS if boot["significant_cells"] else po.WARNING
        ))

    po.summary_box("SUMMARY", items, width=70)
    logger.info("Analysis finished")
    sys.exit(0)


@cli.command()
@click.argument('output_path', type=click.Path())
def init_config(output_path):
    """
    Generate a sample engine configuration file.

    OUTPUT_PATH: Path where sample config should be written

    Example:

    \b
    lgc init-config lgc.yaml
    """
    sample_config = '''# Local Correlation Engine Configuration

local_correlation:
  grid_size: 30            # grid points per axis (>= 2)
  bandwidth: null          # null = Silverman's rule per axis, or a positive number for both axes
  min_weight: 0.1          # minimum total kernel weight for a supported cell
  significance_level: 0.05 # two-sided level for counting significant cells
  cache_entries: 1         # results kept per engine

  bootstrap:
    iterations: 200        # resamples
    progress_every: 20     # progress report cadence (resamples)
    random_seed: null      # integer for reproducible resampling
'''

    try:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(sample_config)

        click.echo(f"✓ Sample configuration written to: {output_path}")
        click.echo(f"\nEdit the file to customize the engine, then run:")
        click.echo(f"  lgc analyze data.csv -x X -y Y -c {output_path}")

    except OSError as e:
        click.echo(f"❌ Error creating config file: {str(e)}", err=True)
        sys.exit(1)


@cli.command()
def version():
    """Display version information."""
    click.echo(f"Local Gaussian Correlation v{__version__}")
    click.echo("Local correlation and bootstrap significance for two variables")


if __name__ == '__main__':
    cli()
