#!/usr/bin/env python3
"""
Media Sorting CLI

Sorts photos, raw camera files and movies from a source directory into
date-named folders under a destination directory.
"""

import sys
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

from media_sorter import Config, MediaSorter
from media_sorter.reporter import generate_summary_report

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_console_handler = None
_file_handler = None


def setup_logging(level: str = 'INFO', log_file: Path = None):
    """Set up logging configuration."""
    global _console_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = console_handler
    root_logger.addHandler(console_handler)

    if log_file:
        _setup_file_logging(Path(log_file), formatter, root_logger)

    # Reduce noise from libraries
    logging.getLogger('exifread').setLevel(logging.WARNING)


def _setup_file_logging(log_file: Path, formatter: logging.Formatter, root_logger: logging.Logger):
    """Add file handler to root logger."""
    global _file_handler
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Remove previous file handler if any
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)

    _file_handler = logging.FileHandler(log_file)
    _file_handler.setFormatter(formatter)
    root_logger.addHandler(_file_handler)


def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")
    sys.stdout.flush()

def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.argument('source', required=False)
@click.argument('dest', required=False)
@click.option('-n', '--dry-run/--no-dry-run', default=None, help='Report actions without touching files')
@click.option('--copy', 'copy_files', is_flag=True, help='Copy files instead of moving them')
@click.option('--delete', 'delete_files', is_flag=True,
              help='Delete sources that already exist with equal size at the destination')
@click.option('-L', '--allow-larger/--no-allow-larger', default=None,
              help='Overwrite destinations that are smaller than the source')
@click.option('-x', '--exclude', help='Skip files whose lowercase path matches this regex')
@click.option('-f', '--format', 'default_format', help='Folder template for photos (strftime, e.g. %Y/%Y-%m-%d)')
@click.option('-r', '--raw-format', help='Folder template for raw files')
@click.option('-m', '--movie-format', help='Folder template for movies')
@click.option('--decoders', 'decoder_workers', type=int, help='Number of metadata decoder threads')
@click.option('--executors', 'executor_workers', type=int, help='Number of transfer threads')
@click.option('--strict-metadata/--no-strict-metadata', default=None,
              help='Skip files whose metadata cannot be decoded instead of using modification time')
@click.option('--progress', is_flag=True, help='Show a progress bar')
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.pass_context
def cli(ctx, source, dest, dry_run, copy_files, delete_files, allow_larger, exclude,
        default_format, raw_format, movie_format, decoder_workers, executor_workers,
        strict_metadata, progress, config, log_level):
    """Sort media from SOURCE into date folders under DEST."""

    if not source or not dest:
        click.echo(ctx.get_help())
        return

    if copy_files and delete_files:
        raise click.UsageError("--copy and --delete are mutually exclusive")

    try:
        config_obj = Config(config)
    except Exception as e:
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(log_level or config_obj.get_log_level(), config_obj.get_log_file())

    errors = config_obj.validate_config()
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    mode = 'copy' if copy_files else 'delete' if delete_files else None
    try:
        run_config = config_obj.build_run_config(
            source, dest,
            mode=mode,
            dry_run=dry_run,
            allow_larger=allow_larger,
            exclude=exclude,
            default_format=default_format,
            raw_format=raw_format,
            movie_format=movie_format,
            decoder_workers=decoder_workers,
            executor_workers=executor_workers,
            strict_metadata=strict_metadata,
        )
    except ValueError as e:
        print_error(str(e))
        sys.exit(1)

    print_info(f"Mode: {run_config.mode.value}")
    if run_config.dry_run:
        print_info("DRY RUN - no files will be modified")
    if not run_config.dest_root.exists():
        print_warning(f"Destination does not exist yet: {run_config.dest_root}")

    try:
        stats = MediaSorter(run_config, progress=progress).run()
    except Exception as e:
        print_error(f"Sort failed: {e}")
        sys.exit(1)

    click.echo("\n" + generate_summary_report(stats))
    if stats.failed:
        print_warning(f"Failed transfers: {stats.failed:,}")
    print_success(f"Sort complete: {stats.performed:,} files handled")
    sys.stdout.flush()


if __name__ == '__main__':
    cli()
