#!/usr/bin/env python3
"""
VibeCraft Command Line Interface

Main CLI entry point for VibeCraft photo enhancement.
Provides commands for enhancing single images, browsing aesthetics and
running uploads through the processing pipeline.
"""

import sys
import click
import logging
from pathlib import Path
from typing import Optional

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from vibecraft import __version__
from vibecraft.config import load_config
from vibecraft.cli.enhance_commands import enhance, presets, quality, recommend
from vibecraft.cli.pipeline_commands import pipeline
from vibecraft.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.version_option(__version__, prog_name='vibecraft')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    VibeCraft - content-aware photo enhancement

    Analyzes photos, picks an aesthetic that suits the content and applies
    it as a single color transform. Use 'pipeline run' to process batches
    with analysis, configuration and quality scoring.
    """

    # Ensure context object exists
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    # Configure logging, then let the flags override the configured level
    setup_logging(ctx.obj['config'])
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)

    # Store CLI options in context
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


main.add_command(enhance)
main.add_command(presets)
main.add_command(recommend)
main.add_command(quality)
main.add_command(pipeline)


if __name__ == '__main__':
    main()
