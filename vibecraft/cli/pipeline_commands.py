"""
Pipeline CLI commands for VibeCraft

Runs uploads through the orchestrated analyze -> configure -> enhance
pipeline against local record and blob stores.
"""

import click
import logging
from pathlib import Path
from typing import Dict, Optional

from tqdm import tqdm

from ..analysis.vision_llm_analyzer import ContentAnalyzer, StaticAnalyzer, VisionLLMAnalyzer
from ..errors import StorageError, StorageNotFoundError
from ..pipeline.orchestrator import ProcessingOrchestrator
from ..storage.local import LocalBlobStore, LocalRecordStore
from ..utils.caching import TTLCache, content_hash
from ..utils.logging import ProcessingStats

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tif', '.tiff'}


def build_analyzer(config: Dict, analysis_file: Optional[str] = None) -> ContentAnalyzer:
    """Fixed analysis from a JSON file, otherwise the configured vision model."""
    if analysis_file:
        return StaticAnalyzer.from_json_file(analysis_file)
    return VisionLLMAnalyzer(config.get('analysis', {}))


def build_orchestrator(config: Dict, analyzer: ContentAnalyzer) -> ProcessingOrchestrator:
    storage_config = config.get('storage', {})
    return ProcessingOrchestrator(
        record_store=LocalRecordStore(storage_config.get('records_dir', '.vibecraft/records')),
        blob_store=LocalBlobStore(storage_config.get('blobs_dir', '.vibecraft/blobs')),
        analyzer=analyzer,
        cache=TTLCache.from_config(config.get('cache')),
        config=config,
    )


def _collect_images(paths) -> list:
    images = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            images.extend(sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_EXTENSIONS))
        else:
            images.append(path)
    return images


@click.group()
def pipeline():
    """Orchestrated processing pipeline commands"""
    pass


@pipeline.command()
@click.argument('images', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path), required=True,
              help='Directory for enhanced images')
@click.option('--analysis', '-a', type=click.Path(exists=True, dir_okay=False),
              help='Use a fixed analysis JSON instead of the vision model')
@click.option('--workers', '-w', type=int, help='Parallel images (default: enhancement.max_workers)')
@click.pass_context
def run(ctx, images, output_dir, analysis, workers):
    """Register IMAGES and run them through the pipeline"""
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)

    image_paths = _collect_images(images)
    if not image_paths:
        raise click.ClickException("No images found")

    try:
        analyzer = build_analyzer(config, analysis)
    except (ImportError, ValueError) as e:
        raise click.ClickException(f"Cannot set up analysis: {e}")

    output_dir.mkdir(parents=True, exist_ok=True)
    stats = ProcessingStats()
    stats.set_total(len(image_paths))

    with build_orchestrator(config, analyzer) as orchestrator:
        ids = {}
        for path in image_paths:
            data = path.read_bytes()
            image_id = f"{path.stem}-{content_hash(data)[:8]}"
            orchestrator.register(image_id, image_bytes=data)
            ids[image_id] = path

        with tqdm(total=len(ids), desc="Processing", unit="img", disable=quiet) as bar:
            outcomes = orchestrator.process_batch(list(ids), max_workers=workers,
                                                  progress_callback=lambda _: bar.update(1))

        for outcome in outcomes:
            record = outcome.record
            if record is None:
                stats.add_result(False, 'unexpected')
                stats.add_error(outcome.image_id, outcome.error)
                continue
            if not outcome.success:
                reason = record.error_kind or record.status.value
                stats.add_result(False, reason)
                if record.error_message:
                    stats.add_error(outcome.image_id, record.error_message)
                continue

            source = ids[outcome.image_id]
            target = output_dir / f"{source.stem}_enhanced{Path(record.processed_locator).suffix}"
            target.write_bytes(orchestrator.blob_store.load(record.processed_locator))
            stats.add_result(True)
            logger.debug(f"Wrote {target}")

    if not quiet:
        click.echo(stats.format_summary())
        remaining = analyzer.get_remaining_quota()
        if remaining:
            click.echo(f"Analysis quota left: {remaining.get('minute')}/min, {remaining.get('day')}/day")


def _print_record(record):
    click.echo(f"Image:     {record.image_id}")
    click.echo(f"Status:    {record.status.value}")
    click.echo(f"Attempt:   {record.attempt}")
    click.echo(f"Updated:   {record.updated_at}")
    if record.analysis:
        click.echo(f"Analysis:  {record.analysis.image_type}, {record.analysis.mood}, "
                   f"quality {record.analysis.overall_quality:.2f}")
    if record.editing_config:
        names = ', '.join(a.name for a in record.editing_config.ordered_algorithms())
        click.echo(f"Config:    {names} (strength {record.editing_config.strength})")
    if record.processed_locator:
        click.echo(f"Output:    {record.processed_locator}")
    if record.quality:
        click.echo(f"Quality:   {record.quality.get('overall_improvement', 0.0):+.3f}")
    if record.retry_after:
        click.echo(f"Retry at:  {record.retry_after:.0f}")
    if record.error_message:
        click.echo(f"Error:     [{record.error_kind}] {record.error_message}")


@pipeline.command()
@click.argument('image_id')
@click.pass_context
def status(ctx, image_id):
    """Show the pipeline record for IMAGE_ID"""
    config = ctx.obj.get('config', {})
    with build_orchestrator(config, StaticAnalyzer()) as orchestrator:
        try:
            record = orchestrator.get_status(image_id)
        except StorageNotFoundError as e:
            raise click.ClickException(str(e))
    _print_record(record)


@pipeline.command()
@click.argument('image_id')
@click.option('--run/--no-run', 'run_now', default=False, help='Re-run the pipeline after resetting')
@click.option('--analysis', '-a', type=click.Path(exists=True, dir_okay=False),
              help='Use a fixed analysis JSON instead of the vision model')
@click.pass_context
def retry(ctx, image_id, run_now, analysis):
    """Reset IMAGE_ID to uploaded and optionally process it again"""
    config = ctx.obj.get('config', {})
    try:
        analyzer = build_analyzer(config, analysis) if run_now else StaticAnalyzer()
    except (ImportError, ValueError) as e:
        raise click.ClickException(f"Cannot set up analysis: {e}")

    with build_orchestrator(config, analyzer) as orchestrator:
        try:
            record = orchestrator.retry(image_id)
            if run_now:
                record = orchestrator.on_state_change(image_id)
        except StorageError as e:
            raise click.ClickException(str(e))
    _print_record(record)
