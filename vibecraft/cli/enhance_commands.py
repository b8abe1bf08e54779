"""
Single-image CLI commands for VibeCraft

Enhancing a file, browsing the preset catalog, recommending filters and
scoring image quality.
"""

import click
import json
import logging
from pathlib import Path

import yaml

from ..aesthetics.catalog import list_filters, list_presets
from ..aesthetics.recommender import FilterRecommender
from ..analysis.models import AnalysisResult
from ..analysis.quality_assessor import QualityAssessor
from ..errors import VibeCraftError
from ..processing.enhancement_engine import EnhancementEngine, get_editing_summary
from ..processing.models import EditingConfig, Intensity

logger = logging.getLogger(__name__)

_FORMATS = {'.png': 'PNG', '.jpg': 'JPEG', '.jpeg': 'JPEG', '.webp': 'WEBP', '.bmp': 'BMP'}


def _load_analysis(path: str) -> AnalysisResult:
    with open(path, 'r') as f:
        return AnalysisResult.from_dict(json.load(f))


def _load_editing_config(path: str) -> EditingConfig:
    # JSON is a subset of YAML, so one loader covers both
    with open(path, 'r') as f:
        return EditingConfig.from_dict(yaml.safe_load(f) or {})


@click.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), required=True,
              help='Output image path (format from extension)')
@click.option('--preset', '-p', help='Aesthetic preset id')
@click.option('--intensity', '-i', type=click.Choice([i.value for i in Intensity] + ['heavy']),
              help='Preset intensity')
@click.option('--config-file', type=click.Path(exists=True, dir_okay=False),
              help='Editing config (YAML or JSON) instead of a preset')
@click.option('--analysis', '-a', type=click.Path(exists=True, dir_okay=False),
              help='Analysis JSON used to auto-select a preset')
@click.pass_context
def enhance(ctx, image, output, preset, intensity, config_file, analysis):
    """Enhance IMAGE with a preset, an editing config or an auto-selected aesthetic"""
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)
    engine = EnhancementEngine(config=config.get('enhancement', {}))

    try:
        editing_config = _load_editing_config(config_file) if config_file else None
        analysis_result = _load_analysis(analysis) if analysis else None
        result = engine.enhance(image.read_bytes(), analysis=analysis_result,
                                config=editing_config, preset_id=preset, intensity=intensity)
        fmt = _FORMATS.get(output.suffix.lower(), 'PNG')
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(result.encode(engine.codec, fmt,
                                         config.get('enhancement', {}).get('output_quality', 92)))
    except (VibeCraftError, OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise click.ClickException(str(e))

    if not quiet:
        label = result.preset_id or 'editing config'
        if result.intensity:
            label += f" ({result.intensity})"
        click.echo(f"✓ Enhanced {image.name} with {label} in {result.processing_time:.2f}s")
        for line in get_editing_summary(result.options):
            click.echo(f"  {line}")
        click.echo(f"Saved to {output}")


@click.command()
@click.option('--filters', 'show_filters', is_flag=True, help='List quick filters instead of presets')
def presets(show_filters):
    """List the aesthetic preset catalog"""
    if show_filters:
        click.echo("Quick Filters:")
        click.echo("=" * 60)
        for f in list_filters():
            click.echo(f"{f.icon} {f.id:<20} {f.category.value:<10} {f.description}")
        return

    click.echo("Aesthetic Presets:")
    click.echo("=" * 60)
    for p in list_presets():
        click.echo(f"\n{p.display_name} ({p.id}) {p.vibe_tag}")
        click.echo(f"  {p.formula_description}")
        click.echo(f"  Adjustments: {', '.join(get_editing_summary(p.options))}")


@click.command()
@click.option('--analysis', '-a', type=click.Path(exists=True, dir_okay=False), required=True,
              help='Analysis JSON for the image')
@click.pass_context
def recommend(ctx, analysis):
    """Recommend quick filters for an analyzed image"""
    config = ctx.obj.get('config', {})
    try:
        analysis_result = _load_analysis(analysis)
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(str(e))

    recommendations = FilterRecommender(config.get('recommender')).recommend(analysis_result)
    if not recommendations:
        click.echo("No filters scored high enough for this image")
        return

    click.echo(f"Recommended filters for a {analysis_result.image_type} photo:")
    for rec in recommendations:
        click.echo(f"  {rec.score:5.1f}  {rec.filter.icon} {rec.filter.name:<16} {rec.reason}")


@click.command()
@click.argument('before', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('after', type=click.Path(exists=True, dir_okay=False, path_type=Path), required=False)
@click.option('--json', 'as_json', is_flag=True, help='Print machine-readable output')
@click.pass_context
def quality(ctx, before, after, as_json):
    """Score BEFORE, or compare BEFORE against AFTER"""
    config = ctx.obj.get('config', {})
    assessor = QualityAssessor(config.get('quality'))

    try:
        if after is None:
            metrics = assessor.analyze(before.read_bytes())
            if as_json:
                click.echo(json.dumps(metrics.to_dict(), indent=2))
                return
            click.echo(f"Quality of {before.name}:")
            for name, value in metrics.to_dict().items():
                click.echo(f"  {name:<14} {value:.3f}")
            return

        comparison = assessor.compare(before.read_bytes(), after.read_bytes())
    except VibeCraftError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(comparison.to_dict(), indent=2))
        return

    click.echo(f"{'metric':<14} {'before':>8} {'after':>8} {'change':>8}")
    before_metrics = comparison.before.to_dict()
    after_metrics = comparison.after.to_dict()
    for name, delta in comparison.improvement.items():
        click.echo(f"{name:<14} {before_metrics[name]:8.3f} {after_metrics[name]:8.3f} {delta:+8.3f}")
    click.echo(f"{'overall':<14} {comparison.before.overall:8.3f} {comparison.after.overall:8.3f} "
               f"{comparison.overall_improvement:+8.3f}")
    click.echo("")
    click.echo(assessor.generate_quality_summary(comparison))
    for line in comparison.recommendations:
        click.echo(f"  - {line}")
