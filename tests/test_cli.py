"""
Tests for the click commands.
"""

import json

import pytest
from click.testing import CliRunner

from vibecraft.cli.enhance_commands import enhance, presets, quality, recommend
from vibecraft.cli.pipeline_commands import pipeline
from vibecraft.config import get_default_config
from vibecraft.io.codec import PillowCodec

from conftest import make_analysis


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def app_config(tmp_path):
    config = get_default_config()
    config['storage']['records_dir'] = str(tmp_path / 'records')
    config['storage']['blobs_dir'] = str(tmp_path / 'blobs')
    config['storage']['confirm_delay_seconds'] = 0.0
    return config


@pytest.fixture
def image_file(tmp_path, png_bytes):
    path = tmp_path / 'beach.png'
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def analysis_file(tmp_path):
    path = tmp_path / 'analysis.json'
    path.write_text(json.dumps(make_analysis('portrait', overall=0.3).to_dict()))
    return path


def invoke(runner, command, args, config):
    return runner.invoke(command, args, obj={'config': config, 'quiet': False})


class TestEnhanceCommands:
    """Test single-image commands."""

    def test_enhance_with_preset(self, runner, app_config, image_file, tmp_path):
        output = tmp_path / 'out' / 'beach_soft.png'
        result = invoke(runner, enhance,
                        [str(image_file), '-o', str(output), '-p', 'soft-girl', '-i', 'light'], app_config)

        assert result.exit_code == 0, result.output
        assert 'soft-girl (light)' in result.output
        assert 'Brightness +15' in result.output
        assert PillowCodec().decode(output.read_bytes()).shape == (32, 48, 4)

    def test_enhance_with_analysis(self, runner, app_config, image_file, analysis_file, tmp_path):
        output = tmp_path / 'auto.jpg'
        result = invoke(runner, enhance,
                        [str(image_file), '-o', str(output), '-a', str(analysis_file)], app_config)
        assert result.exit_code == 0, result.output
        assert output.read_bytes()[:2] == b'\xff\xd8'

    def test_enhance_with_config_file(self, runner, app_config, image_file, tmp_path):
        config_file = tmp_path / 'edit.yaml'
        config_file.write_text(
            "algorithms:\n"
            "  - name: rgb_adjust\n"
            "    params: {brightness: 20}\n"
            "    order: 1\n"
            "strength: 0.5\n")
        output = tmp_path / 'edited.png'
        result = invoke(runner, enhance,
                        [str(image_file), '-o', str(output), '--config-file', str(config_file)], app_config)
        assert result.exit_code == 0, result.output
        assert 'editing config' in result.output
        assert 'Brightness +10' in result.output

    def test_enhance_unknown_preset(self, runner, app_config, image_file, tmp_path):
        result = invoke(runner, enhance,
                        [str(image_file), '-o', str(tmp_path / 'x.png'), '-p', 'vaporwave'], app_config)
        assert result.exit_code != 0
        assert 'vaporwave' in result.output

    def test_enhance_bad_image(self, runner, app_config, tmp_path):
        bad = tmp_path / 'bad.png'
        bad.write_bytes(b'nope')
        result = invoke(runner, enhance, [str(bad), '-o', str(tmp_path / 'x.png')], app_config)
        assert result.exit_code != 0
        assert 'Could not decode' in result.output

    def test_presets(self, runner):
        result = runner.invoke(presets, [])
        assert result.exit_code == 0
        assert 'soft-girl' in result.output
        assert 'grunge-edge' in result.output

    def test_filters(self, runner):
        result = runner.invoke(presets, ['--filters'])
        assert result.exit_code == 0
        assert 'food-appetizing' in result.output

    def test_recommend(self, runner, app_config, analysis_file):
        result = invoke(runner, recommend, ['-a', str(analysis_file)], app_config)
        assert result.exit_code == 0, result.output
        assert 'portrait photo' in result.output

    def test_quality_single(self, runner, app_config, image_file):
        result = invoke(runner, quality, [str(image_file), '--json'], app_config)
        assert result.exit_code == 0, result.output
        assert set(json.loads(result.output)) == {
            'exposure', 'contrast', 'sharpness', 'color_balance', 'noise', 'overall'}

    def test_quality_compare(self, runner, app_config, image_file, tmp_path):
        output = tmp_path / 'after.png'
        invoke(runner, enhance, [str(image_file), '-o', str(output), '-p', 'y2k-cyber'], app_config)
        result = invoke(runner, quality, [str(image_file), str(output)], app_config)
        assert result.exit_code == 0, result.output
        assert 'overall' in result.output


class TestPipelineCommands:
    """Test the pipeline group against local stores."""

    def test_run_status_retry(self, runner, app_config, image_file, analysis_file, tmp_path):
        out_dir = tmp_path / 'enhanced'
        result = invoke(runner, pipeline,
                        ['run', str(image_file), '-o', str(out_dir), '-a', str(analysis_file)], app_config)

        assert result.exit_code == 0, result.output
        assert 'Succeeded:        1' in result.output
        assert (out_dir / 'beach_enhanced.png').exists()

        record_ids = [p.stem for p in (tmp_path / 'records').glob('*.json')]
        assert len(record_ids) == 1
        image_id = record_ids[0]
        assert image_id.startswith('beach-')

        result = invoke(runner, pipeline, ['status', image_id], app_config)
        assert result.exit_code == 0, result.output
        assert 'processed' in result.output

        result = invoke(runner, pipeline, ['retry', image_id, '--run', '-a', str(analysis_file)], app_config)
        assert result.exit_code == 0, result.output
        assert 'Attempt:   2' in result.output
        assert 'processed' in result.output

    def test_status_unknown(self, runner, app_config):
        result = invoke(runner, pipeline, ['status', 'missing'], app_config)
        assert result.exit_code != 0
        assert 'No record' in result.output
