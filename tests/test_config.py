"""Configuration loading, validation and the command-line entry point."""

import json

import numpy as np
import pytest

from physsim.config import DEFAULTS, RunnerConfig, load_config
from physsim.errors import ConfigError
from physsim.main import main, run_headless


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return str(path)


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.json"))
    assert config == DEFAULTS
    assert config is not DEFAULTS


def test_user_values_merge_over_defaults(tmp_path):
    path = write_config(tmp_path, {"target": "headless", "body": {"inertia": [2, 2, 2]}})
    config = load_config(path)
    assert config["target"] == "headless"
    assert config["body"]["inertia"] == [2, 2, 2]
    assert config["body"]["ang_mom"] == DEFAULTS["body"]["ang_mom"]
    assert config["physics_interval_ms"] == 10


@pytest.mark.parametrize("text", ["{not json", "[1, 2, 3]"])
def test_malformed_file_is_rejected(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, text))


def test_from_dict_builds_body_and_camera():
    rc = RunnerConfig.from_dict(load_config("does-not-exist.json"))
    np.testing.assert_allclose(rc.body.inv_ine.m, np.diag([1.0, 0.5, 1.0 / 3.0]))
    np.testing.assert_array_equal(rc.body.ang_mom.v, [1.0, 0.3, 0.1])
    camera = rc.make_camera()
    np.testing.assert_array_equal(camera.pos.v, [0, 0, 10])
    # the camera owns its position
    camera.pos.v[0] = 5.0
    assert rc.camera_pos.v[0] == 0.0


def test_full_inertia_matrix():
    inertia = [[2.0, 0.5, 0.0], [0.5, 3.0, 0.0], [0.0, 0.0, 4.0]]
    rc = RunnerConfig.from_dict({"body": {"inertia": inertia}})
    np.testing.assert_allclose(rc.body.inv_ine.m @ np.array(inertia), np.eye(3), atol=1e-12)


@pytest.mark.parametrize("override", [
    {"physics_interval_ms": 0},
    {"draw_interval_ms": -100},
    {"camera_pos": [0, 0]},
    {"camera_pos": "far away"},
    {"body": {"pos": [0, 0, float("nan")]}},
    {"body": {"inertia": [1, 0, 2]}},
    {"body": {"inertia": [[1, 1, 0], [0, 1, 0], [0, 0, 1]]}},
    {"body": {"inertia": [[1, 2], [3, 4]]}},
])
def test_invalid_values_raise_config_error(override):
    with pytest.raises(ConfigError):
        RunnerConfig.from_dict(override)


def test_run_headless_counts_ticks():
    runner = run_headless(RunnerConfig(), 500)
    assert runner.state.counter == 50
    assert runner.closed


def test_main_headless_target(tmp_path):
    path = write_config(tmp_path, {"target": "headless", "headless_duration_ms": 200})
    assert main(path) == 0


def test_main_unknown_target(tmp_path):
    assert main(write_config(tmp_path, {"target": "webgl"})) == 1


def test_main_reports_bad_config(tmp_path):
    path = write_config(tmp_path, {"target": "headless", "body": {"inertia": [0, 1, 1]}})
    assert main(path) == 1
