#!/usr/bin/env python3
"""
Entry point: load configuration, build the host and run the simulation.
"""
import sys

from physcommon.logger import get_logger, set_level
from .config import load_config, RunnerConfig
from .errors import ConfigError, PhysSimError
from .host import HeadlessHost
from .runner import Runner

logger = get_logger("physsim")


def run_headless(runner_config, duration_ms):
    host = HeadlessHost()
    with Runner(host, runner_config) as runner:
        host.advance(duration_ms)
        body = runner.state.rigid_body
        logger.info(f"{runner.state.counter} physics ticks, {len(host.gpu.frames)} frames")
        logger.info(f"Body at {body.pos}, det(R) = {body.rot_mat.determinant():.9f}")
    return runner


def run_interactive(runner_config):
    from .render import MatplotlibHost
    host = MatplotlibHost()
    runner = Runner(host, runner_config)
    try:
        host.run()
    finally:
        runner.shutdown()
    return runner


def main(path=None):
    if path is None:
        path = sys.argv[1] if len(sys.argv) > 1 else "config.json"
    try:
        config = load_config(path)
        set_level(config.get("log_level", "INFO"))
        logger.info("Configuration loaded")
        runner_config = RunnerConfig.from_dict(config)

        target = config.get("target")
        if target == "headless":
            run_headless(runner_config, config.get("headless_duration_ms", 0))
        elif target == "matplotlib":
            run_interactive(runner_config)
        else:
            raise ConfigError(f"Unknown target {target!r}")
    except PhysSimError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
