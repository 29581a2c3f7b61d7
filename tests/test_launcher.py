"""
Tests for the command line entry point.
"""
import numpy as np
import pytest

from mpc_steering import launcher
from mpc_steering.simulate import SimulationResult, make_track


class TestResolveConfig:
    def test_flags_override_file(self, tmp_path):
        path = tmp_path / "mpc.yaml"
        path.write_text("controller:\n  horizon: 20\n  dt: 0.1\nbridge:\n  port: 9000\n")
        args = launcher.build_parser().parse_args(
            ["--config", str(path), "--horizon", "12", "--solver", "scipy", "serve", "--delay", "0"])

        config, bridge = launcher.resolve_config(args)
        assert config.horizon == 12
        assert config.dt == 0.1
        assert config.solver["backend"] == "scipy"
        assert bridge["port"] == 9000
        assert bridge["actuation_delay"] == 0.0

    def test_defaults(self):
        args = launcher.build_parser().parse_args(["simulate"])
        config, bridge = launcher.resolve_config(args)
        assert config.horizon == 15
        assert bridge["port"] == 4567

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            launcher.build_parser().parse_args([])


class TestMain:
    def test_serve_dispatches(self, monkeypatch):
        calls = []
        monkeypatch.setattr("mpc_steering.bridge.server.run",
                            lambda config, **kwargs: calls.append((config, kwargs)))

        assert launcher.main(["--latency", "0.05", "serve", "--port", "5000"]) == 0
        config, kwargs = calls[0]
        assert config.latency == 0.05
        assert kwargs["port"] == 5000

    def test_simulate_writes_plot(self, monkeypatch, tmp_path):
        seen = {}

        def fake_run(config, track, steps, start_speed):
            seen.update(track=track, steps=steps)
            center, closed = make_track(track)
            result = SimulationResult(center=center, closed=closed)
            result.states.append(np.array([center[0][0], center[0][1], 0.0, 40.0]))
            result.states.append(np.array([center[1][0], center[1][1], 0.0, 41.0]))
            return result

        monkeypatch.setattr("mpc_steering.simulate.run_simulation", fake_run)
        plot = tmp_path / "run.png"

        assert launcher.main(["simulate", "--track", "circle", "--steps", "5", "--plot", str(plot)]) == 0
        assert seen == {"track": "circle", "steps": 5}
        assert plot.exists()
