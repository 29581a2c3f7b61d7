"""
Command line entry point: telemetry bridge or offline simulation
"""
import argparse
import logging

from mpc_steering.config.params import BRIDGE, ControllerConfig, load_config
from mpc_steering.utils.log import setup_logging

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description='MPC steering controller')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML file with controller/bridge overrides')
    parser.add_argument('--horizon', type=int, default=None, help='MPC prediction horizon (steps)')
    parser.add_argument('--dt', type=float, default=None, help='Step duration (seconds)')
    parser.add_argument('--latency', type=float, default=None, help='Actuation latency (seconds)')
    parser.add_argument('--solver', type=str, default=None, choices=['ipopt', 'scipy'],
                        help='NLP solver backend')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging with timestamps')

    sub = parser.add_subparsers(dest='command', required=True)

    serve = sub.add_parser('serve', help='Run the websocket telemetry bridge')
    serve.add_argument('--host', type=str, default=None)
    serve.add_argument('--port', type=int, default=None)
    serve.add_argument('--delay', type=float, default=None,
                       help='Pause before each reply, emulating actuation lag (seconds)')

    sim = sub.add_parser('simulate', help='Closed-loop run on a synthetic track')
    sim.add_argument('--track', type=str, default='sine', choices=['sine', 'circle'])
    sim.add_argument('--steps', type=int, default=300, help='Number of control cycles')
    sim.add_argument('--speed', type=float, default=50.0, help='Initial speed')
    sim.add_argument('--plot', type=str, default=None, help='Save a PNG of the run')
    sim.add_argument('--gif', type=str, default=None, help='Save an animated GIF of the run')

    return parser


def resolve_config(args):
    """Defaults, then the YAML file, then command line flags."""
    if args.config:
        config, bridge = load_config(args.config)
    else:
        config, bridge = ControllerConfig(), dict(BRIDGE)

    solver = {'backend': args.solver} if args.solver else None
    config = config.with_overrides(horizon=args.horizon, dt=args.dt, latency=args.latency, solver=solver)

    if getattr(args, 'host', None) is not None:
        bridge['host'] = args.host
    if getattr(args, 'port', None) is not None:
        bridge['port'] = args.port
    if getattr(args, 'delay', None) is not None:
        bridge['actuation_delay'] = args.delay
    return config, bridge


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config, bridge = resolve_config(args)
    logger.info("Horizon %d x %.3fs, latency %.3fs, solver %s",
                config.horizon, config.dt, config.latency, config.solver.get('backend'))

    if args.command == 'serve':
        from mpc_steering.bridge.server import run
        run(config, host=bridge['host'], port=bridge['port'], actuation_delay=bridge['actuation_delay'])
        return 0

    from mpc_steering.simulate import run_simulation
    result = run_simulation(config, track=args.track, steps=args.steps, start_speed=args.speed)

    if args.plot or args.gif:
        from mpc_steering.utils.plotting import create_trajectory_gif, plot_run
        if args.plot:
            plot_run(result, save_path=args.plot)
            logger.info("Run plot saved as %s", args.plot)
        if args.gif:
            create_trajectory_gif(result, save_path=args.gif)
            logger.info("Animated GIF saved as %s", args.gif)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
