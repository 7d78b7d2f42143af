#!/usr/bin/env python3
"""
Solar System Probe Simulator

Planets on prescribed orbits and free-flying probes under their gravity,
using JAX for the force and integration kernels.

Usage:
    python main.py                        # 600 ticks of 1/60 s at real time
    python main.py --time-scale x10000    # Accelerated time
    python main.py --realtime 10          # Drive from the wall clock for 10 s
"""

import argparse
import logging
import sys

import numpy as np

from solar_sim.config import (
    AU,
    NUM_TICKS,
    TICK_DT,
    TICK_RATE,
    PRECISION,
    START_TIME,
    FORCE_CIRCULAR_ORBITS,
    TIME_SCALE_PRESETS,
    HELP_CONTENT,
    ConfigurationError,
)
from solar_sim.initialization.solar_system import build_solar_system
from solar_sim.physics.engine import SolarSystemEngine, run_simulation_loop


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Solar System Probe Simulator - orbits and probe gravity',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_CONTENT,
    )
    parser.add_argument(
        '--ticks',
        '-n',
        type=int,
        default=NUM_TICKS,
        metavar='N',
        help=f'Number of fixed ticks to run (default: {NUM_TICKS})',
    )
    parser.add_argument(
        '--dt',
        type=float,
        default=TICK_DT,
        metavar='SECONDS',
        help=f'Wall-clock seconds per fixed tick (default: {TICK_DT:.4f})',
    )
    parser.add_argument(
        '--time-scale',
        '-t',
        type=str,
        choices=list(TIME_SCALE_PRESETS),
        default='real',
        metavar='PRESET',
        help=f'Time scale preset: {", ".join(TIME_SCALE_PRESETS)} (default: real)',
    )
    parser.add_argument(
        '--start-time',
        type=float,
        default=START_TIME,
        metavar='SECONDS',
        help=f'Simulated time at the epoch (default: {START_TIME})',
    )
    parser.add_argument(
        '--precision',
        '-p',
        type=int,
        choices=[64, 32],
        default=PRECISION,
        metavar='BITS',
        help=f'Force kernel precision: 64 or 32 bits; body state stays 64-bit (default: {PRECISION}).',
    )
    parser.add_argument(
        '--circular-orbits',
        action='store_true',
        default=FORCE_CIRCULAR_ORBITS,
        help='Ignore eccentricities and run every orbit as a circle',
    )
    parser.add_argument(
        '--realtime',
        type=float,
        default=None,
        metavar='SECONDS',
        help='Drive the simulation from the wall clock for this many seconds '
        'instead of running fixed ticks',
    )
    parser.add_argument(
        '--tick-rate',
        type=float,
        default=TICK_RATE,
        metavar='HZ',
        help=f'Ticks per second in real-time mode (default: {TICK_RATE})',
    )
    parser.add_argument(
        '--no-probes',
        action='store_true',
        help='Do not launch the starting probes',
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Show debug logging',
    )
    return parser.parse_args(argv)


def format_telemetry(engine: SolarSystemEngine) -> str:
    """Tabulate every body's position (AU) and velocity (km/s)."""
    snapshot = engine.snapshot()
    lines = [
        f"{'body':<10} {'kind':<6} {'x AU':>9} {'y AU':>9} {'z AU':>9} {'|r| AU':>9} {'|v| km/s':>11}"
    ]
    for body_id, kind, position, velocity in zip(
        snapshot['ids'], snapshot['kinds'], snapshot['positions'], snapshot['velocities']
    ):
        x, y, z = position / AU
        distance = np.linalg.norm(position) / AU
        speed = np.linalg.norm(velocity) / 1000.0
        lines.append(
            f"{body_id:<10} {kind:<6} {x:>9.3f} {y:>9.3f} {z:>9.3f} {distance:>9.3f} {speed:>11.4f}"
        )
    return "\n".join(lines)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )

    try:
        engine = SolarSystemEngine(
            precision=args.precision,
            start_time=args.start_time,
            circular_orbits=args.circular_orbits,
        )
        engine.set_time_scale_preset(args.time_scale)
        build_solar_system(engine, include_probes=not args.no_probes)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Loaded {len(engine.registry)} bodies, time scale x{engine.time_scale:g}")

    try:
        if args.realtime is not None:
            run_simulation_loop(engine, args.realtime, args.tick_rate)
        else:
            if args.ticks < 0 or args.dt < 0:
                print("Error: --ticks and --dt must not be negative")
                sys.exit(1)
            print(f"Running {args.ticks} ticks of {args.dt:.4f} s...")
            for _ in range(args.ticks):
                engine.advance(args.dt)
    except (ConfigurationError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Simulated time: {engine.sim_time:.1f} s")
    print(format_telemetry(engine))

    energy = engine.free_body_energy()
    if energy['kinetic'] > 0.0:
        print(
            f"Probe energy: kinetic {energy['kinetic']:.4e} J, "
            f"potential {energy['potential']:.4e} J, total {energy['total']:.4e} J"
        )
    print("Done.")


if __name__ == '__main__':
    main()
