#!/usr/bin/env python3
import argparse
import logging
import select
import sys
import termios
import time
import tty

from rich.console import Console
from rich.live import Live

from serverfarm.cli import Dashboard
from serverfarm.config import CYCLE_DELAY, SimulationConfig
from serverfarm.simulator import Simulator

logger = logging.getLogger("serverfarm")

SERVERS_RANGE = (1, 50)
CYCLES_RANGE = (100, 50_000)


def get_key():
    """Get a single key press without requiring Enter"""
    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setraw(sys.stdin.fileno())
        ch = sys.stdin.read(1)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    return ch


def build_parser():
    parser = argparse.ArgumentParser(description="Load-balanced server farm simulator")
    parser.add_argument("--servers", type=int, default=5, help="Number of servers (1-50)")
    parser.add_argument("--cycles", type=int, default=10_000, help="Simulation time in clock cycles (100-50000)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the workload")
    parser.add_argument("--delay", type=float, default=None,
                        help=f"Seconds to sleep per cycle (default {CYCLE_DELAY}, 0 when headless)")
    parser.add_argument("--log-file", default="loadbalancer_log.txt", help="Statistics log file ('' to disable)")
    parser.add_argument("--headless", action="store_true", help="Print status blocks instead of the live dashboard")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser


def parse_args(argv=None):
    return build_parser().parse_args(argv)


def build_config(args) -> SimulationConfig:
    """Turn parsed arguments into a config, replacing out-of-range values with defaults.

    Raises ValueError for values that have no sensible default, such as a
    negative delay.
    """
    defaults = SimulationConfig()
    servers, cycles = args.servers, args.cycles
    delay = args.delay
    if delay is None:
        delay = 0.0 if args.headless else CYCLE_DELAY

    if not SERVERS_RANGE[0] <= servers <= SERVERS_RANGE[1]:
        logger.warning(f"Invalid number of servers {servers}. Using default value of {defaults.servers}.")
        servers = defaults.servers
    if not CYCLES_RANGE[0] <= cycles <= CYCLES_RANGE[1]:
        logger.warning(f"Invalid simulation time {cycles}. Using default value of {defaults.cycles}.")
        cycles = defaults.cycles

    return SimulationConfig(
        servers=servers,
        cycles=cycles,
        seed=args.seed,
        delay=delay,
        log_file=args.log_file or None,
    ).validate()


def run_headless(sim: Simulator, console: Console) -> None:
    dashboard = Dashboard(sim)
    summary = sim.run(on_status=lambda status: console.print(dashboard.status_panel(status)))
    console.print(dashboard.summary_panel(summary))


def run_interactive(sim: Simulator, console: Console) -> None:
    dashboard = Dashboard(sim)

    try:
        with Live(dashboard.render(), console=console, refresh_per_second=4, screen=True) as live:
            while not sim.finished:
                live.update(dashboard.render())

                if sys.stdin in select.select([sys.stdin], [], [], 0)[0]:
                    key = get_key()
                    if key == 'q':
                        break
                    elif key == 'a':
                        sim.generate_request()
                    elif key == 's':
                        sim.toggle_auto_generate()
                    elif key == 'b':
                        sim.block_last_origin()

                sim.tick()
                if sim.config.delay:
                    time.sleep(sim.config.delay)
    except KeyboardInterrupt:
        pass
    finally:
        sim.close()

    console.print(dashboard.summary_panel(sim.summary()))


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console = Console()
    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    console.print("[bold blue]ServerFarm[/] - Load Balancer Simulation")
    console.print(f"Servers: {config.servers} | Cycles: {config.cycles} | Initial queue: {config.initial_requests}")

    sim = Simulator(config)
    sim.initialize_queue()
    if config.log_file:
        console.print(f"Logging to: {config.log_file}")

    if args.headless or not sys.stdin.isatty():
        run_headless(sim, console)
    else:
        run_interactive(sim, console)

    if config.log_file:
        console.print(f"\nLog file saved as: {config.log_file}")


if __name__ == "__main__":
    main()
