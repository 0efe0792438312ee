import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .settings import StarterConfig, load_config

logger = logging.getLogger("DOLStarter")


def _setup_logging(level: str):
    # Logging format mimicking starter panel diagnostics
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='[DOL] %(asctime)s | %(message)s',
        datefmt='%H:%M:%S',
    )


def _serve(config: StarterConfig, host: Optional[str], port: Optional[int]) -> int:
    import uvicorn
    from .main import create_app

    host = config.api_host if host is None else host
    port = config.api_port if port is None else port
    try:
        uvicorn.run(create_app(config), host=host, port=port)
    except OSError as e:
        logger.error(f"Failed to bind to {host}:{port}: {e}")
        return 1
    return 0


async def _simulate_async(config: StarterConfig, seconds: float):
    from .factory import build_session

    session = build_session(config)
    controller = session.controller
    session.start()
    try:
        controller.start()
        await asyncio.sleep((config.ramp_duration_ms / 1000.0) + seconds)
        snap = controller.snapshot
        logger.info(f"STATUS | state={snap.motor_state.value} rpm={snap.motor_rpm:.0f} "
                    f"current={snap.system_current:.2f}A temp={snap.motor_temperature:.1f}°C "
                    f"runtime={snap.running_time}s")
        controller.stop()
        await asyncio.sleep(config.stop_duration_ms / 1000.0 + 0.2)
        snap = controller.snapshot
        logger.info(f"STATUS | state={snap.motor_state.value} rpm={snap.motor_rpm:.0f}")
    finally:
        session.shutdown()


def _simulate(config: StarterConfig, seconds: float) -> int:
    try:
        asyncio.run(_simulate_async(config, seconds))
    except KeyboardInterrupt:
        logger.info("Simulation interrupted.")
    return 0


def _profile(config: StarterConfig, run_ms: float, output: Optional[str]) -> int:
    from .simulation.profile import plot_profile, record_cycle, summarize

    samples = record_cycle(config, run_ms=run_ms)
    summary = summarize(samples)
    print("=" * 60)
    print("DOL STARTER RAMP PROFILE")
    print("=" * 60)
    for key, value in summary.items():
        print(f"  {key:<20} {value}")

    if output:
        plot_profile(samples, output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="DOL Motor Starter Simulator")
    parser.add_argument("--config", default=None, help="Path to settings JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP/WebSocket API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    simulate = sub.add_parser("simulate", help="Run one real-time start/stop cycle headless")
    simulate.add_argument("--seconds", type=float, default=3.0, help="Time to stay RUNNING")

    profile = sub.add_parser("profile", help="Record the ramp profile on a simulated clock")
    profile.add_argument("--run-ms", type=float, default=1000.0)
    profile.add_argument("--output", default=None, help="PNG path for a matplotlib plot")

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"[FATAL] Invalid configuration: {e}", file=sys.stderr)
        return 1
    _setup_logging(config.log_level)

    if args.command == "serve":
        return _serve(config, args.host, args.port)
    if args.command == "simulate":
        return _simulate(config, args.seconds)
    return _profile(config, args.run_ms, args.output)


if __name__ == "__main__":
    sys.exit(main())
