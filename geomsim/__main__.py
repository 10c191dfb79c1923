# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Command-line entry point: replay a geomessage file over UDP."""

import argparse
import logging
import sys
from pathlib import Path

from geomsim.config import Config
from geomsim.paths import DEFAULT_CONFIG_FILE
from geomsim.simulator.rate import RateModel
from geomsim.simulator.scheduler import PlaybackScheduler
from geomsim.simulator import shell
from geomsim.time_mapping.time_rewriter import TimestampRewriter
from geomsim.transport.udp_sink import DEFAULT_BROADCAST_PORT, BROADCAST_HOST, UdpSink
from geomsim.utils.logging_config import setup_logging
from geomsim.utils.status import PlaybackPrint, SimulatorError

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="geomsim",
        description="Replay a geomessage simulation file as a live UDP feed",
    )
    parser.add_argument("file", nargs="?", help="Simulation XML file")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_FILE,
                        help="Path to config.yml")
    parser.add_argument("--port", type=int, default=None, help="Destination UDP port")
    parser.add_argument("--host", default=None,
                        help="Destination address (default: local broadcast)")
    parser.add_argument("--frequency", type=float, default=None,
                        help="Messages per time period")
    parser.add_argument("--time-count", type=float, default=None,
                        help="Length of the time period")
    parser.add_argument("--time-unit", default=None,
                        choices=["seconds", "minutes", "hours", "days", "weeks"],
                        help="Unit of the time period")
    parser.add_argument("--throughput", type=int, default=None,
                        help="Messages per tick (1 is recommended)")
    parser.add_argument("--time-fields", default=None,
                        help="Comma-separated fields to stamp with the current time")
    parser.add_argument("--verbose", action="store_true", default=None,
                        help="Print every message as it is sent")
    parser.add_argument("--interactive", action="store_true",
                        help="Open the interactive shell")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument("--log-level", default=None, help="Console log level")
    return parser.parse_args(argv)


def _pick(cli_value, config, key, default):
    return cli_value if cli_value is not None else config.get(key, default)


def build_scheduler(args, config):
    """Create a scheduler from command-line arguments, falling back to config values."""
    rate = RateModel(
        _pick(args.frequency, config, "frequency", 1.0),
        _pick(args.time_count, config, "time_count", 1.0),
        _pick(args.time_unit, config, "time_unit", "seconds"),
        _pick(args.throughput, config, "throughput", 1),
    )

    fields = config.get("time_override_fields") or []
    if args.time_fields is not None:
        fields = [f for f in args.time_fields.split(",") if f.strip()]
    rewriter = TimestampRewriter(fields)

    sink = UdpSink(
        port=_pick(args.port, config, "port", DEFAULT_BROADCAST_PORT),
        host=_pick(args.host, config, "broadcast_host", BROADCAST_HOST),
    )
    return PlaybackScheduler(sink, rate=rate, rewriter=rewriter)


def run(scheduler, printer, file) -> int:
    """Play a file to the end, or until interrupted.

    Returns:
        int: 0 when the file was played out or interrupted, 1 when playback
        halted because the file became unreadable
    """
    scheduler.initialize(file)
    scheduler.start()
    try:
        while not scheduler.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        print("\nInterrupted, stopping.")
        scheduler.stop()
        printer.summary(finished=False)
        return 0

    finished = scheduler.exhausted
    printer.summary(finished=finished)
    return 0 if finished else 1


def main(argv=None):
    args = parse_args(argv)
    config = Config(args.config)

    log_dir = args.log_dir or config.get("log_dir")
    log_file = setup_logging(
        log_dir=Path(log_dir) if log_dir else None,
        level=_pick(args.log_level, config, "log_level", "INFO"),
        simulation_file=args.file,
    )
    if log_file:
        logger.debug(f"Logging to {log_file}")

    printer = PlaybackPrint(verbose=bool(_pick(args.verbose, config, "verbose", False)))
    try:
        scheduler = build_scheduler(args, config)
    except (SimulatorError, ValueError) as e:
        printer.error(e)
        return 2

    scheduler.message_produced.connect(printer.message)
    scheduler.advanced.connect(printer.advanced)
    scheduler.error.connect(printer.error)

    sink = scheduler.sink
    exit_code = 0
    try:
        if args.interactive or not args.file:
            shell.main(scheduler, printer, args.file)
        else:
            exit_code = run(scheduler, printer, args.file)
    except SimulatorError as e:
        printer.error(e)
        return 1
    finally:
        scheduler.shutdown()
        sink.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
