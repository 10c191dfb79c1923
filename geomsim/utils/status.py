# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Utility functions for handling status and errors."""

from enum import Enum
from datetime import datetime

from colorama import Fore, Style


class PlaybackState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class FileError(SimulatorError, OSError):
    def __init__(self, path, reason):
        super().__init__(f"Cannot read simulation file {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class FormatError(SimulatorError, ValueError):
    def __init__(self, message, path=None):
        where = f" ({path})" if path else ""
        super().__init__(f"Invalid simulation file{where}: {message}")
        self.path = str(path) if path else None


class InvalidRateError(SimulatorError, ValueError):
    def __init__(self, message):
        super().__init__(f"Invalid rate: {message}")


class TransportError(SimulatorError):
    def __init__(self, destination, reason):
        super().__init__(f"Send to {destination} failed: {reason}")
        self.destination = destination
        self.reason = reason


class PlaybackPrint:
    """Console printer for playback events.

    Connect its methods to the scheduler's signals. Per-message output is
    only printed when verbose is on; progress and errors always are.
    """

    def __init__(self, verbose=False):
        self.verbose = verbose
        self.sent_count = 0

    def _stamp(self):
        return datetime.now().strftime('%H:%M:%S')

    def message(self, geomessage):
        self.sent_count += 1
        if not self.verbose:
            return
        print(f"{Fore.GREEN}[{self._stamp()}] sent {geomessage.id or '-'}{Style.RESET_ALL} {geomessage.to_xml()}")

    def advanced(self, index):
        if self.verbose:
            print(f"{Fore.CYAN}[{self._stamp()}] at message {index}{Style.RESET_ALL}")

    def error(self, exc):
        print(f"{Fore.RED}[{self._stamp()}] {type(exc).__name__}:{Style.RESET_ALL} {exc}")

    def status(self, scheduler):
        state = scheduler.state
        color = {
            PlaybackState.RUNNING: Fore.GREEN,
            PlaybackState.PAUSED: Fore.YELLOW,
            PlaybackState.STOPPED: Fore.RED,
        }.get(state, Fore.WHITE)
        done = " (end of file)" if scheduler.exhausted else ""
        print(f"State:      {color}{state.value}{Style.RESET_ALL}{done}")
        print(f"Message:    {scheduler.cursor}")
        print(f"Interval:   {scheduler.tick_interval_ms()} ms x {scheduler.throughput()} msg")
        print(f"Time fields: {', '.join(scheduler.time_override_fields()) or '-'}")
        print(f"Fields:     {', '.join(scheduler.field_names()) or '-'}")

    def summary(self, finished=True):
        if finished:
            print(f"\n{Fore.GREEN}✅ Playback finished{Style.RESET_ALL} - {self.sent_count} messages sent")
        else:
            print(f"\n{Fore.RED}❌ Playback stopped early{Style.RESET_ALL} - {self.sent_count} messages sent")
