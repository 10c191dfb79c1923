# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Playback Scheduler

Drives a simulation file through a sink at the configured rate.

All state lives on one worker thread. Public methods post a command to the
worker's queue and wait for its result, so lifecycle changes, configuration
and ticks are applied in a single order and errors surface in the caller's
thread. The repeating timer is the worker's own deadline: it sleeps on the
queue until either a command arrives or the next tick is due.
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Callable, List, Optional

from geomsim.simulator.rate import RateModel
from geomsim.source.geomessage import Geomessage
from geomsim.source.message_source import MessageSource
from geomsim.time_mapping.time_rewriter import TimestampRewriter
from geomsim.transport.udp_sink import UdpSink
from geomsim.utils.status import (
    FileError,
    FormatError,
    PlaybackState,
)

logger = logging.getLogger(__name__)

_SHUTDOWN = object()

# Longest single wait on the command queue; the deadline is re-checked after it.
MAX_WAIT_SECONDS = 3600.0


class Signal:
    """A list of callbacks fired together. Callback errors are logged, not raised."""

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable] = []
        self._lock = threading.Lock()

    def connect(self, callback: Callable):
        with self._lock:
            self._callbacks.append(callback)

    def disconnect(self, callback: Callable):
        with self._lock:
            self._callbacks.remove(callback)

    def emit(self, *args):
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in {self.name} callback {callback!r}")


class PlaybackScheduler:
    """Plays a geomessage file to a sink on a repeating tick.

    Signals:
        message_produced(Geomessage): after each message is sent
        advanced(int): after each tick, with the number of messages consumed
        error(Exception): when a send or read fails during playback

    Example:
        with PlaybackScheduler(UdpSink(port=45678)) as scheduler:
            scheduler.set_frequency(2)
            scheduler.initialize("simulation.xml")
            scheduler.start()
            scheduler.wait()
    """

    def __init__(self, sink=None, rate: Optional[RateModel] = None,
                 rewriter: Optional[TimestampRewriter] = None,
                 source: Optional[MessageSource] = None):
        """
        Args:
            sink: Object with a send(text) method (default: UdpSink on the default port)
            rate: Rate model (default: 1 message per second, throughput 1)
            rewriter: Timestamp rewriter (default: no override fields)
            source: Message source (default: a new MessageSource)
        """
        self._owns_sink = sink is None
        self.sink = sink if sink is not None else UdpSink()
        self.rate = rate or RateModel()
        self.rewriter = rewriter or TimestampRewriter()
        self.source = source or MessageSource()

        self.message_produced = Signal("message_produced")
        self.advanced = Signal("advanced")
        self.error = Signal("error")

        self._state = PlaybackState.IDLE
        self._cursor = 0
        self._exhausted = False
        self._loaded = False
        self._pending: Optional[Geomessage] = None
        self._deadline: Optional[float] = None
        # Bumped whenever the run is torn down or replaced, so a tick can tell
        # that a listener stopped or re-initialized playback under it.
        self._generation = 0

        self._idle = threading.Event()
        self._idle.set()
        self._commands = queue.Queue()
        self._closed = False
        self._closed_lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name="geomsim-playback", daemon=True)
        self._thread.start()

    # === Status ===

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def cursor(self) -> int:
        """Number of messages consumed from the source."""
        return self._cursor

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def simulation_started(self) -> bool:
        return self._state in (PlaybackState.RUNNING, PlaybackState.PAUSED)

    def tick_interval_ms(self) -> int:
        return self.rate.tick_interval_ms

    def throughput(self) -> int:
        return self.rate.throughput

    def field_names(self) -> List[str]:
        """Field names of the first message; empty until initialize()."""
        return self._call(self.source.field_names)

    def time_override_fields(self) -> List[str]:
        return self.rewriter.fields()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until playback reaches the end of the file or is stopped.

        Returns:
            bool: False if the timeout expired first
        """
        return self._idle.wait(timeout)

    # === Lifecycle ===

    def initialize(self, path) -> List[str]:
        """Load a simulation file and read its first message.

        Returns:
            list: Field names of the first message

        Raises:
            FileError: the file cannot be read
            FormatError: the file is not a geomessage simulation or has no messages
        """
        return self._call(self._initialize, path)

    def start(self) -> bool:
        """Start playback from Idle or Stopped. Returns False if already started."""
        return self._call(self._start)

    def pause(self) -> bool:
        return self._call(self._pause)

    def unpause(self) -> bool:
        return self._call(self._unpause)

    def stop(self) -> bool:
        """Stop playback and rewind to the first message."""
        return self._call(self._stop)

    # === Configuration ===

    def set_frequency(self, count: float, time_count: float = 1, unit: str = "seconds") -> int:
        """Send <count> messages every <time_count> <unit>. Returns the tick interval in ms."""
        return self._call(self._set_frequency, count, time_count, unit)

    def set_throughput(self, throughput: int):
        self._call(self.rate.set_throughput, throughput)

    def set_time_override_fields(self, fields):
        self._call(self.rewriter.set_fields, fields)

    def set_port(self, port: int):
        self._call(setattr, self.sink, "port", port)

    def shutdown(self, timeout: float = 5.0):
        """Stop the worker thread and release the source and socket.

        From a signal callback the worker is told to exit after the current
        tick instead of being joined.
        """
        if threading.current_thread() is self._thread:
            self._halt()
            self._commands.put(_SHUTDOWN)
        elif self._thread.is_alive():
            self._commands.put(_SHUTDOWN)
            self._thread.join(timeout)
            self.source.close()
        if self._owns_sink:
            self.sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    # === Worker ===

    def _call(self, fn, *args):
        if threading.current_thread() is self._thread:
            return fn(*args)
        future = Future()
        with self._closed_lock:
            if self._closed:
                raise RuntimeError("Playback scheduler has been shut down")
            self._commands.put((fn, args, future))
        return future.result()

    def _run(self):
        try:
            while self._step():
                pass
        finally:
            self._deadline = None
            self.source.close()
            self._idle.set()
            with self._closed_lock:
                self._closed = True
            while True:
                try:
                    command = self._commands.get_nowait()
                except queue.Empty:
                    break
                if command is not _SHUTDOWN:
                    command[2].set_exception(RuntimeError("Playback scheduler has been shut down"))
            logger.debug("Playback worker exited")

    def _step(self) -> bool:
        """Run one due tick or one command. Returns False on shutdown."""
        try:
            if self._deadline is not None and time.monotonic() >= self._deadline:
                self._on_timer()
                return True

            timeout = None
            if self._deadline is not None:
                timeout = min(max(0.0, self._deadline - time.monotonic()), MAX_WAIT_SECONDS)
            try:
                command = self._commands.get(timeout=timeout)
            except queue.Empty:
                return True
        except Exception as e:
            logger.exception("Playback worker error; stopping playback")
            self.error.emit(e)
            self._halt()
            return True

        if command is _SHUTDOWN:
            return False
        fn, args, future = command
        if future.set_running_or_notify_cancel():
            try:
                result = fn(*args)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)
        return True

    def _arm(self):
        self._deadline = time.monotonic() + self.rate.tick_interval_ms / 1000.0

    def _on_timer(self):
        deadline = self._deadline
        generation = self._generation
        try:
            self._tick()
        except Exception as e:
            logger.exception(f"Unexpected error during tick at message {self._cursor}")
            self.error.emit(e)
        # A listener that restarted playback has already armed a fresh deadline.
        if self._deadline is not None and generation == self._generation:
            next_deadline = deadline + self.rate.tick_interval_ms / 1000.0
            self._deadline = max(next_deadline, time.monotonic())

    def _tick(self):
        # One message is always read ahead, so the end of the file is seen on
        # the tick that sends the last message rather than on an extra tick.
        generation = self._generation
        failure = None
        finished = False
        for _ in range(self.rate.throughput):
            message, self._pending = self._pending, None
            if message is None:
                break
            self._cursor += 1
            sent = self._send(message)
            if generation != self._generation:
                # stop() or initialize() from a listener already reset the run
                return

            try:
                self._pending = self.source.read_next()
            except (FileError, FormatError) as e:
                failure = e
                break
            if self._pending is None:
                self._deadline = None
                self._exhausted = True
                finished = True
                logger.info(f"End of simulation file after {self._cursor} messages")
                break
            if not sent or self._state is not PlaybackState.RUNNING:
                break

        self.advanced.emit(self._cursor)
        if generation != self._generation:
            return
        if finished:
            self._idle.set()
        if failure is not None:
            logger.error(f"Simulation file unusable after message {self._cursor}: {failure}")
            self.error.emit(failure)
            if generation == self._generation:
                self._halt()

    def _send(self, message: Geomessage) -> bool:
        try:
            self.rewriter.apply(message)
            self.sink.send(message.to_xml())
        except Exception as e:
            logger.warning(f"Failed to send message {self._cursor}: {e}")
            self.error.emit(e)
            return False
        self.message_produced.emit(message)
        return True

    def _prime(self, open_source):
        """Open the source and hold its first message for the first tick."""
        self._pending = None
        self._loaded = False
        try:
            open_source()
            first = self.source.read_next()
            if first is None:
                raise FormatError("file contains no messages", self.source.path)
        except Exception:
            self.source.close()
            raise
        self._pending = first
        self._loaded = True

    def _initialize(self, path) -> List[str]:
        self._generation += 1
        self._deadline = None
        self._cursor = 0
        self._exhausted = False
        self._state = PlaybackState.IDLE
        self._idle.set()
        self.source.close()

        self._prime(lambda: self.source.load(path))
        fields = self.source.field_names()
        logger.info(f"Loaded {path} ({len(fields)} fields: {', '.join(fields)})")
        return fields

    def _start(self) -> bool:
        if self._state in (PlaybackState.RUNNING, PlaybackState.PAUSED):
            logger.warning(f"Simulation already started ({self._state.value})")
            return False
        if self._state is PlaybackState.STOPPED:
            self._prime(self.source.rewind)
        elif not self._loaded:
            raise FileError("<none>", "no simulation file loaded; call initialize() first")

        self._state = PlaybackState.RUNNING
        self._exhausted = False
        self._idle.clear()
        self._arm()
        logger.info(f"Simulation started ({self.rate})")
        return True

    def _pause(self) -> bool:
        if self._state is not PlaybackState.RUNNING:
            logger.warning(f"Cannot pause while {self._state.value}")
            return False
        self._deadline = None
        self._state = PlaybackState.PAUSED
        logger.info(f"Simulation paused at message {self._cursor}")
        return True

    def _unpause(self) -> bool:
        if self._state is not PlaybackState.PAUSED:
            logger.warning(f"Cannot unpause while {self._state.value}")
            return False
        self._state = PlaybackState.RUNNING
        if not self._exhausted:
            self._arm()
        logger.info(f"Simulation resumed at message {self._cursor}")
        return True

    def _stop(self) -> bool:
        if self._state not in (PlaybackState.RUNNING, PlaybackState.PAUSED):
            logger.warning(f"Cannot stop while {self._state.value}")
            return False
        self._halt()
        logger.info("Simulation stopped")
        return True

    def _halt(self):
        self._generation += 1
        self._deadline = None
        self._cursor = 0
        self._pending = None
        self._loaded = False
        self._exhausted = False
        self.source.close()
        self._state = PlaybackState.STOPPED
        self._idle.set()

    def _set_frequency(self, count, time_count, unit) -> int:
        interval_ms = self.rate.set_frequency(count, time_count, unit)
        if self._deadline is not None:
            self._deadline = min(self._deadline, time.monotonic() + interval_ms / 1000.0)
        return interval_ms
