# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Interactive shell for the geomessage simulator."""

import cmd
import shlex

from geomsim.simulator.scheduler import PlaybackScheduler
from geomsim.utils.status import PlaybackPrint, SimulatorError


class SimulatorShell(cmd.Cmd):
    """Interactive shell controlling a PlaybackScheduler."""

    intro = """
=====================================
  Geomessage Simulator - Interactive
=====================================
Type 'help' for available commands.
"""
    prompt = ">>> "

    def __init__(self, scheduler: PlaybackScheduler, printer: PlaybackPrint = None,
                 stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.scheduler = scheduler
        self.printer = printer or PlaybackPrint()
        self.file = None

    def _out(self, text):
        self.stdout.write(f"{text}\n")

    # === File Commands ===

    def do_load(self, arg):
        """load FILE - Load a simulation file

        Reads the first message so its fields can be listed.
        """
        path = arg.strip()
        if not path:
            self._out("Usage: load FILE")
            return
        try:
            fields = self.scheduler.initialize(path)
        except SimulatorError as e:
            self._out(f"Error: {e}")
            return
        self.file = path
        self._out(f"Loaded {path}")
        self._out(f"Fields: {', '.join(fields)}")

    # === Playback Commands ===

    def do_start(self, arg):
        """start - Start sending messages"""
        try:
            if self.scheduler.start():
                self._out(f"Started: {self.scheduler.rate}")
            else:
                self._out("Simulation already started")
        except SimulatorError as e:
            self._out(f"Error: {e}")

    def do_pause(self, arg):
        """pause - Pause sending; the position is kept"""
        if self.scheduler.pause():
            self._out(f"Paused at message {self.scheduler.cursor}")
        else:
            self._out("Error: Simulation is not running")

    def do_resume(self, arg):
        """resume - Resume a paused simulation"""
        if self.scheduler.unpause():
            self._out(f"Resumed at message {self.scheduler.cursor}")
        else:
            self._out("Error: Simulation is not paused")

    def do_stop(self, arg):
        """stop - Stop and rewind to the first message"""
        if self.scheduler.stop():
            self._out("Stopped")
        else:
            self._out("Error: Simulation is not started")

    # === Configuration Commands ===

    def do_frequency(self, arg):
        """frequency [N [COUNT UNIT]] - Get or set the message rate

        Examples:
            frequency                 - Show current rate
            frequency 2               - 2 messages per second
            frequency 50 6 minutes    - 50 messages every 6 minutes
        """
        args = arg.split()
        if not args:
            self._out(f"Rate: {self.scheduler.rate}")
            return
        try:
            count = float(args[0])
            time_count = float(args[1]) if len(args) > 1 else 1
        except ValueError:
            self._out(f"Invalid frequency: {arg}")
            return
        unit = args[2] if len(args) > 2 else "seconds"
        try:
            interval = self.scheduler.set_frequency(count, time_count, unit)
        except SimulatorError as e:
            self._out(f"Error: {e}")
            return
        self._out(f"Interval set: {interval} ms")

    def do_throughput(self, arg):
        """throughput [N] - Get or set messages per tick (1 is recommended)"""
        arg = arg.strip()
        if not arg:
            self._out(f"Throughput: {self.scheduler.throughput()}")
            return
        try:
            self.scheduler.set_throughput(int(arg))
        except (ValueError, SimulatorError) as e:
            self._out(f"Error: {e}")
            return
        self._out(f"Throughput set: {self.scheduler.throughput()}")

    def do_fields(self, arg):
        """fields [NAME ...] - Get or set the fields stamped with the current time

        Use 'fields -' to clear the list.
        """
        names = shlex.split(arg.replace(",", " "))
        if not names:
            current = self.scheduler.time_override_fields()
            self._out(f"Time fields: {', '.join(current) or '-'}")
            return
        if names == ["-"]:
            names = []
        self.scheduler.set_time_override_fields(names)
        self._out(f"Time fields: {', '.join(names) or '-'}")

    def do_port(self, arg):
        """port [N] - Get or set the destination UDP port"""
        arg = arg.strip()
        if not arg:
            self._out(f"Port: {self.scheduler.sink.port}")
            return
        try:
            self.scheduler.set_port(int(arg))
        except ValueError as e:
            self._out(f"Error: {e}")
            return
        self._out(f"Port set: {self.scheduler.sink.port}")

    def do_verbose(self, arg):
        """verbose [on|off] - Print every message as it is sent"""
        arg = arg.strip().lower()
        if arg:
            self.printer.verbose = arg in ("on", "true", "1", "yes")
        self._out(f"Verbose: {'on' if self.printer.verbose else 'off'}")

    # === Status Commands ===

    def do_status(self, arg):
        """status - Show current simulation status"""
        self._out(f"File:       {self.file or '-'}")
        self.printer.status(self.scheduler)

    # === Exit Commands ===

    def do_quit(self, arg):
        """quit - Exit the simulator"""
        self.scheduler.stop()
        self._out("Goodbye!")
        return True

    def do_exit(self, arg):
        """exit - Exit the simulator"""
        return self.do_quit(arg)

    def do_q(self, arg):
        """q - Exit the simulator"""
        return self.do_quit(arg)

    def do_EOF(self, arg):
        return self.do_quit(arg)

    def emptyline(self):
        """Do nothing on empty line."""
        pass


def main(scheduler: PlaybackScheduler, printer: PlaybackPrint = None, file=None):
    """Run the shell until the user quits."""
    shell = SimulatorShell(scheduler, printer)
    if file:
        shell.do_load(file)
    try:
        shell.cmdloop()
    except KeyboardInterrupt:
        scheduler.stop()
        print("\nGoodbye!")
