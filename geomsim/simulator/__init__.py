# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Playback engine - rate model, scheduler and interactive shell."""

from geomsim.simulator.rate import RateModel
from geomsim.simulator.scheduler import PlaybackScheduler, Signal

__all__ = ["PlaybackScheduler", "RateModel", "Signal"]
