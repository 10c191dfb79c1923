# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""geomsim - replay recorded geomessages as a live UDP feed."""

from geomsim.simulator import PlaybackScheduler, RateModel
from geomsim.source import Geomessage, MessageSource
from geomsim.time_mapping import TimestampRewriter
from geomsim.transport import UdpSink

__version__ = "0.1.0"

__all__ = [
    "Geomessage",
    "MessageSource",
    "PlaybackScheduler",
    "RateModel",
    "TimestampRewriter",
    "UdpSink",
]
