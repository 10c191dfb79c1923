# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from .udp_sink import UdpSink, DEFAULT_BROADCAST_PORT

__all__ = ['UdpSink', 'DEFAULT_BROADCAST_PORT']
