# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from .geomessage import Geomessage
from .message_source import MessageSource

__all__ = ['Geomessage', 'MessageSource']
