# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Timestamp Rewriter

Replaces the values of selected fields with the current local time just
before a message goes out, so a recorded feed looks live.
"""

import threading
from datetime import datetime
from typing import Callable, Iterable, List

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TimestampRewriter:
    """Overwrites time-override fields with the current time"""

    def __init__(self, fields: Iterable[str] = (),
                 clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            fields: Names of fields to overwrite
            clock: Source of the current time
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._fields: List[str] = []
        self.set_fields(fields)

    def set_fields(self, fields: Iterable[str]):
        """Replace the set of time-override fields. Names are not checked against any schema."""
        if isinstance(fields, str):
            fields = [fields]
        names = []
        for name in fields:
            name = str(name).strip()
            if name and name not in names:
                names.append(name)
        with self._lock:
            self._fields = names

    def fields(self) -> List[str]:
        with self._lock:
            return list(self._fields)

    def now(self) -> str:
        return self._clock().strftime(DATE_FORMAT)

    def apply(self, message):
        """Stamp every configured field present in message; returns the message."""
        with self._lock:
            present = [name for name in self._fields if name in message]
        if present:
            stamp = self.now()
            for name in present:
                message[name] = stamp
        return message
