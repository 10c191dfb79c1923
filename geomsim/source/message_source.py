# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Message Source

Streams geomessages out of a simulation file one at a time.

Expected layout::

    <simulation>            root, any tag
      <messages>            container
        <message v="1.0">   one record per element
          <_id>...</_id>    immediate children are the fields
          ...

The file is fed to the XML parser in chunks and every consumed element is
detached from the tree, so memory use does not grow with file size.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from geomsim.source.geomessage import Geomessage
from geomsim.utils.status import FileError, FormatError

logger = logging.getLogger(__name__)

CONTAINER_TAGS = ("messages", "geomessages")
MESSAGE_TAGS = ("message", "geomessage")
CHUNK_SIZE = 64 * 1024


class MessageSource:
    """Incremental reader over a geomessage simulation file"""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size
        self.path: Optional[Path] = None
        self._file = None
        self._parser: Optional[ET.XMLPullParser] = None
        self._stack: List[ET.Element] = []
        self._eof = False
        self._broken = False
        self._container_seen = False
        self._field_names: List[str] = []

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def load(self, path) -> List[str]:
        """
        Open a simulation file and validate its root/messages structure.

        Args:
            path: Path to the XML simulation file

        Returns:
            The (still empty) schema; it is filled by the first read_next()

        Raises:
            FileError: the file cannot be opened
            FormatError: no root/messages container, or malformed XML
        """
        self.close()
        self._field_names = []
        path = Path(path)
        try:
            self._file = open(path, "rb")
        except OSError as e:
            raise FileError(path, e.strerror or e) from e

        self.path = path
        self._parser = ET.XMLPullParser(events=("start", "end"))
        self._stack = []
        self._eof = False
        self._broken = False
        self._container_seen = False

        try:
            while not self._container_seen:
                item = self._next_event()
                if item is None:
                    raise FormatError("no <messages> container under the root element", path)
                self._process(*item)
        except (FileError, FormatError):
            self.close()
            raise

        logger.debug(f"Opened simulation file {path}")
        return list(self._field_names)

    def rewind(self) -> List[str]:
        """Reopen the current file from the first message."""
        if self.path is None:
            raise FileError("<none>", "no simulation file has been loaded")
        return self.load(self.path)

    def read_next(self) -> Optional[Geomessage]:
        """
        Advance to the next complete message element.

        Returns:
            The next Geomessage, or None once the source is exhausted
        """
        if self._file is None:
            raise FileError(self.path or "<none>", "source is not open")
        if self._broken:
            raise FormatError("source is unusable after a parse error", self.path)

        while True:
            item = self._next_event()
            if item is None:
                return None
            message = self._process(*item)
            if message is not None:
                if not self._field_names:
                    self._field_names = message.field_names
                return message

    def field_names(self) -> List[str]:
        """Field names of the first message read since load()."""
        return list(self._field_names)

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None
        self._parser = None
        self._stack = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self):
        while True:
            message = self.read_next()
            if message is None:
                return
            yield message

    def _next_event(self):
        """Return the next parser event, feeding more of the file as needed."""
        try:
            while True:
                event = next(self._parser.read_events(), None)
                if event is not None:
                    return event
                if self._eof:
                    return None
                chunk = self._file.read(self.chunk_size)
                if chunk:
                    self._parser.feed(chunk)
                else:
                    self._eof = True
                    self._parser.close()
        except ET.ParseError as e:
            self._broken = True
            raise FormatError(str(e), self.path) from e
        except OSError as e:
            self._broken = True
            raise FileError(self.path, e.strerror or e) from e

    def _process(self, event: str, element: ET.Element) -> Optional[Geomessage]:
        if event == "start":
            self._stack.append(element)
            depth = len(self._stack)
            if depth == 2 and element.tag in CONTAINER_TAGS:
                self._container_seen = True
            return None

        self._stack.pop()
        if not self._stack:
            return None

        parent = self._stack[-1]
        message = None
        if (len(self._stack) == 2 and parent.tag in CONTAINER_TAGS
                and element.tag in MESSAGE_TAGS):
            message = Geomessage.from_element(element)
        if len(self._stack) <= 2:
            parent.remove(element)
        return message
