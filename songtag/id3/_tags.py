# Copyright 2005 Michael Urman
# Copyright 2016 Christoph Reiter
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
import struct
import zlib
from typing import BinaryIO, NamedTuple

from songtag._tags import DEFAULT_PADDING
from songtag._util import read_full
from ._frames import Frame, Frames, InvalidFrame
from ._util import (
    BitPaddedInt,
    ID3EncryptionUnsupportedError,
    ID3JunkFrameError,
    ID3NoHeaderError,
    error,
    is_valid_frame_id,
    unsynch,
)


logger = logging.getLogger(__name__)


class FrameHeader(NamedTuple):
    """The 10 byte header in front of every frame, as found on disk"""

    frame_id: str
    size: int
    flags: int


class ID3Header(object):
    """The 10 byte tag header plus the optional extended header.

    Attributes:
        size (int): tag size excluding this 10 byte header, but including
            the extended header, the frames and the padding
        ext_read_length (int): bytes the extended header took up in the
            data it was read from, 0 if there was none
    """

    _V23 = (2, 3, 0)

    F_UNSYNCH = 0x80
    F_EXTENDED = 0x40
    F_EXPERIMENTAL = 0x20

    EXT_F_CRC = 0x8000

    MAX_SIZE = (1 << 28) - 1

    def __init__(self, fileobj: BinaryIO | None = None):
        """Raises ID3NoHeaderError, error, IOError"""

        self._flags = 0
        self._size = 0
        self._padding_size = 0
        self._crc = b""
        self._dirty = fileobj is None
        self.ext_read_length = 0

        if fileobj is not None:
            self._read(fileobj)

    def _read(self, fileobj: BinaryIO) -> None:
        fn = getattr(fileobj, "name", "<unknown>")
        self._parse_fixed(fileobj.read(10), fn)
        if self.f_extended:
            self._read_extended(fileobj, fn)

    def _parse_fixed(self, data: bytes, fn: str = "<unknown>") -> None:
        """Parses the 10 byte header without touching the extended one"""

        if len(data) != 10:
            raise ID3NoHeaderError(f"{fn}: too small")

        id3, vmaj, vrev, flags, size = struct.unpack('>3sBBB4s', data)

        if id3 != b'ID3':
            raise ID3NoHeaderError(f"{fn!r} doesn't start with an ID3 tag")

        if (vmaj, vrev) != self._V23[1:]:
            raise ID3NoHeaderError(f"{fn!r} ID3v2.{vmaj}.{vrev} not supported")

        self._flags = flags & (
            self.F_UNSYNCH | self.F_EXTENDED | self.F_EXPERIMENTAL)
        self._size = int(BitPaddedInt(size))

    def _read_extended(self, fileobj: BinaryIO, fn: str) -> None:
        ext_size, ext_flags, self._padding_size = \
            struct.unpack('>LHL', read_full(fileobj, 10))
        if ext_size < 6:
            raise error(f"{fn!r}: invalid extended header size {ext_size}")

        # the declared size decides where the frames start
        extra = read_full(fileobj, ext_size - 6)
        has_crc = bool(ext_flags & self.EXT_F_CRC)
        if has_crc != (ext_size == 10):
            logger.warning(
                "%s: extended header size %d doesn't match its CRC flag",
                fn, ext_size)
            self._dirty = True
        if has_crc and len(extra) >= 4:
            self._crc = extra[:4]
        self.ext_read_length = 4 + ext_size
        logger.debug("%s: extended header, %d bytes declared", fn, ext_size)

    def _set_flag(self, flag: int, value: bool) -> None:
        flags = (self._flags | flag) if value else (self._flags & ~flag)
        if flags != self._flags:
            self._flags = flags
            self._dirty = True

    @property
    def version(self) -> tuple[int, int, int]:
        return self._V23

    @property
    def f_unsynch(self) -> bool:
        return bool(self._flags & self.F_UNSYNCH)

    @f_unsynch.setter
    def f_unsynch(self, value: bool) -> None:
        self._set_flag(self.F_UNSYNCH, value)

    @property
    def f_extended(self) -> bool:
        return bool(self._flags & self.F_EXTENDED)

    @f_extended.setter
    def f_extended(self, value: bool) -> None:
        self._set_flag(self.F_EXTENDED, value)
        if not value:
            self._padding_size = 0
            self._crc = b""

    @property
    def f_experimental(self) -> bool:
        return bool(self._flags & self.F_EXPERIMENTAL)

    @f_experimental.setter
    def f_experimental(self, value: bool) -> None:
        self._set_flag(self.F_EXPERIMENTAL, value)

    @property
    def size(self) -> int:
        return self._size

    @size.setter
    def size(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"tag size must not be negative: {value}")
        if value > self.MAX_SIZE:
            raise ValueError(f"tag size doesn't fit in 28 bits: {value}")
        if value != self._size:
            self._size = value
            self._dirty = True

    @property
    def f_crc(self) -> bool:
        return bool(self._crc)

    @property
    def crc(self) -> bytes:
        return self._crc

    @crc.setter
    def crc(self, value: bytes) -> None:
        if not self.f_extended:
            raise ValueError("CRC needs an extended header")
        if len(value) not in (0, 4):
            raise ValueError("CRC has to be 4 bytes")
        if value != self._crc:
            self._crc = bytes(value)
            self._dirty = True

    @property
    def padding_size(self) -> int:
        return self._padding_size

    @padding_size.setter
    def padding_size(self, value: int) -> None:
        if not self.f_extended:
            raise ValueError("padding size needs an extended header")
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"invalid padding size: {value}")
        if value != self._padding_size:
            self._padding_size = value
            self._dirty = True

    @property
    def ext_size(self) -> int:
        """Value of the extended header size field, 6 or 10 with CRC"""

        return 10 if self._crc else 6

    @property
    def ext_length(self) -> int:
        """Bytes the extended header takes up in the tag"""

        if not self.f_extended:
            return 0
        return 4 + self.ext_size

    def is_dirty(self) -> bool:
        return self._dirty

    def serialize(self) -> bytes:
        data = struct.pack(
            '>3sBBB4s', b'ID3', 3, 0, self._flags,
            BitPaddedInt.to_str(self._size, width=4))
        if self.f_extended:
            ext_flags = self.EXT_F_CRC if self._crc else 0
            data += struct.pack(
                '>LHL', self.ext_size, ext_flags, self._padding_size)
            data += self._crc
        self._dirty = False
        return data

    def __repr__(self) -> str:
        return "<%s size=%d flags=0x%02x>" % (
            type(self).__name__, self._size, self._flags)


def read_frames(header: ID3Header | None, data: bytes,
                known_frames: dict[str, type[Frame]] | None = None
                ) -> tuple[list[Frame], list[InvalidFrame], bytes]:
    """Parses frames until the data is used up or padding starts.

    A frame that can't be parsed doesn't stop the loop, it ends up in the
    list of invalid frames and the next frame is read after its declared
    size.

    Returns:
        (valid frames, invalid frames, remaining data)
    """

    if known_frames is None:
        known_frames = Frames

    frames: list[Frame] = []
    invalid: list[InvalidFrame] = []

    while len(data) >= 10:
        if data[0] == 0:
            # padding
            break

        name, size, flags = struct.unpack('>4sLH', data[:10])
        body = data[10:10 + size]
        data = data[10 + size:]

        frame_id = name.decode("latin1")
        frameheader = FrameHeader(frame_id, size, flags)

        if len(body) < size:
            reason = f"frame size {size} exceeds the tag"
        elif not is_valid_frame_id(frame_id):
            reason = f"invalid frame id {frame_id!r}"
        elif frame_id not in known_frames:
            reason = "unsupported frame type"
        else:
            try:
                frames.append(
                    known_frames[frame_id]._fromData(
                        header, frameheader, body))
                continue
            except ID3EncryptionUnsupportedError:
                reason = "encrypted frames are not supported"
            except ID3JunkFrameError as e:
                reason = str(e) or "junk frame"

        logger.warning("invalid frame %r: %s", frame_id, reason)
        invalid.append(InvalidFrame(frameheader, body, reason))

    return frames, invalid, data


def save_frame(frame: Frame) -> bytes:
    framedata = frame._flush()
    return struct.pack(
        '>4sLH', frame.FrameID.encode('ascii'), len(framedata),
        frame.flags) + framedata


def _frame_id(kind: str | type[Frame] | Frame) -> str:
    if isinstance(kind, Frame):
        return kind.FrameID
    elif isinstance(kind, type):
        return kind.__name__
    return kind


class ID3Tags(object):
    """An ordered list of frames plus the tag header and padding.

    Frames keep their insertion order and the same frame type can appear
    more than once. Frames which couldn't be parsed are available through
    `invalid_frames` but never written back.

    ::

        tags = ID3Tags()
        title = tags.add_frame("TIT2")
        title.text = "Hells Bells"
        tags.get_frame("TIT2") is title
    """

    def __init__(self, *args, **kwargs):
        self._header = ID3Header()
        self._frames: list[Frame] = []
        self._invalid: list[InvalidFrame] = []
        self._padding = bytes(DEFAULT_PADDING)
        self._layout = None
        super().__init__(*args, **kwargs)

    @property
    def header(self) -> ID3Header:
        return self._header

    @property
    def frames(self) -> list[Frame]:
        """All valid frames in order"""

        return list(self._frames)

    @property
    def invalid_frames(self) -> tuple[InvalidFrame, ...]:
        """Frames which couldn't be parsed on load"""

        return tuple(self._invalid)

    @property
    def padding(self) -> bytes:
        return self._padding

    @padding.setter
    def padding(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"padding must not be negative: {value}")
        self._padding = bytes(value)

    @property
    def size(self) -> int:
        """The total size of the ID3 tag, including the header, as of the
        last load or flush.
        """

        return 10 + self._header.size

    def add_frame(self, kind: str | type[Frame] | Frame) -> Frame:
        """Appends a frame and returns it.

        Args:
            kind: a frame ID like "TIT2", a frame class or a frame
        Raises:
            ValueError: for frame IDs not in `Frames`
        """

        if isinstance(kind, Frame):
            frame = kind
        elif isinstance(kind, type) and issubclass(kind, Frame):
            frame = kind()
        else:
            try:
                frame = Frames[kind]()
            except KeyError:
                raise ValueError(f"unknown frame type: {kind!r}") from None
        self._frames.append(frame)
        return frame

    def _match(self, kind: str | type[Frame] | Frame):
        if isinstance(kind, Frame):
            return lambda f: f is kind
        frame_id = _frame_id(kind)
        return lambda f: f.FrameID == frame_id

    def get_frame(self, kind: str | type[Frame] | Frame) -> Frame | None:
        """Returns the first frame of the given type or `None`"""

        match = self._match(kind)
        for frame in self._frames:
            if match(frame):
                return frame
        return None

    def get_frames(self, kind: str | type[Frame] | Frame) -> list[Frame]:
        """Returns all frames of the given type"""

        match = self._match(kind)
        return [f for f in self._frames if match(f)]

    def remove_frame(self, kind: str | type[Frame] | Frame) -> Frame | None:
        """Removes and returns the first frame of the given type or `None`
        if there is none.
        """

        match = self._match(kind)
        for i, frame in enumerate(self._frames):
            if match(frame):
                return self._frames.pop(i)
        return None

    def remove_frames(self, kind: str | type[Frame] | Frame) -> list[Frame]:
        """Removes and returns all frames of the given type"""

        match = self._match(kind)
        removed = [f for f in self._frames if match(f)]
        self._frames = [f for f in self._frames if not match(f)]
        return removed

    def discard_invalid_frames(self) -> list[InvalidFrame]:
        """Forgets about the frames which couldn't be parsed, the next
        save will drop them from the file.
        """

        discarded, self._invalid = self._invalid, []
        return discarded

    def _snapshot(self):
        return (self._frames[:], len(self._padding), len(self._invalid))

    def is_dirty(self) -> bool:
        """If anything changed since the tag was loaded or flushed"""

        if self._header.is_dirty() or self._layout is None:
            return True
        frames, padding, invalid = self._layout
        if len(frames) != len(self._frames) or \
                any(a is not b for a, b in zip(frames, self._frames)):
            return True
        if padding != len(self._padding) or invalid != len(self._invalid):
            return True
        return any(f.is_dirty() for f in self._frames)

    def _write(self) -> bytes:
        """Returns the serialized frames"""

        return b"".join(save_frame(frame) for frame in self._frames)

    def flush(self) -> bytes:
        """Serializes all frames, updates the header to match and returns
        the complete tag (header, frames and padding).

        Raises:
            ValueError: if the tag got too large
            songtag.id3.error: if a frame can't be serialized
        """

        framedata = self._write()
        header = self._header
        # writing is never unsynchronised
        header.f_unsynch = False
        header.size = header.ext_length + len(framedata) + len(self._padding)
        if header.f_extended:
            header.padding_size = len(self._padding)
            if header.f_crc:
                header.crc = struct.pack(">L", zlib.crc32(framedata))

        data = header.serialize() + framedata + self._padding
        self._layout = self._snapshot()
        return data

    def _read(self, header: ID3Header, data: bytes,
              known_frames: dict[str, type[Frame]] | None = None) -> bytes:
        if header.f_unsynch:
            try:
                data = unsynch.decode(data)
            except ValueError:
                # Some things write synch-unsafe data with the unsynch
                # flag set. Try to load them as is.
                pass

        frames, invalid, remaining = read_frames(header, data, known_frames)

        if header.f_crc:
            end = max(len(data) - header.padding_size, 0)
            crc = struct.pack(">L", zlib.crc32(data[:end]))
            if crc != header.crc:
                logger.warning("tag CRC mismatch")

        self._header = header
        self._frames = frames
        self._invalid = invalid
        self._padding = bytes(len(remaining))
        self._layout = self._snapshot()
        return remaining

    def pprint(self) -> str:
        """
        Returns:
            text: tags in a human-readable format.
        """

        frames = [frame.pprint() for frame in self._frames]
        frames.extend(frame.pprint() for frame in self._invalid)
        return "\n".join(frames)
