# Copyright (C) 2005  Michael Urman
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

import struct
from collections.abc import Iterator
from enum import IntEnum
from typing import TYPE_CHECKING, Any, override

from songtag._util import bchr, decode_terminated, encode_endian
from ._util import BitPaddedInt, ID3BadEncodingError

if TYPE_CHECKING:
    from ._frames import Frame
    from ._tags import ID3Header


class PictureType(IntEnum):
    """Enumeration of image types defined by the ID3 standard for the APIC
    frame.
    """

    OTHER = 0
    """Other"""

    FILE_ICON = 1
    """32x32 pixels 'file icon' (PNG only)"""

    OTHER_FILE_ICON = 2
    """Other file icon"""

    COVER_FRONT = 3
    """Cover (front)"""

    COVER_BACK = 4
    """Cover (back)"""

    LEAFLET_PAGE = 5
    """Leaflet page"""

    MEDIA = 6
    """Media (e.g. label side of CD)"""

    LEAD_ARTIST = 7
    """Lead artist/lead performer/soloist"""

    ARTIST = 8
    """Artist/performer"""

    CONDUCTOR = 9
    """Conductor"""

    BAND = 10
    """Band/Orchestra"""

    COMPOSER = 11
    """Composer"""

    LYRICIST = 12
    """Lyricist/text writer"""

    RECORDING_LOCATION = 13
    """Recording Location"""

    DURING_RECORDING = 14
    """During recording"""

    DURING_PERFORMANCE = 15
    """During performance"""

    SCREEN_CAPTURE = 16
    """Movie/video screen capture"""

    FISH = 17
    """A bright coloured fish"""

    ILLUSTRATION = 18
    """Illustration"""

    BAND_LOGOTYPE = 19
    """Band/artist logotype"""

    PUBLISHER_LOGOTYPE = 20
    """Publisher/Studio logotype"""

    def _pprint(self) -> str:
        return self.name.lower().replace("_", " ")


class Encoding(IntEnum):
    """Text Encoding"""

    LATIN1 = 0
    """ISO-8859-1"""

    UTF16 = 1
    """UTF-16 with BOM"""

    @property
    def codec(self) -> str:
        """Python codec name used for this encoding"""

        return _CODECS[self]

    @property
    def terminator(self) -> bytes:
        """The null terminator, one byte wide for LATIN1 and two for UTF16"""

        return b"\x00" * (self + 1)

    @classmethod
    def from_byte(cls, value: int) -> Encoding:
        """Look up the encoding for the discriminant byte of a frame.

        Raises:
            ID3BadEncodingError: for anything but 0 and 1
        """

        try:
            return cls(value)
        except ValueError:
            raise ID3BadEncodingError(
                f'Invalid Encoding: {value!r}') from None


_CODECS = {
    Encoding.LATIN1: "latin1",
    Encoding.UTF16: "utf-16",
}


class SpecError(Exception):
    pass


class Spec[T]:
    """Reads, writes and validates one field of a frame body."""

    handle_nodata: bool = False
    """If reading empty data is possible and writing it back will again
    result in no data.
    """
    name: str
    default: T

    def __init__(self, name: str, default: T):
        self.name = name
        self.default = default

    @override
    def __hash__(self) -> int:
        raise TypeError("Spec objects are unhashable")

    def read(self, header: ID3Header | None, frame: Frame,
             data: bytes) -> tuple[T, bytes]:
        """
        Returns:
            (value: object, left_data: bytes)
        Raises:
            SpecError
        """

        raise NotImplementedError

    def write(self, frame: Frame, value: T) -> bytes:
        """
        Returns:
            bytes: The serialized data
        Raises:
            SpecError
        """
        raise NotImplementedError

    def validate(self, frame: Frame, value: Any) -> T:
        """
        Returns:
            the validated value
        Raises:
            ValueError
            TypeError
        """

        raise NotImplementedError


class ByteSpec(Spec[int]):

    def __init__(self, name: str, default: int = 0):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        return data[0], data[1:]

    @override
    def write(self, frame, value):
        return bchr(value)

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        value = int(value)
        if not 0 <= value <= 255:
            raise ValueError(f"{self.name} out of range 0..255: {value!r}")
        return value


class PictureTypeSpec(ByteSpec):

    def __init__(self, name: str,
                 default: PictureType = PictureType.COVER_FRONT):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        value, data = super().read(header, frame, data)
        try:
            return PictureType(value), data
        except ValueError:
            raise SpecError(f"invalid picture type: {value}") from None

    @override
    def validate(self, frame, value):
        return PictureType(super().validate(frame, value))


class EncodingSpec(ByteSpec):

    def __init__(self, name: str, default: Encoding = Encoding.UTF16):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        enc, data = super().read(header, frame, data)
        try:
            return Encoding.from_byte(enc), data
        except ID3BadEncodingError as e:
            raise SpecError(e) from e

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError
        return Encoding.from_byte(value)


class IntegerSpec(Spec[int]):
    """A big endian counter of at least four bytes, using up the rest of
    the frame.
    """

    def __init__(self, name: str, default: int = 0):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        return int(BitPaddedInt(data, bits=8)), b''

    @override
    def write(self, frame, value):
        return BitPaddedInt.to_str(value, bits=8, width=-1)

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        value = int(value)
        if value < 0:
            raise ValueError(f"{self.name} must not be negative")
        return value


class StringSpec(Spec[str]):
    """A fixed size ASCII only payload."""

    len: int

    def __init__(self, name: str, length: int, default: str | None = None):
        if default is None:
            default = " " * length
        super().__init__(name, default)
        self.len = length

    @override
    def read(self, header, frame, data):
        chunk = data[:self.len]
        if len(chunk) != self.len:
            raise SpecError("not enough data")
        try:
            return chunk.decode("ascii"), data[self.len:]
        except UnicodeDecodeError:
            raise SpecError("not ascii") from None

    @override
    def write(self, frame, value):
        return (value.encode("ascii") + b'\x00' * self.len)[:self.len]

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError

        if not isinstance(value, str):
            raise TypeError(f"{self.name} has to be str")
        value.encode("ascii")

        if len(value) == self.len:
            return value

        raise ValueError('Invalid StringSpec[%d] data: %r' % (self.len, value))


class BinaryDataSpec(Spec[bytes]):

    handle_nodata = True

    def __init__(self, name: str, default: bytes = b""):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        return data, b''

    @override
    def write(self, frame, value):
        return value

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        else:
            raise TypeError(f"{self.name} has to be bytes")


def iter_text_fixups(data: bytes, encoding: Encoding) -> Iterator[bytes]:
    """Yields a series of repaired text values for decoding"""

    yield data
    if encoding == Encoding.UTF16:
        # wrong termination
        yield data + b"\x00"


class EncodedTextSpec(Spec[str]):
    """Text in the encoding given by the frame's 'encoding' attribute.

    On read the terminator is optional for the last field of a frame;
    on write it is always added.
    """

    handle_nodata = True

    def __init__(self, name: str, default: str = ""):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        err = None
        for fixed in iter_text_fixups(data, frame.encoding):
            try:
                value, rest = decode_terminated(
                    fixed, frame.encoding.codec, strict=False)
            except ValueError as e:
                err = e
            else:
                return value, rest
        raise SpecError(err)

    @override
    def write(self, frame, value):
        encoding = frame.encoding
        try:
            return encode_endian(value, encoding.codec) + \
                encoding.terminator
        except UnicodeEncodeError as e:
            raise SpecError(e) from e

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        return str(value)


class Latin1TextSpec(Spec[str]):

    def __init__(self, name: str, default: str = ""):
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        if b'\x00' in data:
            data, ret = data.split(b'\x00', 1)
        else:
            ret = b''
        return data.decode('latin1'), ret

    @override
    def write(self, frame, value):
        try:
            return value.encode('latin1') + b'\x00'
        except UnicodeEncodeError as e:
            raise SpecError(e) from e

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        return str(value)


class SynchronizedTextSpec(EncodedTextSpec):
    """(text, timestamp) pairs, kept in the order they were given."""

    def __init__(self, name: str, default: list | None = None):
        super().__init__(name, default=[] if default is None else default)

    @override
    def read(self, header, frame, data):
        texts: list[tuple[str, int]] = []
        encoding = frame.encoding
        while data:
            try:
                value, data = decode_terminated(data, encoding.codec)
            except ValueError as e:
                raise SpecError("decoding error") from e

            if len(data) < 4:
                raise SpecError("not enough data")
            time, = struct.unpack(">I", data[:4])

            texts.append((value, time))
            data = data[4:]
        return texts, b""

    @override
    def write(self, frame, value):
        data: list[bytes] = []
        encoding = frame.encoding
        for text, time in value:
            try:
                textb = encode_endian(text, encoding.codec) + \
                    encoding.terminator
            except UnicodeEncodeError as e:
                raise SpecError(e) from e
            data.append(textb + struct.pack(">I", time))
        return b"".join(data)

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        texts = []
        for text, time in value:
            time = int(time)
            if not 0 <= time <= 0xFFFFFFFF:
                raise ValueError(f"invalid timestamp: {time!r}")
            texts.append((str(text), time))
        return texts


class EqualizationSpec(Spec[list[tuple[int, int]]]):
    """EQUA bands as (frequency, adjustment) pairs.

    Each band is a 16 bit field with the increment flag in the top bit
    and the frequency in Hz below it, followed by the adjustment using
    the frame's 'bits' attribute. A negative adjustment is a decrement.
    """

    handle_nodata = True

    def __init__(self, name: str, default: list | None = None):
        super().__init__(name, default=[] if default is None else default)

    @override
    def read(self, header, frame, data):
        if frame.bits == 0:
            raise SpecError("adjustment bits has to be > 0")
        bytes_per_value = (frame.bits + 7) // 8

        bands: list[tuple[int, int]] = []
        while data:
            if len(data) < 2 + bytes_per_value:
                raise SpecError("truncated band")
            field, = struct.unpack(">H", data[:2])
            adj = int(BitPaddedInt(data[2:2 + bytes_per_value], bits=8))
            data = data[2 + bytes_per_value:]
            if not field & 0x8000:
                adj = -adj
            bands.append((field & 0x7FFF, adj))
        return bands, b""

    @override
    def write(self, frame, value):
        bytes_per_value = (frame.bits + 7) // 8
        buffer_ = bytearray()
        for freq, adj in value:
            field = freq
            if adj >= 0:
                field |= 0x8000
            buffer_.extend(struct.pack(">H", field))
            try:
                buffer_.extend(BitPaddedInt.to_str(
                    abs(adj), bits=8, width=bytes_per_value))
            except ValueError as e:
                raise SpecError(e) from e
        return bytes(buffer_)

    @override
    def validate(self, frame, value):
        if value is None:
            raise TypeError(f"{self.name} can't be None")
        bands = []
        for freq, adj in value:
            freq, adj = int(freq), int(adj)
            if not 0 <= freq <= 0x7FFF:
                raise ValueError(f"frequency out of range: {freq!r}")
            bands.append((freq, adj))
        return bands


class RVASpec(Spec[list[int]]):
    """RVAD adjustments: right, left, right peak, left peak, then
    optionally the back, center and bass channels with their peaks.
    Negative values are decrements.
    """

    _max_values = 12

    def __init__(self, name: str, default: list[int] | None = None):
        if default is None:
            default = [0, 0]
        super().__init__(name, default)

    @override
    def read(self, header, frame, data):
        # inc/dec flags
        spec = ByteSpec("flags", 0)
        flags, data = spec.read(header, frame, data)
        if not data:
            raise SpecError("truncated")

        # how many bytes per value
        bits, data = spec.read(header, frame, data)
        if bits == 0:
            # not allowed according to spec
            raise SpecError("bits used has to be > 0")
        bytes_per_value = (bits + 7) // 8

        values: list[int] = []
        while len(data) >= bytes_per_value and len(values) < self._max_values:
            v = int(BitPaddedInt(data[:bytes_per_value], bits=8))
            data = data[bytes_per_value:]
            values.append(v)

        if len(values) < 2:
            raise SpecError("First two values not optional")

        # if the respective flag bit is zero, take as decrement
        for bit, index in enumerate([0, 1, 4, 5, 8, 10]):
            if not (flags >> bit) & 1:
                try:
                    values[index] = -values[index]
                except IndexError:
                    break

        return values, data

    @override
    def write(self, frame, values):
        if len(values) < 2 or len(values) > self._max_values:
            raise SpecError(
                "at least two volume change values required, max %d" %
                self._max_values)

        spec = ByteSpec("flags", 0)

        flags = 0
        values = list(values)
        for bit, index in enumerate([0, 1, 4, 5, 8, 10]):
            try:
                if values[index] < 0:
                    values[index] = -values[index]
                else:
                    flags |= (1 << bit)
            except IndexError:
                break

        buffer_ = bytearray()
        buffer_.extend(spec.write(frame, flags))

        # serialized and make them all the same size (min 2 bytes)
        byte_values = [
            BitPaddedInt.to_str(v, bits=8, width=-1, minwidth=2)
            for v in values]
        max_bytes = max([len(v) for v in byte_values])
        byte_values = [v.rjust(max_bytes, b"\x00") for v in byte_values]

        bits = max_bytes * 8
        buffer_.extend(spec.write(frame, bits))

        for v in byte_values:
            buffer_.extend(v)

        return bytes(buffer_)

    @override
    def validate(self, frame, values):
        values = [int(v) for v in values]
        if len(values) < 2 or len(values) > self._max_values:
            raise ValueError("needs list of length 2..%d" % self._max_values)
        return values
