# Copyright (C) 2005  Michael Urman
#               2013  Christoph Reiter
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

from songtag._util import SongtagError


class error(SongtagError):
    pass


class ID3NoHeaderError(error, ValueError):
    pass


class ID3BadEncodingError(error, ValueError):
    pass


class ID3EncryptionUnsupportedError(error, NotImplementedError):
    pass


class ID3JunkFrameError(error, ValueError):
    pass


class ID3IOError(error, IOError):
    pass


def is_valid_frame_id(frame_id: str) -> bool:
    return frame_id.isalnum() and frame_id.isupper()


class unsynch(object):
    @staticmethod
    def decode(value: bytes) -> bytes:
        output = bytearray()
        safe = True
        append = output.append
        for val in bytearray(value):
            if safe:
                append(val)
                safe = val != 0xFF
            else:
                if val >= 0xE0:
                    raise ValueError('invalid sync-safe string')
                elif val != 0x00:
                    append(val)
                safe = True
        if not safe:
            raise ValueError('string ended unsafe')
        return bytes(output)


class BitPaddedInt(int):
    """An integer stored with only the low `bits` bits of each byte used.

    With the default of 7 bits this is the synchsafe integer of the tag
    header: the high bit of every byte stays zero.
    """

    def __new__(cls, value: bytes, bits: int = 7,
                bigendian: bool = True) -> BitPaddedInt:

        if not isinstance(value, bytes):
            raise TypeError

        mask = (1 << bits) - 1
        numeric_value = 0
        shift = 0

        if bigendian:
            value = bytes(reversed(value))
        for byte in value:
            numeric_value += (byte & mask) << shift
            shift += bits

        return int.__new__(cls, numeric_value)

    @staticmethod
    def to_str(value: int, bits: int = 7, bigendian: bool = True,
               width: int = 4, minwidth: int = 4) -> bytes:
        if value < 0:
            raise ValueError("negative value")

        mask = (1 << bits) - 1

        if width != -1:
            index = 0
            bytes_ = bytearray(width)
            try:
                while value:
                    bytes_[index] = value & mask
                    value >>= bits
                    index += 1
            except IndexError:
                raise ValueError('Value too wide (>%d bytes)' % width)
        else:
            # PCNT and POPM use growing integers
            # of at least 4 bytes (=minwidth) as counters.
            bytes_ = bytearray()
            append = bytes_.append
            while value:
                append(value & mask)
                value >>= bits
            bytes_ = bytes_.ljust(minwidth, b"\x00")

        if bigendian:
            bytes_.reverse()
        return bytes(bytes_)
