import os
import sys
import struct
import contextlib
from io import StringIO
from tempfile import mkstemp
from unittest import TestCase as BaseTestCase

import pytest

from songtag.id3 import BitPaddedInt


def get_temp_empty(ext=""):
    """Returns an empty file with the extension"""

    fd, filename = mkstemp(suffix=ext)
    os.close(fd)
    return filename


def get_temp_file(data, ext=".mp3"):
    """Returns a file with the given content"""

    filename = get_temp_empty(ext)
    with open(filename, "wb") as h:
        h.write(data)
    return filename


def make_frame(frame_id, body, flags=0):
    """Raw ID3v2.3 frame"""

    return struct.pack(">4sLH", frame_id, len(body), flags) + body


def make_tag(framedata, padding=0, flags=0):
    """Raw ID3v2.3 tag without extended header"""

    size = len(framedata) + padding
    return (b"ID3\x03\x00" + bytes([flags]) +
            BitPaddedInt.to_str(size, width=4) +
            framedata + b"\x00" * padding)


def make_ext_tag(framedata, padding=0, crc=None, ext_size=None):
    """Raw ID3v2.3 tag with an extended header.

    ext_size overrides the declared size of the extended header, the
    CRC bytes are then followed by zeros or cut off to match.
    """

    if ext_size is None:
        ext_size = 10 if crc is not None else 6
    ext = struct.pack(">LHL", ext_size, 0x8000 if crc is not None else 0,
                      padding)
    extra = struct.pack(">L", crc) if crc is not None else b""
    ext += extra.ljust(ext_size - 6, b"\x00")[:ext_size - 6]
    size = len(ext) + len(framedata) + padding
    return (b"ID3\x03\x00\x40" + BitPaddedInt.to_str(size, width=4) +
            ext + framedata + b"\x00" * padding)


def make_id3v1(title=b"", artist=b"", album=b"", year=b"", comment=b"",
               track=None, genre=255):
    """Raw 128 byte ID3v1 tag, ID3v1.1 if track is given"""

    def field(value, length):
        return value.ljust(length, b"\x00")[:length]

    if track is None:
        comment = field(comment, 30)
    else:
        comment = field(comment, 28) + b"\x00" + bytes([track])
    return (b"TAG" + field(title, 30) + field(artist, 30) +
            field(album, 30) + field(year, 4) + comment + bytes([genre]))


AUDIO = bytes(range(256)) * 40
"""Fake audio data"""


@contextlib.contextmanager
def capture_output():
    """
    with capture_output() as (stdout, stderr):
        some_action()
    print stdout.getvalue(), stderr.getvalue()
    """

    err = StringIO()
    out = StringIO()
    old_err = sys.stderr
    old_out = sys.stdout
    sys.stderr = err
    sys.stdout = out

    try:
        yield (out, err)
    finally:
        sys.stderr = old_err
        sys.stdout = old_out


class TestCase(BaseTestCase):

    def assertReallyEqual(self, a, b):
        self.assertEqual(a, b)
        self.assertEqual(b, a)
        self.assertTrue(a == b)
        self.assertTrue(b == a)
        self.assertFalse(a != b)
        self.assertFalse(b != a)

    def assertReallyNotEqual(self, a, b):
        self.assertNotEqual(a, b)
        self.assertNotEqual(b, a)
        self.assertFalse(a == b)
        self.assertFalse(b == a)
        self.assertTrue(a != b)
        self.assertTrue(b != a)


def unit(run=[], exitfirst=False):
    args = []

    if run:
        args.append("-k")
        args.append(" or ".join(run))

    if exitfirst:
        args.append("-x")

    args.append("tests")

    return pytest.main(args=args)
