# Copyright (C) 2005  Michael Urman
#               2006  Lukas Lalinsky
#               2013  Christoph Reiter
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

"""ID3v2.3 reading and writing.

This is based off of the following references:

* http://id3.org/id3v2.3.0
* http://id3.org/ID3v1

Because ID3 frame structure differs between frame types, each frame is
implemented as a different class (e.g. TIT2 as songtag.id3.TIT2). Each
frame's documentation contains a list of its attributes.

Frames which can't be parsed (unknown types, encrypted or broken data)
are kept aside as `InvalidFrame` objects and dropped on the next save.

Since this file's documentation is a little unwieldy, you are probably
interested in the :class:`ID3` class to start with.
"""

from ._file import ID3, SavePlan, plan_save, BUFFER_SIZE, TEMP_SUFFIX
from ._specs import Encoding, PictureType
from ._frames import Frames, Frame, InvalidFrame, TextFrame, UrlFrame, \
    BinaryFrame, NumericTextFrame, NumericPartTextFrame
from ._util import error, ID3NoHeaderError, ID3BadEncodingError, \
    ID3EncryptionUnsupportedError, ID3JunkFrameError, ID3IOError, \
    BitPaddedInt, unsynch
from ._id3v1 import ID3v1, ParseID3v1, find_id3v1, seed_frames
from ._tags import ID3Header, ID3Tags, FrameHeader, read_frames, save_frame
from ._frames import APIC, COMM, EQUA, GEOB, MCDI, PCNT, POPM, PRIV, \
    RVAD, SYLT, TALB, TBPM, TCOM, TCON, TCOP, TDAT, TDLY, TENC, TEXT, \
    TFLT, TIME, TIT1, TIT2, TIT3, TKEY, TLAN, TLEN, TMED, TOAL, TOFN, \
    TOLY, TOPE, TORY, TOWN, TPE1, TPE2, TPE3, TPE4, TPOS, TPUB, TRCK, \
    TRDA, TRSN, TRSO, TSIZ, TSRC, TSSE, TXXX, TYER, UFID, USLT, WCOM, \
    WCOP, WOAF, WOAR, WOAS, WORS, WPAY, WPUB, WXXX

# support open(filename) as interface
Open = ID3


__all__ = [
    'ID3', 'ID3Tags', 'ID3Header', 'FrameHeader', 'Frames', 'Frame',
    'InvalidFrame', 'TextFrame', 'UrlFrame', 'BinaryFrame',
    'NumericTextFrame', 'NumericPartTextFrame', 'Encoding', 'PictureType',
    'SavePlan', 'plan_save', 'BUFFER_SIZE', 'TEMP_SUFFIX', 'read_frames',
    'save_frame', 'ID3v1', 'ParseID3v1', 'find_id3v1', 'seed_frames',
    'error', 'ID3NoHeaderError', 'ID3BadEncodingError',
    'ID3EncryptionUnsupportedError', 'ID3JunkFrameError', 'ID3IOError',
    'BitPaddedInt', 'unsynch', 'Open',
] + sorted(Frames)
