# Copyright (C) 2005  Michael Urman
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

import re
import zlib
from collections.abc import Sequence
from struct import unpack
from typing import TYPE_CHECKING, Any, Final, override

from songtag._constants import GENRES
from ._specs import (
    BinaryDataSpec,
    ByteSpec,
    EncodedTextSpec,
    Encoding,
    EncodingSpec,
    EqualizationSpec,
    IntegerSpec,
    Latin1TextSpec,
    PictureType,
    PictureTypeSpec,
    RVASpec,
    Spec,
    SpecError,
    StringSpec,
    SynchronizedTextSpec,
)
from ._util import (
    ID3EncryptionUnsupportedError,
    ID3JunkFrameError,
    error,
)

if TYPE_CHECKING:
    from ._tags import FrameHeader, ID3Header


class Frame:
    """Fundamental unit of ID3 data.

    ID3 tags are split into frames. Each frame has a potentially
    different structure, and so this base class is not very featureful.

    Attributes:
        header (`FrameHeader`): size and flags as found on disk, `None`
            for frames which were created in memory
        valid (bool): always `True`, see `InvalidFrame`
    """

    FLAG23_ALTERTAG: Final = 0x8000
    FLAG23_ALTERFILE: Final = 0x4000
    FLAG23_READONLY: Final = 0x2000
    FLAG23_COMPRESS: Final = 0x0080
    FLAG23_ENCRYPT: Final = 0x0040
    FLAG23_GROUP: Final = 0x0020

    # status flags which survive a save, the format flags don't since
    # frames always get written uncompressed and ungrouped
    _KEEP_FLAGS: Final = FLAG23_ALTERTAG | FLAG23_ALTERFILE | FLAG23_READONLY

    valid: bool = True
    header: FrameHeader | None = None
    _buffer: bytes | None = None

    _framespec: Sequence[Spec[Any]] = []
    _optionalspec: Sequence[Spec[Any]] = []

    def __init__(self, *args: object, **kwargs: object):
        for checker, val in zip(self._framespec, args):
            setattr(self, checker.name, val)
        for checker in self._framespec[len(args):]:
            setattr(self, checker.name,
                    kwargs.get(checker.name, checker.default))
        for spec in self._optionalspec:
            if spec.name in kwargs:
                setattr(self, spec.name, kwargs[spec.name])
            else:
                break

    @override
    def __setattr__(self, name: str, value):
        for checker in self._framespec:
            if checker.name == name:
                self._setattr(name, checker.validate(self, value))
                return
        for checker in self._optionalspec:
            if checker.name == name:
                self._setattr(name, checker.validate(self, value))
                return
        super().__setattr__(name, value)

    def _setattr(self, name: str, value):
        self.__dict__[name] = value

    @property
    def FrameID(self) -> str:
        """ID3v2.3 four character frame ID"""

        return type(self).__name__

    @property
    def flags(self) -> int:
        """The frame flags that will be written on save"""

        if self.header is None:
            return 0
        return self.header.flags & self._KEEP_FLAGS

    @property
    def size(self) -> int:
        """Size of the serialized frame including its 10 byte header"""

        return 10 + len(self._writeData())

    def is_dirty(self) -> bool:
        """If the frame changed since it was loaded or last flushed"""

        return self._buffer != self._writeData()

    def _flush(self) -> bytes:
        self._buffer = self._writeData()
        return self._buffer

    @override
    def __repr__(self) -> str:
        """Python representation of a frame.

        The string returned is a valid Python expression to construct
        a copy of this frame.
        """
        kw: list[str] = []
        for attr in self._framespec:
            # so repr works during __init__
            if hasattr(self, attr.name):
                kw.append(f'{attr.name}={getattr(self, attr.name)!r}')
        for attr in self._optionalspec:
            if hasattr(self, attr.name):
                kw.append(f'{attr.name}={getattr(self, attr.name)!r}')
        return '{}({})'.format(type(self).__name__, ', '.join(kw))

    def _readData(self, header: ID3Header | None, data: bytes) -> bytes:
        """Raises ID3JunkFrameError; Returns leftover data"""

        for reader in self._framespec:
            if len(data) or reader.handle_nodata:
                try:
                    value, data = reader.read(header, self, data)
                except SpecError as e:
                    raise ID3JunkFrameError(e) from e
            else:
                raise ID3JunkFrameError("no data left")
            self._setattr(reader.name, value)

        for reader in self._optionalspec:
            if len(data) or reader.handle_nodata:
                try:
                    value, data = reader.read(header, self, data)
                except SpecError as e:
                    raise ID3JunkFrameError(e) from e
            else:
                break
            self._setattr(reader.name, value)

        return data

    def _writeData(self) -> bytes:
        """Raises error"""

        data: list[bytes] = []
        for writer in self._framespec:
            try:
                data.append(writer.write(self, getattr(self, writer.name)))
            except SpecError as e:
                raise error(e) from e

        for writer in self._optionalspec:
            try:
                data.append(writer.write(self, getattr(self, writer.name)))
            except AttributeError:
                break
            except SpecError as e:
                raise error(e) from e

        return b''.join(data)

    def pprint(self) -> str:
        """Return a human-readable representation of the frame."""
        return f"{self.FrameID}={self._pprint()}"

    def _pprint(self) -> str:
        return "[unrepresentable data]"

    @classmethod
    def _fromData(cls, header: ID3Header | None, frameheader: FrameHeader,
                  data: bytes):
        """Construct this ID3 frame from raw string data.

        Raises:

        ID3JunkFrameError in case parsing failed
        ID3EncryptionUnsupportedError in case the frame is encrypted.
        """

        tflags = frameheader.flags
        if tflags & Frame.FLAG23_COMPRESS:
            if len(data) < 4:
                raise ID3JunkFrameError(f'frame too small: {data!r}')
            usize, = unpack('>L', data[:4])
            data = data[4:]
        if tflags & Frame.FLAG23_ENCRYPT:
            raise ID3EncryptionUnsupportedError("encrypted frame")
        if tflags & Frame.FLAG23_GROUP:
            if not data:
                raise ID3JunkFrameError("missing group identifier")
            data = data[1:]
        if tflags & Frame.FLAG23_COMPRESS:
            try:
                data = zlib.decompress(data)
            except zlib.error as err:
                raise ID3JunkFrameError(f'zlib: {err}') from err
            if len(data) != usize:
                raise ID3JunkFrameError(
                    f'decompressed size {len(data)} != {usize}')

        frame = cls()
        frame._readData(header, data)
        frame.header = frameheader
        frame._buffer = frame._writeData()
        return frame

    @override
    def __hash__(self: object):
        raise TypeError("Frame objects are unhashable")


class InvalidFrame(object):
    """A frame which couldn't be parsed.

    The raw data is kept so the tag can be inspected, but invalid frames
    are never written back. Saving a tag drops them.

    Attributes:
        header (`FrameHeader`): size and flags as found on disk
        data (bytes): the frame body
        reason (str): why parsing failed
    """

    valid = False

    def __init__(self, header: FrameHeader, data: bytes, reason: str):
        self.header = header
        self.data = data
        self.reason = reason

    @property
    def FrameID(self) -> str:
        return self.header.frame_id

    @property
    def size(self) -> int:
        """The amount of tag data this frame used up"""

        return 10 + len(self.data)

    def pprint(self) -> str:
        return f"{self.FrameID}=[invalid: {self.reason}]"

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(frame_id={self.FrameID!r}, "
                f"size={len(self.data)}, reason={self.reason!r})")


class TextFrame(Frame):
    """Text strings.

    Text frames support casts to str objects and compare equal to
    their text.

    Text frames have a 'text' attribute which is the string, and an
    'encoding' attribute; 0 for ISO-8859-1, 1 for UTF-16.
    """

    encoding: Encoding = Encoding.UTF16
    text: str = ""

    _framespec = [
        EncodingSpec('encoding', default=Encoding.UTF16),
        EncodedTextSpec('text'),
    ]

    def __bytes__(self):
        return str(self).encode('utf-8')

    @override
    def __str__(self):
        return self.text

    @override
    def __eq__(self, other: object):
        if isinstance(other, bytes):
            return bytes(self) == other
        elif isinstance(other, str):
            return str(self) == other
        elif isinstance(other, TextFrame):
            return (self.FrameID, self.text) == (other.FrameID, other.text)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return self.text


def _lenient_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        return 0
    return value if value >= 0 else 0


class NumericTextFrame(TextFrame):
    """Numerical text strings.

    The numeric value of these frames can be gotten with unary plus, e.g.::

        frame = TLEN(text='12345')
        length = +frame

    Anything that isn't a non-negative number gives 0.
    """

    def __pos__(self):
        """Return the numerical value of the string."""
        return _lenient_int(self.text)


class NumericPartTextFrame(TextFrame):
    """Numerical text strings with an optional total.

    These strings indicate 'part (e.g. track) X of Y', and unary plus
    returns the first value::

        frame = TRCK(text='4/15')
        track = +frame # track == 4
    """

    def __pos__(self):
        return _lenient_int(self.text.split("/")[0])


class UrlFrame(Frame):
    """A frame containing a URL string.

    URLs are stored as Latin 1, the only sane way to handle URLs in
    MP3s is to restrict them to ASCII.
    """

    url: str = ""

    _framespec = [
        Latin1TextSpec('url'),
    ]

    def __bytes__(self):
        return self.url.encode('utf-8')

    @override
    def __str__(self):
        return self.url

    @override
    def __eq__(self, other: object):
        if isinstance(other, str):
            return self.url == other
        elif isinstance(other, UrlFrame):
            return (self.FrameID, self.url) == (other.FrameID, other.url)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self) -> str:
        return self.url


class TALB(TextFrame):
    "Album"


class TBPM(NumericTextFrame):
    "Beats per minute"


class TCOM(TextFrame):
    "Composer"


class TCON(TextFrame):
    """Content type (Genre)

    ID3 has several ways genres can be represented; for convenience,
    use the 'genres' property rather than the 'text' attribute.
    """

    GENRES = GENRES

    _genre_re = re.compile(r"((?:\((?P<id>[0-9]+|RX|CR)\))*)(?P<str>.+)?")

    @property
    def genres(self) -> list[str]:
        """A list of genres parsed from the raw text data."""

        value = self.text
        # 255 possible entries in id3v1
        if value.isdecimal() and int(value) < 256:
            try:
                return [self.GENRES[int(value)]]
            except IndexError:
                return ["Unknown"]
        elif value == "CR":
            return ["Cover"]
        elif value == "RX":
            return ["Remix"]
        elif not value:
            return []

        genres: list[str] = []
        genreid, dummy, genrename = self._genre_re.match(value).groups()

        if genreid:
            for gid in genreid[1:-1].split(")("):
                if gid.isdigit() and int(gid) < len(self.GENRES):
                    genres.append(self.GENRES[int(gid)])
                elif gid == "CR":
                    genres.append("Cover")
                elif gid == "RX":
                    genres.append("Remix")
                else:
                    genres.append("Unknown")

        if genrename:
            # "Unescaping" the first parenthesis
            if genrename.startswith("(("):
                genrename = genrename[1:]
            if genrename not in genres:
                genres.append(genrename)

        return genres

    @genres.setter
    def genres(self, value: list[str] | str):
        if isinstance(value, str):
            value = [value]
        self.text = "".join(self._encode_genre(g) for g in value)

    def _encode_genre(self, genre: str) -> str:
        try:
            return "(%d)" % self.GENRES.index(genre)
        except ValueError:
            if genre.startswith("("):
                return "(" + genre
            return genre

    @override
    def _pprint(self) -> str:
        return " / ".join(self.genres)


class TCOP(TextFrame):
    "Copyright (c)"


class TDAT(TextFrame):
    "Date of recording (DDMM)"


class TDLY(NumericTextFrame):
    "Audio Delay (ms)"


class TENC(TextFrame):
    "Encoder"


class TEXT(TextFrame):
    "Lyricist"


class TFLT(TextFrame):
    "File type"


class TIME(TextFrame):
    "Time of recording (HHMM)"


class TIT1(TextFrame):
    "Content group description"


class TIT2(TextFrame):
    "Title"


class TIT3(TextFrame):
    "Subtitle/Description refinement"


class TKEY(TextFrame):
    "Starting Key"


class TLAN(TextFrame):
    "Audio Languages"


class TLEN(NumericTextFrame):
    "Audio Length (ms)"


class TMED(TextFrame):
    "Source Media Type"


class TOAL(TextFrame):
    "Original Album"


class TOFN(TextFrame):
    "Original Filename"


class TOLY(TextFrame):
    "Original Lyricist"


class TOPE(TextFrame):
    "Original Artist/Performer"


class TORY(NumericTextFrame):
    "Original Release Year"


class TOWN(TextFrame):
    "Owner/Licensee"


class TPE1(TextFrame):
    "Lead Artist/Performer/Soloist/Group"


class TPE2(TextFrame):
    "Band/Orchestra/Accompaniment"


class TPE3(TextFrame):
    "Conductor"


class TPE4(TextFrame):
    "Interpreter/Remixer/Modifier"


class TPOS(NumericPartTextFrame):
    "Part of set"


class TPUB(TextFrame):
    "Publisher"


class TRCK(NumericPartTextFrame):
    "Track Number"


class TRDA(TextFrame):
    "Recording Dates"


class TRSN(TextFrame):
    "Internet Radio Station Name"


class TRSO(TextFrame):
    "Internet Radio Station Owner"


class TSIZ(NumericTextFrame):
    "Size of audio data (bytes)"


class TSRC(TextFrame):
    "International Standard Recording Code (ISRC)"


class TSSE(TextFrame):
    "Encoder settings"


class TYER(NumericTextFrame):
    "Year of recording"


class TXXX(TextFrame):
    """User-defined text data.

    TXXX frames have a 'desc' attribute which is set to any Unicode
    value (though the encoding of the text and the description must be
    the same). Many taggers use this frame to store freeform keys.
    """

    desc: str = ""

    _framespec = [
        EncodingSpec('encoding'),
        EncodedTextSpec('desc'),
        EncodedTextSpec('text'),
    ]

    @override
    def _pprint(self):
        return f"{self.desc}={self.text}"


class WCOM(UrlFrame):
    "Commercial Information"


class WCOP(UrlFrame):
    "Copyright Information"


class WOAF(UrlFrame):
    "Official File Information"


class WOAR(UrlFrame):
    "Official Artist/Performer Information"


class WOAS(UrlFrame):
    "Official Source Information"


class WORS(UrlFrame):
    "Official Internet Radio Information"


class WPAY(UrlFrame):
    "Payment Information"


class WPUB(UrlFrame):
    "Official Publisher Information"


class WXXX(UrlFrame):
    """User-defined URL data.

    Like TXXX, this has a freeform description associated with it.
    """

    encoding: Encoding = Encoding.UTF16
    desc: str = ""

    _framespec = [
        EncodingSpec('encoding', default=Encoding.UTF16),
        EncodedTextSpec('desc'),
        Latin1TextSpec('url'),
    ]


class BinaryFrame(Frame):
    """Binary data

    The 'data' attribute contains the raw byte string.
    """

    data: bytes = b""

    _framespec = [
        BinaryDataSpec('data'),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, bytes):
            return self.data == other
        elif isinstance(other, BinaryFrame):
            return (self.FrameID, self.data) == (other.FrameID, other.data)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return f"{len(self.data)} bytes"


class MCDI(BinaryFrame):
    "Binary dump of CD's TOC"


class UFID(Frame):
    """Unique file identifier.

    Attributes:

    * owner -- format/type of identifier
    * data -- identifier
    """

    owner: str = ""
    data: bytes = b""

    _framespec = [
        Latin1TextSpec('owner'),
        BinaryDataSpec('data'),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, UFID):
            return (self.owner, self.data) == (other.owner, other.data)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return f"{self.owner}={self.data!r}"


class PRIV(UFID):
    """Private frame."""

    @override
    def _pprint(self):
        return f"{self.owner}=[{len(self.data)} bytes]"


class USLT(Frame):
    """Unsynchronised lyrics/text transcription.

    Lyrics have a three letter ISO language code ('lang'), a
    description ('desc'), and a block of plain text ('text').
    """

    encoding: Encoding = Encoding.UTF16
    lang: str = "XXX"
    desc: str = ""
    text: str = ""

    _framespec = [
        EncodingSpec('encoding', default=Encoding.UTF16),
        StringSpec('lang', length=3, default="XXX"),
        EncodedTextSpec('desc'),
        EncodedTextSpec('text'),
    ]

    def __bytes__(self):
        return self.text.encode('utf-8')

    @override
    def __str__(self):
        return self.text

    @override
    def __eq__(self, other: object):
        if isinstance(other, str):
            return self.text == other
        elif isinstance(other, USLT):
            return (self.FrameID, self.lang, self.desc, self.text) == \
                (other.FrameID, other.lang, other.desc, other.text)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return f"{self.desc}={self.lang}={self.text}"


class COMM(USLT):
    """User comment.

    User comment frames have a description, like TXXX, and also a three
    letter ISO language code in the 'lang' attribute.
    """


class SYLT(Frame):
    """Synchronised lyrics/text.

    'text' is a list of (fragment, timestamp) pairs. Players expect them
    in ascending timestamp order, but they are written as given.
    'format' is 1 for MPEG frames and 2 for milliseconds.
    """

    FORMAT_FRAMES: Final = 1
    FORMAT_MILLISECONDS: Final = 2

    encoding: Encoding = Encoding.UTF16
    lang: str = "XXX"
    format: int = FORMAT_MILLISECONDS
    type: int = 1
    desc: str = ""
    text: list[tuple[str, int]]

    _framespec = [
        EncodingSpec('encoding', default=Encoding.UTF16),
        StringSpec('lang', length=3, default="XXX"),
        ByteSpec('format', default=FORMAT_MILLISECONDS),
        ByteSpec('type', default=1),
        EncodedTextSpec('desc'),
        SynchronizedTextSpec('text'),
    ]

    @override
    def _pprint(self):
        return str(self)

    @override
    def __eq__(self, other: object):
        if isinstance(other, str):
            return str(self) == other
        elif isinstance(other, SYLT):
            return (self.lang, self.desc, self.text) == \
                (other.lang, other.desc, other.text)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def __str__(self):
        unit = 'fr' if self.format == self.FORMAT_FRAMES else 'ms'
        return "\n".join(f"[{time}{unit}]: {text}"
                         for (text, time) in self.text)

    def __bytes__(self):
        return str(self).encode("utf-8")


class EQUA(Frame):
    """Equalisation.

    Attributes:

    * bits -- number of bits used for each adjustment
    * adjustments -- list of (frequency in Hz, adjustment) pairs,
      negative adjustments lower the volume
    """

    bits: int = 16
    adjustments: list[tuple[int, int]]

    _framespec = [
        ByteSpec('bits', default=16),
        EqualizationSpec('adjustments'),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, EQUA):
            return self.adjustments == other.adjustments
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return ", ".join(f"{freq}Hz={adj:+d}"
                         for (freq, adj) in self.adjustments)


class RVAD(Frame):
    """Relative volume adjustment

    'adjustments' holds the right and left volume change, then the
    right and left peaks, then optionally the back right/left, center
    and bass changes and peaks.
    """

    adjustments: list[int]

    _framespec = [
        RVASpec("adjustments"),
    ]

    __hash__: Final = Frame.__hash__

    @override
    def __eq__(self, other: object):
        if not isinstance(other, RVAD):
            return NotImplemented
        return self.adjustments == other.adjustments

    @override
    def _pprint(self):
        return " ".join(f"{v:+d}" for v in self.adjustments)


class APIC(Frame):
    """Attached (or linked) Picture.

    Attributes:

    * encoding -- text encoding for the description
    * mime -- a MIME type (e.g. image/jpeg) or '-->' if the data is a URI
    * type -- the source of the image (3 is the album front cover)
    * desc -- a text description of the image
    * data -- raw image data, as a byte string
    """

    encoding: Encoding = Encoding.UTF16
    mime: str = ""
    type: PictureType = PictureType.COVER_FRONT
    desc: str = ""
    data: bytes = b""

    _framespec = [
        EncodingSpec('encoding'),
        Latin1TextSpec('mime'),
        PictureTypeSpec('type'),
        EncodedTextSpec('desc'),
        BinaryDataSpec('data'),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, bytes):
            return self.data == other
        elif isinstance(other, APIC):
            return (self.type, self.desc, self.data) == \
                (other.type, other.desc, other.data)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return (f"{self.type._pprint()}, {self.desc} "
                f"({self.mime}, {len(self.data)} bytes)")


class PCNT(Frame):
    """Play counter.

    The 'count' attribute contains the (recorded) number of times this
    file has been played.

    This frame is basically obsoleted by POPM.
    """

    count: int = 0

    _framespec = [
        IntegerSpec('count', default=0),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, int):
            return self.count == other
        elif isinstance(other, PCNT):
            return self.count == other.count
        return NotImplemented

    __hash__: Final = Frame.__hash__

    def __pos__(self):
        return self.count

    @override
    def _pprint(self):
        return str(self.count)


class POPM(Frame):
    """Popularimeter.

    This frame keys a rating (out of 255) and a play count to an email
    address.

    Attributes:

    * email -- email this POPM frame is for
    * rating -- 0 for unrated, otherwise 1 (worst) to 255 (best)
    * count -- number of times the files has been played (optional)
    """

    email: str = ""
    rating: int = 0
    count: int

    _framespec = [
        Latin1TextSpec('email'),
        ByteSpec('rating', default=0),
    ]

    _optionalspec = [
        IntegerSpec('count', default=0),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, int):
            return self.rating == other
        elif isinstance(other, POPM):
            return (self.email, self.rating) == (other.email, other.rating)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    def __pos__(self):
        return self.rating

    @override
    def _pprint(self):
        return "{}={!r} {!r}/255".format(
            self.email, getattr(self, 'count', None), self.rating)


class GEOB(Frame):
    """General Encapsulated Object.

    A blob of binary data, that is not a picture (those go in APIC).

    Attributes:

    * encoding -- encoding of the description
    * mime -- MIME type of the data or '-->' if the data is a URI
    * filename -- suggested filename if extracted
    * desc -- text description of the data
    * data -- raw data, as a byte string
    """

    encoding: Encoding = Encoding.UTF16
    mime: str = ""
    filename: str = ""
    desc: str = ""
    data: bytes = b""

    _framespec = [
        EncodingSpec('encoding'),
        Latin1TextSpec('mime'),
        EncodedTextSpec('filename'),
        EncodedTextSpec('desc'),
        BinaryDataSpec('data'),
    ]

    @override
    def __eq__(self, other: object):
        if isinstance(other, bytes):
            return self.data == other
        elif isinstance(other, GEOB):
            return (self.desc, self.data) == (other.desc, other.data)
        return NotImplemented

    __hash__: Final = Frame.__hash__

    @override
    def _pprint(self):
        return f"{self.desc} ({self.mime}, {len(self.data)} bytes)"


Frames: dict[str, type[Frame]] = {}
"""All supported ID3v2.3 frames, keyed by frame name."""


k, v = None, None
for k, v in globals().items():
    if isinstance(v, type) and issubclass(v, Frame) and len(k) == 4:
        v.__module__ = "songtag.id3"
        Frames[k] = v

try:
    del k
    del v
except NameError:
    pass
