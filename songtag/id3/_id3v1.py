# Copyright 2005 Michael Urman
# Copyright 2016 Christoph Reiter
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
from typing import BinaryIO, NamedTuple

from songtag._constants import GENRES
from songtag._util import get_size
from ._frames import COMM, TALB, TCON, TIT2, TPE2, TRCK, TYER, Frame
from ._specs import Encoding


logger = logging.getLogger(__name__)


class ID3v1(NamedTuple):
    """The fields of a 128 byte ID3v1 tag.

    Text fields are stripped, genre and track are unsigned byte values.
    track is 0 for ID3v1.0 tags.
    """

    title: str
    artist: str
    album: str
    year: str
    comment: str
    track: int
    genre: int


def _fix(data: bytes) -> str:
    return data.split(b"\x00")[0].strip().decode("latin1")


def ParseID3v1(data: bytes) -> ID3v1 | None:
    """Parse an ID3v1 tag, returning an `ID3v1` or None if the data
    isn't one.
    """

    if len(data) != 128 or not data.startswith(b"TAG"):
        return None

    title = _fix(data[3:33])
    artist = _fix(data[33:63])
    album = _fix(data[63:93])
    year = _fix(data[93:97])
    genre = data[127]

    if data[125] == 0:
        # ID3v1.1, the last byte of the comment is the track
        comment = _fix(data[97:125])
        track = data[126]
    else:
        comment = _fix(data[97:127])
        track = 0

    return ID3v1(title, artist, album, year, comment, track, genre)


def find_id3v1(fileobj: BinaryIO) -> ID3v1 | None:
    """Returns the ID3v1 tag at the end of the file or None.

    The file position is undefined afterwards.

    Raises:
        IOError
    """

    size = get_size(fileobj)
    if size < 128:
        return None
    fileobj.seek(size - 128, 0)
    return ParseID3v1(fileobj.read(128))


def seed_frames(v1: ID3v1) -> list[Frame]:
    """ID3v2.3 frames for the non-empty fields of an ID3v1 tag."""

    frames: list[Frame] = []

    def text(kind, value):
        if value:
            frames.append(kind(encoding=Encoding.LATIN1, text=value))

    text(TIT2, v1.title)
    text(TPE2, v1.artist)
    text(TALB, v1.album)

    if len(v1.year) == 4:
        text(TYER, v1.year)
    elif v1.year:
        logger.warning("ignoring ID3v1 year %r", v1.year)

    if v1.comment:
        frames.append(COMM(encoding=Encoding.LATIN1, lang="eng", desc="",
                           text=v1.comment))

    if v1.track:
        text(TRCK, str(v1.track))

    if v1.genre < len(GENRES):
        text(TCON, "(%d)" % v1.genre)
    else:
        logger.debug("no ID3v1 genre for index %d", v1.genre)

    return frames
