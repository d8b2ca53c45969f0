# Copyright (C) 2005  Michael Urman
#               2006  Lukas Lalinsky
#               2013  Christoph Reiter
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
import os
import shutil
from typing import BinaryIO, NamedTuple

from songtag._filething import FileThing
from songtag._tags import Metadata, PaddingFunction, PaddingInfo
from songtag._util import (
    convert_error,
    copy_bytes,
    get_size,
    loadfile,
    read_full,
)
from ._frames import Frame
from ._tags import ID3Header, ID3Tags
from ._util import ID3IOError, ID3NoHeaderError, error


logger = logging.getLogger(__name__)

BUFFER_SIZE = 2 ** 16
"""Chunk size used when copying the audio data into a new file"""

TEMP_SUFFIX = ".tmp"
"""Appended to the file name for the copy written during a rewrite"""


class SavePlan(NamedTuple):
    """How a tag gets written.

    Attributes:
        in_place (bool): overwrite the old tag region, the audio data
            stays where it is. Otherwise the file gets rewritten.
        padding (int): padding to write after the frames
    """

    in_place: bool
    padding: int


def plan_save(old_size: int, needed: int, trailing_size: int,
              pad_func: PaddingFunction | None = None) -> SavePlan:
    """Decides between patching the file in place and rewriting it.

    Args:
        old_size (int): bytes taken up by the tag in the file, 0 if there
            is none
        needed (int): bytes the new tag takes up without padding
        trailing_size (int): bytes of audio data after the tag
        pad_func (`songtag.PaddingFunction`): decides the padding, by
            default existing padding is kept if the tag still fits
    Raises:
        songtag.id3.error: if the padding function returned a negative
            value
    """

    info = PaddingInfo(old_size - needed, trailing_size)
    padding = info._get_padding(pad_func)
    if padding < 0:
        raise error("invalid padding")
    return SavePlan(needed + padding == old_size, padding)


def _write_rewrite(src: BinaryIO, dst: BinaryIO, data: bytes,
                   old_size: int, audio_size: int) -> None:
    """Writes the new tag to dst followed by everything in src after the
    old tag.

    Raises:
        ID3IOError: if not exactly audio_size bytes got copied
    """

    dst.write(data)
    src.seek(old_size, 0)
    copied = copy_bytes(src, dst, BUFFER_SIZE)
    if copied != audio_size:
        raise ID3IOError(
            f"copied {copied} bytes of audio data, expected {audio_size}")


def _rewrite_file(filething: FileThing, data: bytes, old_size: int,
                  audio_size: int) -> None:
    filename = filething.filename
    temp = filename + TEMP_SUFFIX

    try:
        with open(temp, "wb") as dst:
            _write_rewrite(filething.fileobj, dst, data, old_size,
                           audio_size)
        shutil.copymode(filename, temp)
    except Exception:
        try:
            os.remove(temp)
        except OSError as e:
            logger.warning("removing %r failed: %s", temp, e)
        raise

    # the old file has to be closed before it can be replaced
    filething.fileobj.close()

    try:
        os.replace(temp, filename)
    except OSError as e:
        raise ID3IOError(
            f"replacing {filename!r} failed, the new file is kept at "
            f"{temp!r}: {e}") from e


class ID3(ID3Tags, Metadata):
    """ID3(filething=None)

    A file with an ID3v2.3 tag.

    If any arguments are given, the :meth:`load` is called with them. If no
    arguments are given then an empty `ID3` object is created.

    ::

        ID3("foo.mp3")
        # same as
        t = ID3()
        t.load("foo.mp3")

    Arguments:
        filething (filething): or `None`

    Attributes:
        version (tuple[int]): ID3 tag version as a tuple
        size (int): the total size of the ID3 tag, including the header
    """

    __module__ = "songtag.id3"

    filename: str | None = None

    @property
    def version(self) -> tuple[int, int, int]:
        return self.header.version

    @convert_error(IOError, ID3IOError)
    @loadfile()
    def load(self, filething: FileThing,
             known_frames: dict[str, type[Frame]] | None = None):
        """Load tags from a filename.

        Args:
            filething (filething): filename or file object to load tag
                data from
            known_frames (Dict[`str`, `Frame`]): dict mapping frame
                IDs to Frame objects

        Raises:
            ID3NoHeaderError: if the file doesn't start with an ID3v2.3 tag
            ID3IOError: if reading failed or the tag is truncated
        """

        fileobj = filething.fileobj
        self.filename = filething.filename

        header = ID3Header(fileobj)
        size = header.size - header.ext_read_length
        if size < 0:
            raise ID3IOError("extended header larger than the tag")
        data = read_full(fileobj, size)
        self._read(header, data, known_frames)
        logger.debug("loaded %d frames (%d invalid) from %r",
                     len(self.frames), len(self.invalid_frames),
                     filething.name)

    @convert_error(IOError, ID3IOError)
    @loadfile(writable=True, create=True)
    def save(self, filething: FileThing | None = None,
             padding: PaddingFunction | None = None):
        """save(filething=None, padding=None)

        Save changes to a file.

        If the new tag fits into the space of the old one, the leading
        part of the file is overwritten and the audio data stays in place.
        Otherwise the tag and the audio data are written to
        ``<filename>.tmp`` which then replaces the file.

        Args:
            filething (filething):
                Filename to save the tag to. If no filename is given,
                the one most recently loaded is used.
            padding (:obj:`songtag.PaddingFunction`)

        Raises:
            songtag.SongtagError
        """

        assert filething is not None
        f = filething.fileobj

        f.seek(0, 0)
        try:
            old_size = 10 + ID3Header(f).size
        except ID3NoHeaderError:
            old_size = 0

        audio_size = get_size(f) - old_size
        if audio_size < 0:
            raise ID3IOError("tag extends past the end of the file")

        needed = 10 + self.header.ext_length + \
            sum(frame.size for frame in self.frames)
        plan = plan_save(old_size, needed, audio_size, padding)
        self.padding = plan.padding
        data = self.flush()
        assert len(data) == needed + plan.padding

        if plan.in_place:
            logger.debug("writing %d byte tag in place", len(data))
            f.seek(0, 0)
            f.write(data)
            f.flush()
        elif filething.filename is not None:
            logger.debug("rewriting %r with a %d byte tag",
                         filething.filename, len(data))
            _rewrite_file(filething, data, old_size, audio_size)
        else:
            f.seek(old_size, 0)
            audio = read_full(f, audio_size)
            f.seek(0, 0)
            f.write(data)
            f.write(audio)
            f.truncate()
            f.flush()

        if filething.filename is not None:
            self.filename = filething.filename
