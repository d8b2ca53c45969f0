# Copyright (C) 2006  Joe Wreschnig
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

"""MP3 files and their ID3v2.3 tag.

A local file always ends up with a tag: if it has none, an ID3v1 tag at
the end of the file is converted and saved right away. Files loaded from
a URL are read only.
"""

import logging
from io import BytesIO

import requests

from songtag import FileType
from songtag._util import ReadOnlyError, convert_error, get_size, \
    is_fileobj, loadfile, read_full
from songtag.id3 import ID3, TSIZ, Encoding, ID3Header, ID3IOError, \
    ID3NoHeaderError, error, find_id3v1, seed_frames

__all__ = ["MP3", "MP3Info", "Open"]


logger = logging.getLogger(__name__)


class MP3Info(object):
    """MP3Info()

    Where the tag ends and the audio data starts.

    Attributes:
        file_size (`int`): size of the whole file in bytes, `None` if
            unknown (a URL without Content-Length)
        tag_size (`int`): bytes taken up by the ID3v2 tag, 0 if there is
            none
    """

    def __init__(self, file_size, tag_size):
        self.file_size = file_size
        self.tag_size = tag_size

    @property
    def audio_size(self):
        """Bytes following the tag, `None` if unknown"""

        if self.file_size is None:
            return None
        return self.file_size - self.tag_size

    def pprint(self):
        if self.file_size is None:
            return "MPEG audio, unknown size"
        return "MPEG audio, %d bytes" % self.audio_size


class MP3(FileType):
    """MP3(filething, seed_v1=True)

    An MPEG audio file with an ID3v2.3 tag.

    Arguments:
        filething (filething)
        seed_v1 (bool): if the file has no ID3v2 tag, copy the fields of
            an ID3v1 tag into a new one and save it

    Saving stores the size of the audio data in a TSIZ frame.

    Attributes:
        info (`MP3Info`)
        tags (`songtag.id3.ID3`): the live tag. For read only files it can
            still be changed directly, but `save` refuses to write it.
        read_only (bool): if the file came from a URL
        url (`str`): where the file came from, or `None`
    """

    __module__ = "songtag.mp3"

    read_only = False
    url = None

    def load(self, filething, seed_v1=True):
        seeded = self._load(filething, seed_v1)
        if seeded:
            self.save(filething if is_fileobj(filething) else None)

    @convert_error(IOError, ID3IOError)
    @loadfile()
    def _load(self, filething, seed_v1):
        fileobj = filething.fileobj
        self.filename = filething.filename

        try:
            self.tags = ID3(fileobj)
        except ID3NoHeaderError:
            logger.debug("%r: no ID3v2 tag", filething.name)
            tag_size = 0
            self.tags = ID3()
            self.tags.padding = 0
        else:
            tag_size = self.tags.size

        self.info = MP3Info(get_size(fileobj), tag_size)

        if tag_size or not seed_v1:
            return False

        v1 = find_id3v1(fileobj)
        if v1 is None:
            return False

        for frame in seed_frames(v1):
            self.tags.add_frame(frame)
        logger.info("%r: converted ID3v1 tag to ID3v2.3", filething.name)
        return True

    @classmethod
    @convert_error(IOError, ID3IOError)
    def from_url(cls, url, timeout=30):
        """Reads the tag at the start of a remote file.

        Only the tag is downloaded. The result is read only: its mutators
        and `save` raise `songtag.ReadOnlyError`.

        Raises:
            songtag.id3.ID3IOError: if the request fails
        """

        self = cls()
        self.url = url
        self.read_only = True

        logger.debug("fetching tag from %s", url)
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            head = response.raw.read(10)
            header = ID3Header()
            try:
                # the extended header counts towards header.size
                header._parse_fixed(head, url)
            except ID3NoHeaderError:
                tag_size = 0
                self.tags = ID3()
                self.tags.padding = 0
            else:
                body = read_full(response.raw, header.size)
                self.tags = ID3(BytesIO(head + body))
                tag_size = self.tags.size

        file_size = int(length) if length is not None else None
        self.info = MP3Info(file_size, tag_size)
        return self

    def _check_writable(self):
        if self.read_only:
            raise ReadOnlyError(f"{self.url} is read only")

    def add_tags(self):
        raise error("an ID3 tag already exists")

    def add_frame(self, kind):
        """See `songtag.id3.ID3Tags.add_frame`"""

        self._check_writable()
        return self.tags.add_frame(kind)

    def get_frame(self, kind):
        return self.tags.get_frame(kind)

    def get_frames(self, kind):
        return self.tags.get_frames(kind)

    def remove_frame(self, kind):
        self._check_writable()
        return self.tags.remove_frame(kind)

    def remove_frames(self, kind):
        self._check_writable()
        return self.tags.remove_frames(kind)

    def discard_invalid_frames(self):
        self._check_writable()
        return self.tags.discard_invalid_frames()

    def has_errors(self):
        """If frames were found that couldn't be parsed"""

        return bool(self.tags.invalid_frames)

    @property
    def errors(self):
        """Diagnostics for the frames which couldn't be parsed"""

        return [f"{frame.FrameID}: {frame.reason}"
                for frame in self.tags.invalid_frames]

    def is_dirty(self):
        return self.tags.is_dirty()

    def _update_size_frame(self, audio_size):
        """Stores the audio size in TSIZ, replacing any stale value"""

        text = str(audio_size)
        current = self.tags.get_frame("TSIZ")
        if current is not None and current.text == text:
            return
        self.tags.remove_frames("TSIZ")
        self.tags.add_frame(TSIZ(encoding=Encoding.LATIN1, text=text))

    def save(self, filething=None, padding=None):
        """Save the tag.

        Raises:
            songtag.ReadOnlyError: for files loaded from a URL
            songtag.id3.error: if saving failed
        """

        self._check_writable()
        if filething is None:
            filething = self.filename
        audio_size = self.info.audio_size
        self._update_size_frame(audio_size)
        self.tags.save(filething, padding=padding)
        self.info = MP3Info(self.tags.size + audio_size, self.tags.size)


Open = MP3
