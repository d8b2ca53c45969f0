# Copyright (C) 2005  Michael Urman
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

"""songtag reads and writes ID3v2.3 tags in MP3 files.

::

    from songtag.mp3 import MP3
    song = MP3("song.mp3")
    title = song.get_frame("TIT2")

The tag lives at the start of the file and is updated in place whenever
its padding can absorb the change; otherwise the file is rewritten
through a temporary copy.
"""

import logging

from songtag._util import SongtagError, ReadOnlyError
from songtag._tags import Metadata, PaddingFunction, PaddingInfo


version = (0, 3, 0)
"""Version tuple."""

version_string = ".".join(map(str, version))
"""Version string."""

logging.getLogger(__name__).addHandler(logging.NullHandler())


class FileType(object):
    """An abstract object wrapping tags and stream information.

    Attributes:
        info: stream information, if any
        tags (`Metadata`): metadata tags, if any, otherwise `None`
        filename (`str`): the file the object was loaded from
    """

    __module__ = "songtag"

    info = None
    tags = None
    filename = None

    def __init__(self, *args, **kwargs):
        if not args and not kwargs:
            return
        self.load(*args, **kwargs)

    def load(self, *args, **kwargs):
        raise NotImplementedError

    def add_tags(self):
        """Adds new tags to the file.

        Raises:
            SongtagError:
                if tags already exist or adding is not possible.
        """

        raise NotImplementedError

    def save(self, **kwargs):
        """Save metadata tags.

        Raises:
            SongtagError: if saving fails
        """

        if self.tags is None:
            raise SongtagError("no tags in file")
        return self.tags.save(self.filename, **kwargs)

    def pprint(self):
        """
        Returns:
            str: stream information and frame values, one per line.
        """

        stream = "%s (%s)" % (self.info.pprint(), type(self).__name__)
        try:
            tags = self.tags.pprint()
        except AttributeError:
            return stream
        else:
            return stream + ((tags and "\n" + tags) or "")


__all__ = ["SongtagError", "ReadOnlyError", "FileType", "Metadata",
           "PaddingInfo", "PaddingFunction", "version", "version_string"]
