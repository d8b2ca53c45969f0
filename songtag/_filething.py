# Copyright (C) 2005  Michael Urman
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from typing import BinaryIO, NamedTuple


class FileThing(NamedTuple):
    """What `loadfile` hands to the wrapped function.

    filename is None if the source is not a filename.
    name is a filename which can be used in messages.
    """
    fileobj: BinaryIO
    filename: str | None
    name: str | None
