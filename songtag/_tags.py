# Copyright (C) 2005  Michael Urman
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

from typing import Callable


DEFAULT_PADDING = 2048
"""Zero bytes reserved after the frames whenever the file gets rewritten"""


class PaddingInfo(object):
    """Abstract padding information object.

    This will be passed to the callback function that can be used
    for saving tags.

    ::

        def my_callback(info: PaddingInfo):
            return info.get_default_padding()

    The callback should return the amount of padding to use (>= 0) based on
    the content size and the padding of the file after saving.

    The default implementation can be accessed using the
    :meth:`get_default_padding` method in the callback.
    """

    padding = 0
    """The amount of padding left after saving in bytes (can be negative if
    more data needs to be added as padding is available)
    """

    size = 0
    """The amount of data following the padding"""

    def __init__(self, padding, size):
        self.padding = padding
        self.size = size

    def get_default_padding(self):
        """Keeps the existing padding if the new tag still fits, otherwise
        reserves `DEFAULT_PADDING` bytes for the rewritten file.

        :return: Amount of padding after saving
        :rtype: int
        """

        if self.padding >= 0:
            # enough padding left, patch in place
            return self.padding
        else:
            # not enough padding, the file gets rewritten
            return DEFAULT_PADDING

    def _get_padding(self, user_func):
        if user_func is None:
            return self.get_default_padding()
        else:
            return user_func(self)

    def __repr__(self):
        return "<%s size=%d padding=%d>" % (
            type(self).__name__, self.size, self.padding)


PaddingFunction = Callable[[PaddingInfo], int]


class Metadata(object):
    """An abstract tag object.

    Metadata is the base class for the tag objects in songtag.
    """

    __module__ = "songtag"

    def __init__(self, *args, **kwargs):
        if args or kwargs:
            self.load(*args, **kwargs)

    def load(self, *args, **kwargs):
        raise NotImplementedError

    def save(self, filething=None, **kwargs):
        """Save changes to a file."""

        raise NotImplementedError
