# Copyright 2006 Joe Wreschnig
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.

"""Utility classes for songtag.

You should not rely on the interfaces here being stable. They are
intended for internal use in songtag only.
"""

import os
import codecs
import logging
from contextlib import contextmanager
from functools import wraps

from ._filething import FileThing


logger = logging.getLogger(__name__)


class SongtagError(Exception):
    """Base class for all custom exceptions in songtag"""

    __module__ = "songtag"


class ReadOnlyError(SongtagError, RuntimeError):
    """A mutation was attempted on a tag that can't be written back,
    for example one loaded from a URL.
    """

    __module__ = "songtag"


def convert_error(exc_src, exc_dest):
    """A decorator for reraising exceptions with a different type.
    Mostly useful for IOError.

    Args:
        exc_src (type): The source exception type
        exc_dest (type): The target exception type.
    """

    def wrap(func):

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exc_dest:
                raise
            except exc_src as err:
                raise exc_dest(err) from err

        return wrapper

    return wrap


def bchr(value):
    return bytes((value,))


def is_fileobj(fileobj):
    """Returns:
        bool: if an argument passed ot loadfile should be handled as a
            file object
    """

    return not (isinstance(fileobj, (str, bytes)) or
                hasattr(fileobj, "__fspath__"))


def verify_fileobj(fileobj, writable=False):
    """Verifies that the passed fileobj is a file like object which
    we can use.

    Raises:
        ValueError: In case the object is not a file object that is readable
            (or writable if required) or is not opened in bytes mode.
    """

    try:
        data = fileobj.read(0)
    except Exception:
        if not hasattr(fileobj, "read"):
            raise ValueError("%r not a valid file object" % fileobj)
        raise ValueError("Can't read from file object %r" % fileobj)

    if not isinstance(data, bytes):
        raise ValueError(
            "file object %r not opened in binary mode" % fileobj)

    if writable:
        try:
            fileobj.write(b"")
        except Exception:
            if not hasattr(fileobj, "write"):
                raise ValueError("%r not a valid file object" % fileobj)
            raise ValueError("Can't write to file object %r" % fileobj)


@contextmanager
def _openfile(instance, filething, writable, create):
    """yields a FileThing

    Args:
        filething: Either a file name, a file object or None
        writable (bool): if the file should be opened
        create (bool): if the file should be created if it doesn't exist.
            implies writable
    Raises:
        SongtagError: In case opening the file failed
        TypeError: in case neither a file name or a file object is passed
    """

    if filething is None and instance is not None:
        filething = getattr(instance, "filename", None)
        if filething is None:
            raise TypeError("Missing filename or fileobj argument")

    if filething is None:
        raise TypeError("Missing filename or fileobj argument")

    if is_fileobj(filething):
        fileobj = filething
        verify_fileobj(fileobj, writable=writable)
        yield FileThing(fileobj, None, getattr(fileobj, "name", None))
        return

    filename = os.fspath(filething)
    if isinstance(filename, bytes):
        filename = os.fsdecode(filename)

    if writable:
        try:
            fileobj = open(filename, "rb+")
        except FileNotFoundError:
            if not create:
                raise
            fileobj = open(filename, "wb+")
    else:
        fileobj = open(filename, "rb")

    try:
        yield FileThing(fileobj, filename, filename)
    finally:
        try:
            fileobj.close()
        except OSError as e:
            if writable:
                raise
            logger.warning("closing %r failed: %s", filename, e)


def loadfile(method=True, writable=False, create=False):
    """A decorator for functions taking a `filething` as a first argument.

    Passes a FileThing instance as the first argument to the wrapped function.

    Args:
        method (bool): If the wrapped functions is a method
        writable (bool): If a filename is passed opens the file readwrite, if
            passed a file object verifies that it is writable.
        create (bool): If passed a filename that does not exist will create
            a new empty file.
    """

    def wrap(func):

        if method:
            @wraps(func)
            def wrapper(self, filething=None, *args, **kwargs):
                with _openfile(self, filething, writable, create) as h:
                    return func(self, h, *args, **kwargs)
        else:
            @wraps(func)
            def wrapper(filething, *args, **kwargs):
                with _openfile(None, filething, writable, create) as h:
                    return func(h, *args, **kwargs)

        return wrapper

    return wrap


def read_full(fileobj, size):
    """Like fileobj.read but raises IOError if not all requested data is
    returned.

    If you want to distinguish IOError and the EOS case, better handle
    the error yourself instead of using this.

    Args:
        fileobj (fileobj)
        size (int): amount of bytes to read
    Raises:
        IOError: In case read fails or not enough data is read
    """

    if size < 0:
        raise ValueError("size must not be negative")

    data = fileobj.read(size)
    if len(data) != size:
        raise IOError
    return data


def get_size(fileobj):
    """Returns the size of the file.
    The position when passed in will be preserved if no error occurs.

    Args:
        fileobj (fileobj)
    Returns:
        int: The size of the file
    Raises:
        IOError
    """

    old_pos = fileobj.tell()
    try:
        fileobj.seek(0, 2)
        return fileobj.tell()
    finally:
        fileobj.seek(old_pos, 0)


def copy_bytes(src, dst, BUFFER_SIZE=2**16):
    """Copy everything from the current position of src to dst.

    Returns:
        int: the number of bytes copied
    Raises:
        IOError
    """

    copied = 0
    while True:
        buf = src.read(BUFFER_SIZE)
        if not buf:
            break
        dst.write(buf)
        copied += len(buf)
    return copied


def encode_endian(text, encoding, errors="strict"):
    """Like text.encode(encoding) but always writes UTF-16 little endian
    with a BOM instead of the system byte order.

    Args:
        text (text)
        encoding (str)
        errors (str)
    Returns:
        bytes
    Raises:
        UnicodeEncodeError
        LookupError
    """

    encoding = codecs.lookup(encoding).name

    if encoding == "utf-16":
        return codecs.BOM_UTF16_LE + text.encode("utf-16-le", errors)
    else:
        return text.encode(encoding, errors)


def decode_utf16(data):
    """UTF-16 with an optional BOM, little endian if there is none."""

    if data[:2] in (codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE):
        return data.decode("utf-16")
    return data.decode("utf-16-le")


def decode_terminated(data, encoding, strict=True):
    """Returns the decoded data until the first NULL terminator
    and all data after it.

    For UTF-16 the terminator is two zero bytes starting at an even
    offset, a single zero byte inside a character doesn't end the string.

    In case the data can't be decoded raises UnicodeError.
    In case the encoding is not found raises LookupError.
    In case the data isn't null terminated (even if it is encoded correctly)
    raises ValueError except if strict is False, then the decoded string
    will be returned anyway.
    """

    codec_info = codecs.lookup(encoding)

    # normalize encoding name so we can compare by name
    encoding = codec_info.name

    if encoding.startswith("utf-16"):
        index = 0
        while True:
            index = data.find(b"\x00\x00", index)
            if index == -1 or index % 2 == 0:
                break
            index += 1
        if index == -1:
            if len(data) % 2:
                raise UnicodeDecodeError(
                    encoding, data, len(data) - 1, len(data),
                    "truncated data")
            res = decode_utf16(data), b""
            if strict:
                raise ValueError("not null terminated")
            return res
        return decode_utf16(data[:index]), data[index + 2:]

    index = data.find(b"\x00")
    if index == -1:
        # make sure we raise UnicodeError first
        res = data.decode(encoding), b""
        if strict:
            raise ValueError("not null terminated")
        return res
    return data[:index].decode(encoding), data[index + 1:]
