import os
import struct
import zlib
from io import BytesIO
from unittest import mock

from songtag import PaddingInfo
from songtag.id3 import (
    ID3, COMM, Encoding, ID3Header, ID3IOError,
    ID3NoHeaderError, ID3Tags, SavePlan, TEMP_SUFFIX, TIT2, TPE1, TRCK,
    error, plan_save, read_frames,
)

from tests import (
    AUDIO, TestCase, get_temp_file, make_ext_tag, make_frame, make_tag,
)


TITLE = make_frame(b"TIT2", b"\x00Hells Bells\x00")
ARTIST = make_frame(b"TPE1", b"\x00AC/DC\x00")


class TID3Header(TestCase):

    def test_parse(self):
        header = ID3Header(BytesIO(b"ID3\x03\x00\x00\x00\x00\x01\x00"))
        self.assertEqual(header.size, 128)
        self.assertEqual(header.version, (2, 3, 0))
        self.assertFalse(header.f_unsynch)
        self.assertFalse(header.f_extended)
        self.assertFalse(header.f_experimental)
        self.assertFalse(header.is_dirty())

    def test_flags(self):
        header = ID3Header(BytesIO(b"ID3\x03\x00\xa0\x00\x00\x00\x00"))
        self.assertTrue(header.f_unsynch)
        self.assertTrue(header.f_experimental)
        self.assertFalse(header.f_extended)

    def test_serialize(self):
        data = b"ID3\x03\x00\x00\x00\x00\x01\x00"
        header = ID3Header(BytesIO(data))
        self.assertEqual(header.serialize(), data)

    def test_serialize_fresh(self):
        header = ID3Header()
        self.assertTrue(header.is_dirty())
        header.size = 257
        self.assertEqual(header.serialize(),
                         b"ID3\x03\x00\x00\x00\x00\x02\x01")
        self.assertFalse(header.is_dirty())

    def test_no_magic(self):
        self.assertRaises(ID3NoHeaderError, ID3Header,
                          BytesIO(b"TAG\x03\x00\x00\x00\x00\x00\x00"))

    def test_other_versions(self):
        for version in [b"\x02\x00", b"\x04\x00", b"\x03\x01"]:
            data = b"ID3" + version + b"\x00\x00\x00\x00\x00"
            self.assertRaises(ID3NoHeaderError, ID3Header, BytesIO(data))

    def test_too_short(self):
        self.assertRaises(ID3NoHeaderError, ID3Header, BytesIO(b"ID3\x03"))
        self.assertRaises(ID3NoHeaderError, ID3Header, BytesIO(b""))

    def test_no_header_is_value_error(self):
        self.assertRaises(ValueError, ID3Header, BytesIO(b""))

    def test_size_setter(self):
        header = ID3Header()
        self.assertRaises(ValueError, setattr, header, "size", -1)
        self.assertRaises(ValueError, setattr, header, "size", 2 ** 28)
        header.size = 2 ** 28 - 1
        self.assertEqual(header.size, 2 ** 28 - 1)

    def test_setters_mark_dirty(self):
        header = ID3Header(BytesIO(b"ID3\x03\x00\x00\x00\x00\x01\x00"))
        header.size = 128
        self.assertFalse(header.is_dirty())
        header.f_unsynch = True
        self.assertTrue(header.is_dirty())

    def test_extended_needed(self):
        header = ID3Header()
        self.assertRaises(ValueError, setattr, header, "padding_size", 10)
        self.assertRaises(ValueError, setattr, header, "crc", b"\x00" * 4)
        self.assertEqual(header.ext_length, 0)

    def test_extended(self):
        data = make_ext_tag(TITLE, padding=20)
        header = ID3Header(BytesIO(data))
        self.assertTrue(header.f_extended)
        self.assertFalse(header.f_crc)
        self.assertEqual(header.padding_size, 20)
        self.assertEqual(header.ext_size, 6)
        self.assertEqual(header.ext_length, 10)
        self.assertEqual(header.serialize(), data[:20])

    def test_extended_crc(self):
        crc = zlib.crc32(TITLE)
        data = make_ext_tag(TITLE, padding=20, crc=crc)
        header = ID3Header(BytesIO(data))
        self.assertTrue(header.f_crc)
        self.assertEqual(header.crc, struct.pack(">L", crc))
        self.assertEqual(header.ext_size, 10)
        self.assertEqual(header.ext_length, 14)
        self.assertEqual(header.serialize(), data[:24])

    def test_extended_truncated(self):
        self.assertRaises(IOError, ID3Header,
                          BytesIO(b"ID3\x03\x00\x40\x00\x00\x00\x0a\x00"))

    def test_extended_size_without_crc_flag(self):
        data = make_ext_tag(TITLE, ext_size=10)
        with self.assertLogs("songtag.id3", level="WARNING"):
            header = ID3Header(BytesIO(data))
        self.assertFalse(header.f_crc)
        self.assertEqual(header.ext_read_length, 14)
        self.assertEqual(header.ext_length, 10)
        self.assertTrue(header.is_dirty())

    def test_crc_flag_without_crc(self):
        data = make_ext_tag(TITLE, crc=0, ext_size=6)
        with self.assertLogs("songtag.id3", level="WARNING"):
            header = ID3Header(BytesIO(data))
        self.assertFalse(header.f_crc)
        self.assertEqual(header.ext_read_length, 10)

    def test_extended_size_too_small(self):
        data = make_ext_tag(TITLE, ext_size=4)
        self.assertRaises(error, ID3Header, BytesIO(data))

    def test_parse_fixed(self):
        data = make_ext_tag(TITLE, crc=0)
        header = ID3Header()
        header._parse_fixed(data[:10])
        self.assertTrue(header.f_extended)
        self.assertEqual(header.size, len(data) - 10)
        self.assertRaises(ID3NoHeaderError, header._parse_fixed, data[:9])


class Tread_frames(TestCase):

    def test_valid_and_truncated(self):
        truncated = struct.pack(">4sLH", b"TPE1", 100, 0) + b"\x00AC/DC"
        data = TITLE + truncated
        frames, invalid, rest = read_frames(None, data)
        self.assertEqual(len(frames), 1)
        self.assertEqual(frames[0], "Hells Bells")
        self.assertEqual(len(invalid), 1)
        self.assertEqual(invalid[0].FrameID, "TPE1")
        self.assertEqual(rest, b"")
        self.assertEqual(
            sum(f.size for f in frames) + sum(f.size for f in invalid),
            len(data))

    def test_padding(self):
        frames, invalid, rest = read_frames(None, TITLE + b"\x00" * 30)
        self.assertEqual(len(frames), 1)
        self.assertEqual(invalid, [])
        self.assertEqual(rest, b"\x00" * 30)

    def test_unsupported_frame(self):
        data = make_frame(b"XXXX", b"data") + ARTIST
        frames, invalid, rest = read_frames(None, data)
        self.assertEqual([f.FrameID for f in frames], ["TPE1"])
        self.assertEqual(invalid[0].FrameID, "XXXX")
        self.assertEqual(invalid[0].data, b"data")
        self.assertEqual(invalid[0].reason, "unsupported frame type")

    def test_v24_frame_is_unsupported(self):
        frames, invalid, rest = read_frames(
            None, make_frame(b"TDRC", b"\x002001"))
        self.assertEqual(frames, [])
        self.assertEqual(invalid[0].FrameID, "TDRC")

    def test_bad_frame_id(self):
        frames, invalid, rest = read_frames(
            None, make_frame(b"ti t", b"data") + TITLE)
        self.assertEqual(len(frames), 1)
        self.assertIn("invalid frame id", invalid[0].reason)

    def test_encrypted(self):
        data = make_frame(b"TIT2", b"\x00abc", flags=0x0040) + ARTIST
        frames, invalid, rest = read_frames(None, data)
        self.assertEqual([f.FrameID for f in frames], ["TPE1"])
        self.assertEqual(invalid[0].FrameID, "TIT2")
        self.assertIn("encrypted", invalid[0].reason)

    def test_junk(self):
        data = make_frame(b"TIT2", b"\x05abc") + ARTIST
        frames, invalid, rest = read_frames(None, data)
        self.assertEqual([f.FrameID for f in frames], ["TPE1"])
        self.assertEqual(invalid[0].FrameID, "TIT2")

    def test_known_frames(self):
        frames, invalid, rest = read_frames(
            None, TITLE + ARTIST, known_frames={"TIT2": TIT2})
        self.assertEqual([f.FrameID for f in frames], ["TIT2"])
        self.assertEqual([f.FrameID for f in invalid], ["TPE1"])

    def test_logs_invalid(self):
        with self.assertLogs("songtag.id3", level="WARNING") as logs:
            read_frames(None, make_frame(b"XXXX", b"data"))
        self.assertIn("XXXX", logs.output[0])


class TID3Tags(TestCase):

    def setUp(self):
        self.tags = ID3Tags()

    def test_empty(self):
        self.assertEqual(self.tags.frames, [])
        self.assertEqual(self.tags.invalid_frames, ())
        self.assertEqual(len(self.tags.padding), 2048)
        self.assertTrue(self.tags.is_dirty())

    def test_add_by_id(self):
        frame = self.tags.add_frame("TIT2")
        self.assertTrue(isinstance(frame, TIT2))
        self.assertIs(self.tags.get_frame("TIT2"), frame)

    def test_add_by_class(self):
        frame = self.tags.add_frame(TPE1)
        self.assertTrue(isinstance(frame, TPE1))
        self.assertIs(self.tags.get_frame(TPE1), frame)

    def test_add_instance(self):
        frame = TIT2(text="a")
        self.assertIs(self.tags.add_frame(frame), frame)
        self.assertIs(self.tags.get_frame(frame), frame)

    def test_add_unknown(self):
        self.assertRaises(ValueError, self.tags.add_frame, "XXXX")
        self.assertRaises(ValueError, self.tags.add_frame, "TDRC")

    def test_get_missing(self):
        self.assertIs(self.tags.get_frame("TIT2"), None)
        self.assertEqual(self.tags.get_frames("TIT2"), [])

    def test_order_and_duplicates(self):
        a = self.tags.add_frame(COMM(text="a"))
        t = self.tags.add_frame(TIT2(text="t"))
        b = self.tags.add_frame(COMM(text="b"))
        self.assertEqual(self.tags.frames, [a, t, b])
        self.assertEqual(self.tags.get_frames("COMM"), [a, b])
        self.assertIs(self.tags.get_frame("COMM"), a)

    def test_remove_frame(self):
        a = self.tags.add_frame(COMM(text="a"))
        b = self.tags.add_frame(COMM(text="b"))
        self.assertIs(self.tags.remove_frame("COMM"), a)
        self.assertEqual(self.tags.frames, [b])
        self.assertIs(self.tags.remove_frame("TIT2"), None)

    def test_remove_instance(self):
        a = self.tags.add_frame(COMM(text="same"))
        b = self.tags.add_frame(COMM(text="same"))
        self.assertIs(self.tags.remove_frame(b), b)
        self.assertEqual(len(self.tags.frames), 1)
        self.assertIs(self.tags.frames[0], a)

    def test_remove_frames(self):
        a = self.tags.add_frame(COMM(text="a"))
        t = self.tags.add_frame(TIT2(text="t"))
        b = self.tags.add_frame(COMM(text="b"))
        self.assertEqual(self.tags.remove_frames(COMM), [a, b])
        self.assertEqual(self.tags.frames, [t])
        self.assertEqual(self.tags.remove_frames(COMM), [])

    def test_frames_is_copy(self):
        self.tags.add_frame("TIT2")
        self.tags.frames.clear()
        self.assertEqual(len(self.tags.frames), 1)

    def test_padding_setter(self):
        self.tags.padding = 5
        self.assertEqual(self.tags.padding, b"\x00" * 5)
        self.assertRaises(ValueError, setattr, self.tags, "padding", -1)

    def test_flush(self):
        self.tags.add_frame(TIT2(encoding=Encoding.LATIN1, text="abc"))
        self.tags.padding = 10
        data = self.tags.flush()
        self.assertEqual(len(data), self.tags.size)
        self.assertEqual(self.tags.size, 10 + 15 + 10)
        self.assertEqual(data[:10], b"ID3\x03\x00\x00\x00\x00\x00\x19")
        self.assertEqual(data[10:25], make_frame(b"TIT2", b"\x00abc\x00"))
        self.assertFalse(self.tags.is_dirty())

    def test_flush_clears_unsynch(self):
        self.tags.header.f_unsynch = True
        data = self.tags.flush()
        self.assertEqual(data[5], 0)
        self.assertFalse(self.tags.header.f_unsynch)

    def test_flush_crc(self):
        self.tags.header.f_extended = True
        self.tags.header.crc = b"\x00" * 4
        self.tags.add_frame(TIT2(encoding=Encoding.LATIN1, text="abc"))
        self.tags.padding = 4
        data = self.tags.flush()
        framedata = make_frame(b"TIT2", b"\x00abc\x00")
        self.assertEqual(
            self.tags.header.crc, struct.pack(">L", zlib.crc32(framedata)))
        self.assertEqual(self.tags.header.padding_size, 4)
        self.assertEqual(len(data), 10 + 14 + len(framedata) + 4)

    def test_is_dirty(self):
        frame = self.tags.add_frame(TIT2(text="a"))
        self.tags.flush()
        self.assertFalse(self.tags.is_dirty())
        frame.text = "b"
        self.assertTrue(self.tags.is_dirty())
        self.tags.flush()
        self.assertFalse(self.tags.is_dirty())
        self.tags.remove_frame(frame)
        self.assertTrue(self.tags.is_dirty())
        self.tags.flush()
        self.tags.padding = 3
        self.assertTrue(self.tags.is_dirty())

    def test_pprint(self):
        self.tags.add_frame(TIT2(text="a"))
        self.tags.add_frame(TPE1(text="b"))
        self.assertEqual(self.tags.pprint(), "TIT2=a\nTPE1=b")


class Tplan_save(TestCase):

    def test_fits(self):
        self.assertEqual(plan_save(100, 60, 1000), SavePlan(True, 40))

    def test_exact(self):
        self.assertEqual(plan_save(100, 100, 1000), SavePlan(True, 0))

    def test_grows(self):
        self.assertEqual(plan_save(100, 101, 1000), SavePlan(False, 2048))

    def test_no_tag(self):
        self.assertEqual(plan_save(0, 50, 1000), SavePlan(False, 2048))

    def test_custom_padding(self):
        plan = plan_save(100, 60, 1000, lambda info: 0)
        self.assertEqual(plan, SavePlan(False, 0))

    def test_padding_info(self):
        infos = []

        def pad(info):
            infos.append(info)
            return info.get_default_padding()

        plan_save(100, 60, 1000, pad)
        self.assertEqual(infos[0].padding, 40)
        self.assertEqual(infos[0].size, 1000)
        self.assertTrue(isinstance(infos[0], PaddingInfo))

    def test_negative_padding(self):
        self.assertRaises(error, plan_save, 100, 60, 1000, lambda info: -1)


class TID3Load(TestCase):

    def setUp(self):
        self.filename = get_temp_file(make_tag(TITLE + ARTIST, 50) + AUDIO)

    def tearDown(self):
        os.remove(self.filename)

    def test_load(self):
        tags = ID3(self.filename)
        self.assertEqual(tags.filename, self.filename)
        self.assertEqual([f.FrameID for f in tags.frames], ["TIT2", "TPE1"])
        self.assertEqual(tags.get_frame("TPE1"), "AC/DC")
        self.assertEqual(len(tags.padding), 50)
        self.assertEqual(tags.size, 10 + len(TITLE + ARTIST) + 50)
        self.assertEqual(tags.version, (2, 3, 0))
        self.assertFalse(tags.is_dirty())

    def test_load_fileobj(self):
        with open(self.filename, "rb") as h:
            tags = ID3(h)
        self.assertIs(tags.filename, None)
        self.assertEqual(len(tags.frames), 2)

    def test_no_header(self):
        filename = get_temp_file(AUDIO)
        try:
            self.assertRaises(ID3NoHeaderError, ID3, filename)
        finally:
            os.remove(filename)

    def test_truncated_tag(self):
        self.assertRaises(ID3IOError, ID3,
                          BytesIO(make_tag(TITLE, 50)[:-10]))

    def test_missing_file(self):
        self.assertRaises(ID3IOError, ID3, self.filename + ".missing")

    def test_extended_header(self):
        tags = ID3(BytesIO(make_ext_tag(TITLE, padding=8) + AUDIO))
        self.assertEqual(len(tags.frames), 1)
        self.assertEqual(len(tags.padding), 8)

    def test_crc_mismatch(self):
        data = make_ext_tag(TITLE, padding=8, crc=0)
        with self.assertLogs("songtag.id3", level="WARNING"):
            tags = ID3(BytesIO(data))
        self.assertEqual(len(tags.frames), 1)

    def test_crc_match(self):
        data = make_ext_tag(TITLE, padding=8, crc=zlib.crc32(TITLE))
        with mock.patch("songtag.id3._tags.logger") as logger:
            ID3(BytesIO(data))
        logger.warning.assert_not_called()

    def test_extended_size_mismatch(self):
        for data in [make_ext_tag(TITLE, padding=8, ext_size=10),
                     make_ext_tag(TITLE, padding=8, crc=0, ext_size=6)]:
            with self.assertLogs("songtag.id3", level="WARNING"):
                tags = ID3(BytesIO(data + AUDIO))
            self.assertEqual(tags.get_frame("TIT2"), "Hells Bells")
            self.assertEqual(tags.invalid_frames, ())
            self.assertEqual(tags.size, len(data))
            self.assertTrue(tags.is_dirty())

    def test_unsynch(self):
        body = b"\x00\xff\xe0"
        frame = make_frame(b"TIT2", body)
        data = make_tag(frame[:-2] + b"\xff\x00\xe0", flags=0x80)
        # the declared frame size covers the decoded body
        tags = ID3(BytesIO(data))
        self.assertEqual(tags.get_frame("TIT2").text, "\xff\xe0")
        self.assertTrue(tags.header.f_unsynch)

    def test_invalid_frames(self):
        data = make_tag(make_frame(b"XXXX", b"junk") + TITLE)
        tags = ID3(BytesIO(data))
        self.assertEqual(len(tags.frames), 1)
        self.assertEqual(len(tags.invalid_frames), 1)
        self.assertFalse(tags.is_dirty())
        self.assertEqual(len(tags.discard_invalid_frames()), 1)
        self.assertEqual(tags.invalid_frames, ())
        self.assertTrue(tags.is_dirty())


class TID3Save(TestCase):

    def setUp(self):
        self.tag = make_tag(TITLE + ARTIST, 50)
        self.filename = get_temp_file(self.tag + AUDIO)

    def tearDown(self):
        os.remove(self.filename)

    def read(self):
        with open(self.filename, "rb") as h:
            return h.read()

    def test_in_place(self):
        tags = ID3(self.filename)
        tags.get_frame("TIT2").text = "Hells"
        with mock.patch("songtag.id3._file._rewrite_file") as rewrite:
            tags.save()
        rewrite.assert_not_called()

        data = self.read()
        self.assertEqual(len(data), len(self.tag) + len(AUDIO))
        self.assertTrue(data.endswith(AUDIO))
        self.assertEqual(ID3(self.filename).get_frame("TIT2"), "Hells")
        self.assertFalse(tags.is_dirty())

    def test_in_place_no_change(self):
        ID3(self.filename).save()
        self.assertEqual(self.read(), self.tag + AUDIO)

    def test_in_place_uses_padding(self):
        tags = ID3(self.filename)
        tags.add_frame(TRCK(encoding=Encoding.LATIN1, text="1"))
        tags.save()
        data = self.read()
        self.assertEqual(len(data), len(self.tag) + len(AUDIO))
        self.assertEqual(len(ID3(self.filename).padding), 50 - 13)

    def test_rewrite(self):
        tags = ID3(self.filename)
        tags.add_frame(COMM(encoding=Encoding.LATIN1, lang="eng",
                            text="x" * 200))
        tags.save()

        data = self.read()
        new = ID3(self.filename)
        self.assertEqual(len(new.padding), 2048)
        self.assertEqual(len(data), new.size + len(AUDIO))
        self.assertTrue(data.endswith(AUDIO))
        self.assertEqual(new.get_frame("COMM"), "x" * 200)
        self.assertFalse(os.path.exists(self.filename + TEMP_SUFFIX))

    def test_rewrite_keeps_mode(self):
        os.chmod(self.filename, 0o640)
        tags = ID3(self.filename)
        tags.add_frame(COMM(text="x" * 200))
        tags.save()
        self.assertEqual(os.stat(self.filename).st_mode & 0o777, 0o640)

    def test_custom_padding(self):
        tags = ID3(self.filename)
        tags.save(padding=lambda info: 0)
        data = self.read()
        self.assertEqual(len(data), 10 + len(TITLE + ARTIST) + len(AUDIO))
        self.assertTrue(data.endswith(AUDIO))

    def test_audio_mismatch(self):
        tags = ID3(self.filename)
        tags.add_frame(COMM(text="x" * 200))
        with mock.patch("songtag.id3._file.copy_bytes", return_value=1):
            self.assertRaises(ID3IOError, tags.save)
        self.assertEqual(self.read(), self.tag + AUDIO)
        self.assertFalse(os.path.exists(self.filename + TEMP_SUFFIX))

    def test_replace_fails(self):
        tags = ID3(self.filename)
        tags.add_frame(COMM(text="x" * 200))
        temp = self.filename + TEMP_SUFFIX
        try:
            with mock.patch("songtag.id3._file.os.replace",
                            side_effect=OSError("nope")):
                with self.assertRaises(ID3IOError) as ctx:
                    tags.save()
            self.assertIn(temp, str(ctx.exception))
            self.assertTrue(os.path.exists(temp))
            self.assertEqual(self.read(), self.tag + AUDIO)
        finally:
            if os.path.exists(temp):
                os.remove(temp)

    def test_drops_invalid(self):
        data = make_tag(make_frame(b"XXXX", b"junk") + TITLE, 20) + AUDIO
        with open(self.filename, "wb") as h:
            h.write(data)
        tags = ID3(self.filename)
        tags.save()
        new = ID3(self.filename)
        self.assertEqual(new.invalid_frames, ())
        self.assertEqual(len(new.frames), 1)
        self.assertEqual(len(self.read()), len(data))
        self.assertTrue(self.read().endswith(AUDIO))

    def test_new_file(self):
        os.remove(self.filename)
        tags = ID3()
        tags.add_frame(TIT2(text="new"))
        tags.save(self.filename)
        self.assertEqual(tags.filename, self.filename)
        new = ID3(self.filename)
        self.assertEqual(new.get_frame("TIT2"), "new")
        self.assertEqual(len(self.read()), new.size)

    def test_no_tag_yet(self):
        with open(self.filename, "wb") as h:
            h.write(AUDIO)
        tags = ID3()
        tags.add_frame(TIT2(text="a"))
        tags.save(self.filename)
        data = self.read()
        self.assertTrue(data.startswith(b"ID3"))
        self.assertTrue(data.endswith(AUDIO))
        self.assertEqual(len(data), ID3(self.filename).size + len(AUDIO))

    def test_tag_past_end(self):
        with open(self.filename, "wb") as h:
            h.write(self.tag[:-20])
        tags = ID3()
        self.assertRaises(ID3IOError, tags.save, self.filename)

    def test_fileobj(self):
        fileobj = BytesIO(self.tag + AUDIO)
        tags = ID3(fileobj)
        tags.add_frame(COMM(text="x" * 200))
        tags.save(fileobj)
        data = fileobj.getvalue()
        self.assertTrue(data.endswith(AUDIO))
        fileobj.seek(0)
        new = ID3(fileobj)
        self.assertEqual(len(data), new.size + len(AUDIO))
        self.assertEqual(len(new.frames), 3)

    def test_fileobj_in_place(self):
        fileobj = BytesIO(self.tag + AUDIO)
        tags = ID3(fileobj)
        tags.remove_frame("TPE1")
        tags.save(fileobj)
        self.assertEqual(len(fileobj.getvalue()), len(self.tag + AUDIO))

    def test_save_without_filename(self):
        self.assertRaises(TypeError, ID3().save)

    def test_read_only_fileobj(self):
        tags = ID3(self.filename)
        with open(self.filename, "rb") as h:
            self.assertRaises(ValueError, tags.save, h)
