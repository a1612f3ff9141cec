import tempfile
import unittest
from pathlib import Path

from mutagen.id3 import APIC, COMM, ID3, PRIV, TALB, TIPL, TIT2, TPE1, TXXX, WOAR

from tag_scrub.models import ReadError, WriteError
from tag_scrub.tagging import TagCodec


def _make_mp3(path: Path, *frames) -> Path:
    path.write_bytes(b"\x00" * 64)
    tags = ID3()
    for frame in frames:
        tags.add(frame)
    tags.save(path)
    return path


class TestId3Codec(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.codec = TagCodec()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_reads_text_and_record_frames(self) -> None:
        path = _make_mp3(
            self.tmp / "song.mp3",
            TIT2(encoding=3, text=["Song"]),
            TPE1(encoding=3, text=["A", "B"]),
            COMM(encoding=3, lang="eng", desc="", text=["nice"]),
            APIC(encoding=3, mime="image/png", type=3, desc="front", data=b"\x89PNG"),
            TXXX(encoding=3, desc="SOURCE", text=["web"]),
            WOAR(url="https://example.com/artist"),
        )
        tree = self.codec.read(path)
        self.assertEqual(tree["title"], "Song")
        self.assertEqual(tree["artist"], ["A", "B"])
        self.assertEqual(
            tree["comment"], [{"language": "eng", "description": "", "text": "nice"}]
        )
        self.assertEqual(
            tree["image"],
            [{"mime": "image/png", "type": 3, "description": "front", "data": b"\x89PNG"}],
        )
        self.assertEqual(tree["user_text"], [{"description": "SOURCE", "value": "web"}])
        self.assertEqual(tree["artist_url"], "https://example.com/artist")

    def test_missing_file_raises_read_error(self) -> None:
        with self.assertRaises(ReadError):
            self.codec.read(self.tmp / "missing.mp3")

    def test_file_without_tag_raises_read_error(self) -> None:
        path = self.tmp / "bare.mp3"
        path.write_bytes(b"\x00" * 64)
        with self.assertRaises(ReadError):
            self.codec.read(path)

    def test_unsupported_extension_raises(self) -> None:
        path = self.tmp / "notes.txt"
        path.write_text("x", encoding="utf-8")
        with self.assertRaises(ReadError):
            self.codec.read(path)
        with self.assertRaises(WriteError):
            self.codec.write(path, {"title": "x"})

    def test_write_replaces_modelled_frames_and_keeps_others(self) -> None:
        path = _make_mp3(
            self.tmp / "song.mp3",
            TIT2(encoding=3, text=["Old"]),
            TALB(encoding=3, text=["Album"]),
            PRIV(owner="vendor", data=b"\x01"),
            TIPL(encoding=3, people=[["producer", "Bob"]]),
        )
        tree = self.codec.read(path)
        tree["title"] = "New"
        del tree["album"]
        del tree["private"]
        self.codec.write(path, tree)

        tags = ID3(path)
        self.assertEqual(tags.getall("TIT2")[0].text, ["New"])
        self.assertEqual(tags.getall("TALB"), [])
        self.assertEqual(tags.getall("PRIV"), [])
        self.assertEqual(tags.getall("TIPL")[0].people, [["producer", "Bob"]])

    def test_write_skips_records_without_payload(self) -> None:
        path = _make_mp3(self.tmp / "song.mp3", TIT2(encoding=3, text=["Song"]))
        self.codec.write(
            path,
            {
                "title": "Song",
                "comment": [{"language": "eng"}, {"language": "eng", "text": "kept"}],
                "image": [{}],
            },
        )
        tags = ID3(path)
        comments = tags.getall("COMM")
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0].text, ["kept"])
        self.assertEqual(tags.getall("APIC"), [])

    def test_write_round_trips_a_read_tree(self) -> None:
        path = _make_mp3(
            self.tmp / "song.mp3",
            TIT2(encoding=3, text=["Song"]),
            COMM(encoding=3, lang="eng", desc="note", text=["hello"]),
            APIC(encoding=3, mime="image/jpeg", type=3, desc="", data=b"\xff\xd8"),
        )
        tree = self.codec.read(path)
        self.codec.write(path, tree)
        self.assertEqual(self.codec.read(path), tree)


if __name__ == "__main__":
    unittest.main()
