import io
import json
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from mutagen.id3 import COMM, ID3, TIT2

from tag_scrub.cli import LOG_FORMAT, ShortPathFormatter, main


def _make_mp3(path: Path, *frames) -> Path:
    path.write_bytes(b"\x00" * 64)
    tags = ID3()
    for frame in frames:
        tags.add(frame)
    tags.save(path)
    return path


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self._cwd = os.getcwd()
        os.chdir(self.tmp)

    def tearDown(self) -> None:
        os.chdir(self._cwd)
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple[str, int]:
        buffer = io.StringIO()
        code = 0
        with redirect_stdout(buffer):
            try:
                main(list(argv))
            except SystemExit as exc:
                code = int(exc.code or 0)
        return buffer.getvalue(), code

    def test_strip_folder_updates_files(self) -> None:
        music = self.tmp / "music"
        music.mkdir()
        path = _make_mp3(
            music / "song.mp3",
            TIT2(encoding=3, text=["Song (XXX remix)"]),
            COMM(encoding=3, lang="eng", desc="", text=["XXX"]),
        )
        output, code = self._run("strip", str(music), "--text", "XXX", "--verbose-changes")
        self.assertEqual(code, 0)
        self.assertIn('Removed "XXX" from song.mp3', output)
        self.assertIn("title: CHANGED", output)
        self.assertIn("Processed 1 file(s), 0 failed.", output)
        self.assertEqual(ID3(path).getall("TIT2")[0].text, ["Song ( remix)"])
        self.assertEqual(ID3(path).getall("COMM"), [])

    def test_strip_dry_run_leaves_file_alone(self) -> None:
        path = _make_mp3(self.tmp / "song.mp3", TIT2(encoding=3, text=["Song XXX"]))
        output, code = self._run("strip", str(path), "--text", "XXX", "--dry-run")
        self.assertEqual(code, 0)
        self.assertIn("[dry-run]", output)
        self.assertEqual(ID3(path).getall("TIT2")[0].text, ["Song XXX"])

    def test_strip_exits_non_zero_when_a_file_fails(self) -> None:
        path = self.tmp / "broken.mp3"
        path.write_bytes(b"\x00" * 16)
        output, code = self._run("strip", str(path), "--text", "XXX")
        self.assertEqual(code, 1)
        self.assertIn("Failed to read tags from broken.mp3", output)

    def test_missing_config_file_is_a_usage_error(self) -> None:
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            _output, code = self._run("--config", str(self.tmp / "missing.yaml"), "scan", str(self.tmp))
        self.assertEqual(code, 2)
        self.assertIn("Config file not found", stderr.getvalue())

    def test_show_json_dumps_tag_tree(self) -> None:
        path = _make_mp3(self.tmp / "song.mp3", TIT2(encoding=3, text=["Song"]))
        output, code = self._run("show", str(path), "--json")
        self.assertEqual(code, 0)
        payload = json.loads(output[: output.rindex("}") + 1])
        self.assertEqual(payload, {"title": "Song"})


class TestShortPathFormatter(unittest.TestCase):
    def test_shortens_paths_below_root_but_keeps_the_root_itself(self) -> None:
        formatter = ShortPathFormatter(LOG_FORMAT, [Path("/music")])
        record = logging.LogRecord(
            "tag_scrub.cleaner", logging.WARNING, __file__, 1,
            "Failed to read %s; folder %s", ("/music/a/song.mp3", "/music"), None,
        )
        self.assertEqual(
            formatter.format(record),
            "W | tag_scrub.cleaner | Failed to read a/song.mp3; folder /music",
        )


if __name__ == "__main__":
    unittest.main()
