from __future__ import annotations

import io
import os
import tempfile
import time
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

import build_service
from config import PipelineConfig
from errors import FetchError


class TestCleanup(unittest.TestCase):
    def test_only_old_decks_are_removed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp)
            old = out / "05-04-2024.pptx"
            new = out / "06-01-2024.pptx"
            notes = out / "05-04-2024_debug.log"
            for p in (old, new, notes):
                p.write_bytes(b"x")
            now = time.time()
            forty_days = now - 40 * 86400
            os.utime(old, (forty_days, forty_days))
            os.utime(notes, (forty_days, forty_days))

            removed = build_service.cleanup_old_decks(out, 30, now=now)

            self.assertEqual(removed, [old])
            self.assertFalse(old.exists())
            self.assertTrue(new.exists())
            self.assertTrue(notes.exists())


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.template = self.tmp / "template.pptx"
        self.template.write_bytes(b"")
        self.schedule = self.tmp / "schedule.csv"
        self.schedule.write_text(",\nDate,Opening Hymn\n", encoding="utf-8")
        self.addCleanup(self._tmp.cleanup)
        self.addCleanup(mock.patch.stopall)
        mock.patch.object(build_service, "load_data_root", return_value=None).start()
        mock.patch.object(
            build_service, "load_build_prefs", return_value={"last_template": None, "last_output": None}
        ).start()
        mock.patch.object(build_service, "load_pipeline_config", return_value=PipelineConfig()).start()
        self.save_prefs = mock.patch.object(build_service, "save_build_prefs").start()

    def _argv(self, *extra):
        return ["--template", str(self.template), "--schedule", str(self.schedule),
                "--out_dir", str(self.tmp / "out"), "--no-song", *extra]

    def test_pipeline_error_exits_1(self) -> None:
        err = io.StringIO()
        with mock.patch.object(build_service.ServiceDeckBuilder, "build_deck", side_effect=FetchError("HTTP 500")):
            with redirect_stderr(err):
                code = build_service.main(self._argv("--date", "06/01/2024"))
        self.assertEqual(code, 1)
        self.assertIn("ERROR: HTTP 500", err.getvalue())
        self.save_prefs.assert_not_called()

    def test_output_named_after_service_date(self) -> None:
        result = mock.Mock()
        result.output_path = self.tmp / "out" / "06-01-2024.pptx"
        result.warnings = []
        result.scripture_refs = []
        with mock.patch.object(build_service.ServiceDeckBuilder, "build_deck", return_value=result) as build:
            with redirect_stdout(io.StringIO()):
                code = build_service.main(self._argv("--date", "06/01/2024"))
        self.assertEqual(code, 0)
        self.assertEqual(build.call_args.args[1], self.tmp.resolve() / "out" / "06-01-2024.pptx")
        self.assertEqual(build.call_args.args[0].service_date, "06/01/2024")
        self.save_prefs.assert_called_once_with(str(self.template.resolve()), "06-01-2024.pptx")

    def test_unreadable_song_email_builds_without_song(self) -> None:
        result = mock.Mock()
        result.output_path = self.tmp / "out" / "06-01-2024.pptx"
        result.warnings = []
        result.scripture_refs = []
        argv = ["--template", str(self.template), "--schedule", str(self.schedule),
                "--out_dir", str(self.tmp / "out"), "--date", "06/01/2024"]
        for song_file in (self.tmp / "missing.eml", self.schedule):
            out = io.StringIO()
            with mock.patch.object(build_service.ServiceDeckBuilder, "build_deck", return_value=result) as build:
                with redirect_stdout(out):
                    code = build_service.main(argv + ["--song-email", str(song_file)])
            self.assertEqual(code, 0)
            self.assertIsNone(build.call_args.kwargs["song_message"])
            self.assertIn("Song email could not be read", out.getvalue())

    def test_bad_date(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_service.main(self._argv("--date", "2024-06-01"))


if __name__ == "__main__":
    unittest.main()
