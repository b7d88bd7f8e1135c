from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import config
from config import PipelineConfig


class TestPipelineConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        self.assertEqual((cfg.min_font_size, cfg.default_font_size, cfg.line_spacing), (50, 60, 2.0))
        self.assertEqual(cfg.fetch_delay_s, 1.0)

    def test_invalid_bounds(self) -> None:
        for kwargs in ({"min_font_size": 70}, {"min_font_size": 0}, {"line_spacing": 0}, {"fetch_delay_ms": -1}):
            with self.assertRaises(ValueError):
                PipelineConfig(**kwargs)

    def test_from_dict_ignores_unknown_keys(self) -> None:
        cfg = PipelineConfig.from_dict({"min_font_size": 40, "colour": "blue"})
        self.assertEqual(cfg.min_font_size, 40)
        self.assertEqual(PipelineConfig.from_dict(None), PipelineConfig())


class TestConfigFile(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        patcher = mock.patch.object(config, "CONFIG_FILE", self.tmp / "cfg.json")
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def test_prefs_round_trip_keeps_other_keys(self) -> None:
        config.save_data_root(str(self.tmp / "data"))
        config.save_build_prefs("service.pptx", "06-01-2024.pptx")
        config.save_pipeline_config(PipelineConfig(min_font_size=44))

        self.assertEqual(config.load_data_root(), str(self.tmp / "data"))
        self.assertEqual(config.load_build_prefs()["last_template"], "service.pptx")
        self.assertEqual(config.load_pipeline_config().min_font_size, 44)
        raw = json.loads((self.tmp / "cfg.json").read_text())
        self.assertEqual(set(raw), {"data_root", "last_template", "last_output", "pipeline"})

    def test_missing_file_gives_defaults(self) -> None:
        self.assertIsNone(config.load_data_root())
        self.assertEqual(config.load_pipeline_config(), PipelineConfig())

    def test_data_root_folders(self) -> None:
        root = self.tmp / "data"
        config.ensure_data_root_structure(str(root))
        for name in config.REQUIRED_FOLDERS:
            self.assertTrue((root / name).is_dir())


if __name__ == "__main__":
    unittest.main()
