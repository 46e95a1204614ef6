# test_config_loader.py
#
# Run:
#   python -m unittest -v

import tempfile
import unittest
from pathlib import Path

from config_loader import DEFAULT_CONFIG, load_config
from publish_model import PublishOptions


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, content: str) -> Path:
        p = self.root / "config.yml"
        p.write_text(content, encoding="utf-8")
        return p

    def test_empty_file_gives_defaults(self):
        cfg = load_config(self.write(""))

        self.assertEqual(cfg.comment_chars, DEFAULT_CONFIG.comment_chars)
        self.assertEqual(cfg.format, "html")
        self.assertTrue(cfg.eval_code)
        self.assertIsNone(cfg.max_output_lines)
        self.assertEqual(cfg.script_suffixes, {".m"})

    def test_overrides(self):
        cfg = load_config(
            self.write(
                "format: LaTeX\n"
                "max_output_lines: 3\n"
                "eval_code: false\n"
                "interpreter: [octave, --quiet]\n"
                "script_suffixes: ['.M', '.m']\n"
            )
        )

        self.assertEqual(cfg.format, "latex")
        self.assertEqual(cfg.max_output_lines, 3)
        self.assertFalse(cfg.eval_code)
        self.assertEqual(cfg.interpreter, ["octave", "--quiet"])
        self.assertEqual(cfg.script_suffixes, {".m"})

    def test_comment_chars_need_two_distinct_characters(self):
        with self.assertRaises(TypeError):
            load_config(self.write("comment_chars: ['%']\n"))
        with self.assertRaises(ValueError):
            load_config(self.write("comment_chars: ['%', '%']\n"))

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            load_config(self.write("format: pdf\n"))
        with self.assertRaises(ValueError):
            load_config(self.write("max_output_lines: -1\n"))
        with self.assertRaises(TypeError):
            load_config(self.write("show_code: maybe\n"))
        with self.assertRaises(TypeError):
            load_config(self.write("- just\n- a list\n"))


class TestPublishOptions(unittest.TestCase):
    def test_from_config_with_overrides(self):
        options = PublishOptions.from_config(DEFAULT_CONFIG, format=None, show_code=False)

        self.assertEqual(options.format, "html")
        self.assertFalse(options.show_code)
        self.assertTrue(options.catch_error)

    def test_unknown_option(self):
        with self.assertRaises(TypeError):
            PublishOptions.from_config(DEFAULT_CONFIG, colour="blue")

    def test_invalid_option_values(self):
        with self.assertRaises(ValueError):
            PublishOptions.from_config(DEFAULT_CONFIG, format="pdf")
        with self.assertRaises(ValueError):
            PublishOptions.from_config(DEFAULT_CONFIG, max_output_lines=-2)

    def test_resolved_defaults(self):
        self.assertEqual(PublishOptions().resolved_image_format, "png")
        self.assertEqual(PublishOptions(format="latex").resolved_image_format, "epsc2")
        self.assertEqual(PublishOptions(image_format="svg").resolved_image_format, "svg")
        self.assertEqual(PublishOptions(format="latex").resolved_output_dir, "latex")
        self.assertEqual(PublishOptions(output_dir="out").resolved_output_dir, "out")


if __name__ == "__main__":
    unittest.main(verbosity=2)
