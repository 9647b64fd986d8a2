from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import yaml

from wizard.flow import SetupStep
from wizard.prompts import DEFAULT_PROMPTS_PATH
from wizard.prompts import default_prompts
from wizard.prompts import load_setup_prompts


class SetupPromptsTests(unittest.TestCase):
    def test_shipped_prompts_load_cleanly(self):
        prompts, warning = load_setup_prompts(DEFAULT_PROMPTS_PATH)
        self.assertIsNone(warning)
        self.assertEqual(set(prompts), set(SetupStep))
        self.assertEqual(prompts[SetupStep.GUILD].title, "Step 1 - Server")
        self.assertEqual(prompts[SetupStep.CONFIRM].color, 0x57F287)

    def test_missing_file_falls_back_with_warning(self):
        prompts, warning = load_setup_prompts("/nonexistent/setup_wizard.yml")
        self.assertIn("not found", warning)
        self.assertEqual(prompts, default_prompts())

    def test_partial_file_keeps_defaults_for_other_steps(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "prompts.yml"
            path.write_text(
                yaml.safe_dump({"steps": {"guild": {"title": "Pick a server", "color": "#FF0000"}, "bogus": {}}}),
                encoding="utf-8",
            )
            prompts, warning = load_setup_prompts(path)

        self.assertIsNone(warning)
        self.assertEqual(prompts[SetupStep.GUILD].title, "Pick a server")
        self.assertEqual(prompts[SetupStep.GUILD].color, 0xFF0000)
        self.assertEqual(prompts[SetupStep.CATEGORY], default_prompts()[SetupStep.CATEGORY])

    def test_invalid_shape_falls_back(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "prompts.yml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            prompts, warning = load_setup_prompts(path)
        self.assertIn("Invalid setup prompts format", warning)
        self.assertEqual(prompts, default_prompts())


if __name__ == "__main__":
    unittest.main()
