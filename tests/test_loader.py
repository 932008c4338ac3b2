#!/usr/bin/env python3

import os
import sys
import tempfile
import unittest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from image_utils import write_png

from imgreellib.core.errors import ValidationError
from imgreellib.core.loader import JobLoader
from imgreellib.core.loader import parse_settings
from imgreellib.core.settings import PresetState

#============================================

def _write_job_yaml(path: str, settings_lines: list = None,
	overlay_lines: list = None) -> None:
	"""Write a job file with relative input, overlay and output paths.

	Args:
		path: YAML output path.
		settings_lines: Lines placed under the settings key.
		overlay_lines: Lines placed under the overlay key.
	"""
	lines = []
	lines.append("imgreel: 1")
	lines.append("")
	lines.append("inputs:")
	lines.append("  - shots")
	lines.append("  - cover.png")
	if settings_lines is not None:
		lines.append("")
		lines.append("settings:")
		lines += [f"  {line}" for line in settings_lines]
	if overlay_lines is not None:
		lines.append("")
		lines.append("overlay:")
		lines += [f"  {line}" for line in overlay_lines]
	lines.append("")
	lines.append("output:")
	lines.append("  file: out/reel.mp4")
	with open(path, "w") as yaml_file:
		yaml_file.write("\n".join(lines))
		yaml_file.write("\n")

#============================================

class JobLoaderTest(unittest.TestCase):
	#============================================
	def test_paths_resolve_against_yaml_dir(self) -> None:
		"""Ensure relative inputs and output follow the job file."""
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			_write_job_yaml(yaml_path)
			job = JobLoader(yaml_path).load()
			self.assertEqual(job.inputs, [
				os.path.join(temp_dir, "shots"),
				os.path.join(temp_dir, "cover.png"),
			])
			self.assertEqual(job.output_file, os.path.join(temp_dir, "out/reel.mp4"))
			self.assertEqual(job.settings.resolution, 'auto')
			self.assertFalse(job.overlay.active)
			self.assertIsNone(job.ffmpeg_bin)

	#============================================
	def test_preset_then_overrides(self) -> None:
		"""Ensure explicit keys after a preset mark it custom."""
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			_write_job_yaml(yaml_path, settings_lines=[
				"preset: tutorial",
				"fps: 30",
				"fill_color: white",
			])
			settings = JobLoader(yaml_path).load().settings
			self.assertEqual(settings.preset_id, 'tutorial')
			self.assertEqual(settings.preset_state, PresetState.CUSTOM)
			self.assertEqual(settings.resolution, (1920, 1080))
			self.assertEqual(settings.fps, 30)
			self.assertEqual(settings.fill_color, 'white')

	#============================================
	def test_overlay_file_enables_overlay(self) -> None:
		"""Ensure an overlay with a file is active by default."""
		with tempfile.TemporaryDirectory() as temp_dir:
			write_png(os.path.join(temp_dir, "logo.png"), 40, 20)
			yaml_path = os.path.join(temp_dir, "job.yaml")
			_write_job_yaml(yaml_path, overlay_lines=[
				"file: logo.png",
				"position: top-left",
				"opacity: 0.5",
			])
			overlay = JobLoader(yaml_path).load().overlay
			self.assertTrue(overlay.active)
			self.assertEqual(overlay.position, 'top-left')
			self.assertEqual(overlay.opacity, 0.5)
			self.assertEqual(overlay.blob.name, 'logo.png')

	#============================================
	def test_missing_overlay_file(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			_write_job_yaml(yaml_path, overlay_lines=["file: nowhere.png"])
			with self.assertRaises(ValidationError):
				JobLoader(yaml_path).load()

	#============================================
	def test_wrong_version_rejected(self) -> None:
		"""Ensure only version 1 job files load."""
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			with open(yaml_path, "w") as yaml_file:
				yaml_file.write("imgreel: 2\ninputs: [a.png]\noutput: {file: o.mp4}\n")
			with self.assertRaises(ValidationError):
				JobLoader(yaml_path).load()

	#============================================
	def test_missing_output_rejected(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			with open(yaml_path, "w") as yaml_file:
				yaml_file.write("imgreel: 1\ninputs: [a.png]\noutput: {}\n")
			with self.assertRaises(ValidationError):
				JobLoader(yaml_path).load()

	#============================================
	def test_malformed_yaml_rejected(self) -> None:
		"""Ensure a syntax error is reported as a validation error."""
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			with open(yaml_path, "w") as yaml_file:
				yaml_file.write("imgreel: 1\ninputs: [a.png\noutput: {file: o.mp4}\n")
			with self.assertRaises(ValidationError):
				JobLoader(yaml_path).load()

	#============================================
	def test_non_numeric_duration_rejected(self) -> None:
		with tempfile.TemporaryDirectory() as temp_dir:
			yaml_path = os.path.join(temp_dir, "job.yaml")
			_write_job_yaml(yaml_path, settings_lines=["duration: slow"])
			with self.assertRaises(ValidationError):
				JobLoader(yaml_path).load()

	#============================================
	def test_missing_file(self) -> None:
		with self.assertRaises(ValidationError):
			JobLoader("/nonexistent/job.yaml").load()

	#============================================
	def test_unknown_settings_key(self) -> None:
		"""Ensure typos in settings are reported instead of ignored."""
		with self.assertRaises(ValidationError):
			parse_settings({'framerate': 30})
		settings = parse_settings({'preset': 'small'})
		self.assertEqual(settings.preset_state, PresetState.EXACT)
		self.assertEqual(settings.fps, 12)

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
