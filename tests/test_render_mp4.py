#!/usr/bin/env python3

"""
Integration tests that encode real MP4 files with ffmpeg.
"""

# Standard Library
import json
import os
import shutil
import subprocess
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

from imgreellib.core import utils
from imgreellib.core.project import ImgReelProject
from imgreellib.core.settings import ConversionSettings
from imgreellib.core.settings import OverlayConfig
from imgreellib.media.blob import FileBlob

#============================================

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
MISSING_TOOLS = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
HAVE_TOOLS = len(MISSING_TOOLS) == 0
SKIP_TOOLS_REASON = f"missing tools: {', '.join(MISSING_TOOLS)}"

#============================================

def _probe(path: str) -> dict:
	cmd = [
		"ffprobe", "-v", "error", "-select_streams", "v:0",
		"-show_entries", "stream=width,height,codec_name,pix_fmt",
		"-show_entries", "format=duration",
		"-of", "json", path,
	]
	proc = subprocess.run(cmd, check=True, stdout=subprocess.PIPE,
		stderr=subprocess.DEVNULL)
	return json.loads(proc.stdout.decode("utf-8"))

#============================================

def _write_frames(folder: str) -> None:
	os.makedirs(folder)
	write_png(os.path.join(folder, "img_1.png"), 320, 240, (255, 0, 0))
	write_png(os.path.join(folder, "img_2.png"), 241, 181, (0, 255, 0))
	write_png(os.path.join(folder, "img_10.png"), 200, 300, (0, 0, 255))

#============================================

@unittest.skipUnless(HAVE_TOOLS, SKIP_TOOLS_REASON)
class RenderMp4Test(unittest.TestCase):
	#============================================
	def setUp(self) -> None:
		utils.set_quiet_mode(True)

	#============================================
	def tearDown(self) -> None:
		utils.set_quiet_mode(False)

	#============================================
	def test_auto_resolution_render(self) -> None:
		"""Ensure mixed sizes encode at the even componentwise max."""
		with tempfile.TemporaryDirectory() as temp_dir:
			shots = os.path.join(temp_dir, "shots")
			_write_frames(shots)
			output_path = os.path.join(temp_dir, "reel.mp4")
			project = ImgReelProject([shots], output_file=output_path)
			try:
				artifact = project.run()
			finally:
				project.close()
			self.assertTrue(os.path.isfile(output_path))
			self.assertEqual(artifact.resolution_label, "320x300")
			info = _probe(output_path)
			stream = info["streams"][0]
			self.assertEqual(stream["codec_name"], "h264")
			self.assertEqual(stream["pix_fmt"], "yuv420p")
			self.assertEqual((stream["width"], stream["height"]), (320, 300))
			duration = float(info["format"]["duration"])
			self.assertGreater(duration, 1.0)
			self.assertLess(duration, 2.5)

	#============================================
	def test_fixed_resolution_with_overlay(self) -> None:
		"""Ensure an overlay render keeps the fixed frame size."""
		with tempfile.TemporaryDirectory() as temp_dir:
			shots = os.path.join(temp_dir, "shots")
			_write_frames(shots)
			logo_path = write_png(os.path.join(temp_dir, "logo.png"), 64, 32,
				(255, 255, 255))
			output_path = os.path.join(temp_dir, "reel.mp4")
			settings = ConversionSettings(resolution='640x360', fps=12,
				fill_color='white')
			overlay = OverlayConfig(enabled=True,
				blob=FileBlob.from_path(logo_path), position='top-right')
			project = ImgReelProject([shots], settings=settings,
				overlay=overlay, output_file=output_path)
			try:
				project.run()
			finally:
				project.close()
			stream = _probe(output_path)["streams"][0]
			self.assertEqual((stream["width"], stream["height"]), (640, 360))

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
