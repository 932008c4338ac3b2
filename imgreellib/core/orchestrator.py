#!/usr/bin/env python3

"""
Phased conversion of an ordered frame list into one MP4.

A run moves strictly forward through
idle -> loading_engine -> preparing -> encoding -> finalizing -> success,
or jumps to error from any step. Every file staged into the engine is
deleted when the run ends, whatever the outcome.
"""

import enum
import threading
from tqdm import tqdm
from imgreellib.core import utils
from imgreellib.core.errors import BusyError
from imgreellib.core.errors import ConversionError
from imgreellib.core.errors import EngineError
from imgreellib.core.errors import ValidationError
from imgreellib.core.resolution import ResolutionResolver
from imgreellib.media.blob import FileBlob
from imgreellib.media.blob import HandleRegistry
from imgreellib.media.filtergraph import build_video_filter

#============================================

PLAYLIST_NAME = 'list.txt'
OUTPUT_NAME = 'output.mp4'
OUTPUT_MIME = 'video/mp4'
GENERIC_HINT = ("conversion failed, try fewer images, a lower resolution, "
	"or a smaller fps")

#============================================

class ConversionPhase(enum.Enum):
	IDLE = 'idle'
	LOADING_ENGINE = 'loading_engine'
	PREPARING = 'preparing'
	ENCODING = 'encoding'
	FINALIZING = 'finalizing'
	SUCCESS = 'success'
	ERROR = 'error'

	#============================
	@property
	def progress(self) -> int:
		return PHASE_PROGRESS[self]

PHASE_PROGRESS = {
	ConversionPhase.IDLE: 0,
	ConversionPhase.LOADING_ENGINE: 10,
	ConversionPhase.PREPARING: 25,
	ConversionPhase.ENCODING: 70,
	ConversionPhase.FINALIZING: 100,
	ConversionPhase.SUCCESS: 100,
	ConversionPhase.ERROR: 100,
}

PHASE_MESSAGES = {
	ConversionPhase.IDLE: "idle",
	ConversionPhase.LOADING_ENGINE: "loading conversion engine",
	ConversionPhase.PREPARING: "preparing images and timeline",
	ConversionPhase.ENCODING: "encoding video",
	ConversionPhase.FINALIZING: "finalizing output",
	ConversionPhase.SUCCESS: "done",
	ConversionPhase.ERROR: "failed",
}

#============================================

class CancelToken():
	"""
	Cooperative cancel flag, checked between steps but never mid-encode.
	"""
	def __init__(self):
		self._event = threading.Event()

	def cancel(self) -> None:
		self._event.set()

	@property
	def cancelled(self) -> bool:
		return self._event.is_set()

	def raise_if_cancelled(self) -> None:
		if self._event.is_set():
			raise ConversionError("conversion cancelled")

#============================================

class OutputArtifact():
	def __init__(self, data: bytes, handle: str, width: int, height: int,
		fps: int, frame_count: int, duration_seconds: float):
		self.data = data
		self.handle = handle
		self.width = width
		self.height = height
		self.fps = fps
		self.frame_count = frame_count
		self.duration_seconds = duration_seconds

	#============================
	@property
	def size_bytes(self) -> int:
		return len(self.data)

	#============================
	@property
	def resolution_label(self) -> str:
		return f"{self.width}x{self.height}"

	#============================
	@property
	def size_label(self) -> str:
		return utils.format_bytes(self.size_bytes)

	#============================
	def write_to(self, path: str) -> str:
		with open(path, 'wb') as out_file:
			out_file.write(self.data)
		return path

#============================================

def format_duration(seconds: float) -> str:
	text = f"{float(seconds):.6f}".rstrip('0').rstrip('.')
	if text == '':
		return '0'
	return text

#============================================

def frame_name(index: int, blob) -> str:
	ext = blob.extension or 'png'
	return f"frame-{index}.{ext}"

#============================================

def build_playlist(names: list, durations: list) -> str:
	"""
	Write a concat demuxer playlist.

	Each frame gets a file line and a duration line. The last file is
	listed once more without a duration, otherwise the concat demuxer
	drops the final frame's duration.
	"""
	if len(names) == 0:
		raise ValidationError("playlist needs at least one frame")
	if len(names) != len(durations):
		raise RuntimeError("playlist names and durations do not match")
	lines = []
	for name, duration in zip(names, durations):
		lines.append(f"file '{name}'")
		lines.append(f"duration {format_duration(duration)}")
	lines.append(f"file '{names[-1]}'")
	return "\n".join(lines) + "\n"

#============================================

def build_command(filter_spec, fps: int, overlay_name: str = None) -> list:
	argv = ['-f', 'concat', '-safe', '0', '-i', PLAYLIST_NAME]
	if overlay_name is not None:
		argv += ['-i', overlay_name]
	argv += filter_spec.args()
	argv += ['-r', str(fps)]
	argv += ['-vsync', 'vfr']
	argv += ['-c:v', 'libx264', '-pix_fmt', 'yuv420p']
	argv += ['-movflags', '+faststart', '-preset', 'veryfast']
	argv += ['-y', OUTPUT_NAME]
	return argv

#============================================

class ConversionOrchestrator():
	def __init__(self, engine, registry: HandleRegistry = None,
		resolver: ResolutionResolver = None, on_phase=None):
		if registry is None:
			registry = HandleRegistry()
		if resolver is None:
			resolver = ResolutionResolver()
		self.engine = engine
		self.registry = registry
		self.resolver = resolver
		self.on_phase = on_phase
		self.phase = ConversionPhase.IDLE
		self.error_message = None
		self.artifact = None
		self._run_lock = threading.Lock()

	#============================
	@property
	def running(self) -> bool:
		return self._run_lock.locked()

	#============================
	def _set_phase(self, phase: ConversionPhase) -> None:
		self.phase = phase
		if self.on_phase is not None:
			self.on_phase(phase, PHASE_MESSAGES[phase])
		utils.info(f"[{phase.progress:3d}%] {PHASE_MESSAGES[phase]}")

	#============================
	def convert(self, frames, settings, overlay=None,
		cancel: CancelToken = None) -> OutputArtifact:
		"""
		Run one conversion and return the produced artifact.

		Raises ValidationError before touching the engine when there is
		nothing to convert, BusyError when another run is in flight, and
		ConversionError when any phase fails.
		"""
		if not self._run_lock.acquire(blocking=False):
			raise BusyError("a conversion is already running")
		try:
			return self._convert(frames, settings, overlay, cancel)
		finally:
			self._run_lock.release()

	#============================
	def _convert(self, frames, settings, overlay, cancel) -> OutputArtifact:
		if frames is None or len(frames) == 0:
			self.phase = ConversionPhase.IDLE
			raise ValidationError("add at least one image to convert")
		use_overlay = overlay is not None and overlay.active
		if use_overlay:
			problems = overlay.validate()
			if len(problems) > 0:
				self.phase = ConversionPhase.IDLE
				raise ValidationError("; ".join(problems))
		self.error_message = None
		staged = []
		try:
			self._set_phase(ConversionPhase.LOADING_ENGINE)
			if cancel is not None:
				cancel.raise_if_cancelled()
			self._load_engine()
			self._set_phase(ConversionPhase.PREPARING)
			# order is fixed from here on
			items = list(frames)
			(width, height) = self.resolver.resolve(settings, items)
			names = []
			durations = []
			iterator = items
			if not utils.is_quiet_mode():
				iterator = tqdm(items, desc="staging")
			for index, item in enumerate(iterator):
				if cancel is not None:
					cancel.raise_if_cancelled()
				name = frame_name(index, item.blob)
				staged.append(name)
				self.engine.write_file(name, item.blob.read_bytes())
				names.append(name)
				durations.append(item.duration_seconds(settings.duration))
			staged.append(PLAYLIST_NAME)
			self.engine.write_file(PLAYLIST_NAME, build_playlist(names, durations))
			overlay_name = None
			if use_overlay:
				overlay_name = f"overlay.{overlay.blob.extension or 'png'}"
				staged.append(overlay_name)
				self.engine.write_file(overlay_name, overlay.blob.read_bytes())
			filter_spec = build_video_filter(width, height, settings.fill_color,
				overlay if use_overlay else None)
			argv = build_command(filter_spec, settings.target_fps, overlay_name)
			if cancel is not None:
				cancel.raise_if_cancelled()
			self._set_phase(ConversionPhase.ENCODING)
			staged.append(OUTPUT_NAME)
			self.engine.execute(argv)
			self._set_phase(ConversionPhase.FINALIZING)
			data = self.engine.read_file(OUTPUT_NAME)
			artifact = self._publish(data, width, height, settings.target_fps,
				len(items), sum(durations))
			self._set_phase(ConversionPhase.SUCCESS)
			return artifact
		except Exception as exc:
			message = str(exc).strip()
			if message == '':
				message = GENERIC_HINT
			self.error_message = message
			self._set_phase(ConversionPhase.ERROR)
			raise ConversionError(message) from exc
		finally:
			self._cleanup(staged)

	#============================
	def _load_engine(self) -> None:
		if self.engine.loaded:
			return
		try:
			self.engine.initialize()
		except EngineError:
			raise
		except (OSError, RuntimeError) as exc:
			raise EngineError(f"failed to load conversion engine: {exc}") from exc

	#============================
	def _publish(self, data: bytes, width: int, height: int, fps: int,
		frame_count: int, duration_seconds: float) -> OutputArtifact:
		# one live output handle at a time
		if self.artifact is not None:
			self.registry.revoke(self.artifact.handle)
			self.artifact.handle = None
		blob = FileBlob(OUTPUT_NAME, data=data, mime_type=OUTPUT_MIME)
		handle = self.registry.create(blob)
		self.artifact = OutputArtifact(data, handle, width, height, fps,
			frame_count, duration_seconds)
		return self.artifact

	#============================
	def _cleanup(self, names: list) -> None:
		for name in dict.fromkeys(names + [PLAYLIST_NAME, OUTPUT_NAME]):
			try:
				self.engine.delete_file(name)
			except Exception:
				# best effort
				continue

	#============================
	def reset(self) -> None:
		if self.running:
			raise BusyError("cannot reset while a conversion is running")
		if self.artifact is not None:
			self.registry.revoke(self.artifact.handle)
			self.artifact = None
		self.error_message = None
		self.phase = ConversionPhase.IDLE
