#!/usr/bin/env python3

import os
import shutil
import tempfile
import threading
from imgreellib.core import utils
from imgreellib.core.errors import EngineError

#============================================

class ConversionEngine():
	"""
	Transcoding engine seen as a private filesystem plus a command runner.

	initialize() is the one-time cold start and must be idempotent. Names
	passed to the file methods are flat names inside the engine's own
	filesystem, never host paths.
	"""
	@property
	def loaded(self) -> bool:
		raise NotImplementedError

	def initialize(self) -> None:
		raise NotImplementedError

	def write_file(self, name: str, data) -> None:
		raise NotImplementedError

	def read_file(self, name: str) -> bytes:
		raise NotImplementedError

	def delete_file(self, name: str) -> None:
		raise NotImplementedError

	def execute(self, argv: list) -> None:
		raise NotImplementedError

#============================================

class FFmpegEngine(ConversionEngine):
	def __init__(self, ffmpeg_bin: str = None, work_dir: str = None):
		self.ffmpeg_bin = ffmpeg_bin
		self.work_dir = work_dir
		self._owns_work_dir = False
		self._loaded = False
		self._lock = threading.Lock()
		self.version = None

	#============================
	@property
	def loaded(self) -> bool:
		return self._loaded

	#============================
	def initialize(self) -> None:
		with self._lock:
			if self._loaded:
				return
			binary = self.ffmpeg_bin or shutil.which('ffmpeg')
			if binary is None:
				raise EngineError("ffmpeg not found on PATH, install ffmpeg "
					"or pass --ffmpeg, then try again")
			try:
				proc = utils.runCmd([binary, '-hide_banner', '-version'])
			except OSError as exc:
				raise EngineError(f"could not start ffmpeg: {exc}") from exc
			if proc.returncode != 0:
				raise EngineError("ffmpeg failed to start, try again")
			lines = proc.stdout.decode('utf-8', errors='replace').splitlines()
			if len(lines) > 0:
				self.version = lines[0].strip()
			if self.work_dir is None:
				self.work_dir = tempfile.mkdtemp(prefix="imgreel-fs-")
				self._owns_work_dir = True
			elif not os.path.isdir(self.work_dir):
				os.makedirs(self.work_dir)
			self.ffmpeg_bin = binary
			self._loaded = True

	#============================
	def _path(self, name: str) -> str:
		if not self._loaded:
			raise EngineError("engine is not initialized")
		if name in ('', '.', '..') or '/' in name or os.sep in name:
			raise EngineError(f"invalid virtual file name: {name!r}")
		return os.path.join(self.work_dir, name)

	#============================
	def write_file(self, name: str, data) -> None:
		if isinstance(data, str):
			data = data.encode('utf-8')
		with open(self._path(name), 'wb') as out_file:
			out_file.write(data)

	#============================
	def read_file(self, name: str) -> bytes:
		path = self._path(name)
		if not os.path.isfile(path):
			raise EngineError(f"no such virtual file: {name}")
		with open(path, 'rb') as in_file:
			return in_file.read()

	#============================
	def delete_file(self, name: str) -> None:
		path = self._path(name)
		if not os.path.isfile(path):
			raise EngineError(f"no such virtual file: {name}")
		os.remove(path)

	#============================
	def list_files(self) -> list:
		if not self._loaded:
			return []
		return sorted(os.listdir(self.work_dir))

	#============================
	def execute(self, argv: list) -> None:
		if not self._loaded:
			raise EngineError("engine is not initialized")
		cmd = [self.ffmpeg_bin, '-hide_banner', '-nostdin'] + list(argv)
		proc = utils.runCmd(cmd, cwd=self.work_dir)
		if proc.returncode != 0:
			stderr = proc.stderr.decode('utf-8', errors='replace').strip()
			tail = "\n".join(stderr.splitlines()[-8:])
			if tail == '':
				tail = f"ffmpeg exited with status {proc.returncode}"
			raise EngineError(tail)

	#============================
	def close(self) -> None:
		with self._lock:
			if self._owns_work_dir and self.work_dir is not None:
				shutil.rmtree(self.work_dir, ignore_errors=True)
				self.work_dir = None
				self._owns_work_dir = False
			self._loaded = False
