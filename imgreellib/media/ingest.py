#!/usr/bin/env python3

import os
from imgreellib.core import utils
from imgreellib.media.blob import FileBlob
from imgreellib.media.heif import FormatNormalizer
from imgreellib.media.heif import is_supported_image

#============================================

class LocalFileHandle():
	def __init__(self, path: str):
		self.path = path
		self.name = os.path.basename(path)

	#============================
	def get_blob(self) -> FileBlob:
		return FileBlob.from_path(self.path)

#============================================

class LocalDirectoryHandle():
	"""
	Directory handle over a local folder.

	read_entries() returns children one page at a time and an empty list
	once the listing is drained, mirroring hosts that paginate listings.
	"""
	def __init__(self, path: str, page_size: int = 100):
		if page_size <= 0:
			raise RuntimeError("page_size must be positive")
		self.path = path
		self.name = os.path.basename(os.path.normpath(path))
		self.page_size = page_size
		self._pending = None

	#============================
	def read_entries(self) -> list:
		if self._pending is None:
			with os.scandir(self.path) as scan:
				entries = sorted(scan, key=lambda entry: entry.name)
			self._pending = entries
		page = self._pending[:self.page_size]
		self._pending = self._pending[self.page_size:]
		children = []
		for entry in page:
			if entry.is_dir():
				children.append(LocalDirectoryHandle(entry.path, self.page_size))
			elif entry.is_file():
				children.append(LocalFileHandle(entry.path))
			# broken links, sockets and fifos are skipped
		return children

	#============================
	@property
	def identity(self) -> str:
		return os.path.realpath(self.path)

#============================================

def is_directory_handle(item) -> bool:
	return hasattr(item, 'read_entries')

#============================================

def directory_identity(item):
	"""
	Key that is equal for two handles of the same folder, so symlink
	loops are walked once. None for handles that cannot tell.
	"""
	return getattr(item, 'identity', None)

#============================================

def handles_from_paths(paths: list) -> list:
	items = []
	for path in paths:
		if os.path.isdir(path):
			items.append(LocalDirectoryHandle(path))
		elif os.path.isfile(path):
			items.append(FileBlob.from_path(path))
		else:
			raise RuntimeError(f"file not found: {path}")
	return items

#============================================

class IngestResult():
	def __init__(self):
		self.ordered_files = []
		self.folder_count = 0
		self.ignored_count = 0
		self.normalized_count = 0
		self.errors = []
		self.warning = None

#============================================

class FileIngestionEngine():
	def __init__(self, normalizer: FormatNormalizer = None):
		if normalizer is None:
			normalizer = FormatNormalizer()
		self.normalizer = normalizer

	#============================
	def ingest(self, items: list) -> IngestResult:
		"""
		Flatten loose files and directory handles into ordered image blobs.

		Args:
			items: FileBlob objects, file handles, or directory handles.

		Returns:
			IngestResult with the naturally sorted files and the folder,
			ignored and HEIC-converted counts.
		"""
		result = IngestResult()
		candidates = []
		pending_dirs = []
		for item in items:
			if is_directory_handle(item):
				result.folder_count += 1
				pending_dirs.append(item)
				continue
			blob = self._as_blob(item)
			if is_supported_image(blob):
				candidates.append(blob)
			else:
				result.ignored_count += 1
		# worklist walk, no recursion
		visited = set()
		while len(pending_dirs) > 0:
			directory = pending_dirs.pop()
			identity = directory_identity(directory)
			if identity is not None:
				if identity in visited:
					continue
				visited.add(identity)
			while True:
				try:
					page = directory.read_entries()
				except OSError as exc:
					result.errors.append((directory.name, str(exc)))
					utils.warn(f"could not read folder {directory.name}: {exc}")
					break
				if len(page) == 0:
					break
				for child in page:
					if is_directory_handle(child):
						pending_dirs.append(child)
						continue
					if child.name.startswith('.'):
						result.ignored_count += 1
						continue
					blob = self._as_blob(child)
					if is_supported_image(blob):
						candidates.append(blob)
					else:
						result.ignored_count += 1
		normalized = self.normalizer.normalize(candidates)
		result.normalized_count = normalized.converted_count
		result.errors += normalized.errors
		result.ordered_files = sorted(normalized.files,
			key=lambda blob: utils.natural_sort_key(blob.name))
		if len(result.ordered_files) == 0:
			result.warning = "no supported images found in the selection"
			utils.warn(result.warning)
		elif result.ignored_count > 0 and not utils.is_quiet_mode():
			utils.warn(f"ignored {result.ignored_count} unsupported file(s)")
		return result

	#============================
	def _as_blob(self, item) -> FileBlob:
		if isinstance(item, FileBlob):
			return item
		return item.get_blob()
