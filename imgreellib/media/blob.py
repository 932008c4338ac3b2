#!/usr/bin/env python3

import mimetypes
import os
import threading
import uuid

#============================================

class FileBlob():
	"""
	Named binary payload with a declared MIME type.

	Either in-memory bytes or a local path read on demand. The MIME type
	may be empty, as it is for HEIC files on many hosts.
	"""
	def __init__(self, name: str, data: bytes = None, path: str = None,
		mime_type: str = None):
		if data is None and path is None:
			raise RuntimeError("blob requires data or path")
		self.name = name
		self.path = path
		self._data = data
		if mime_type is None:
			mime_type = guess_mime_type(name)
		self.mime_type = mime_type

	#============================
	@classmethod
	def from_path(cls, path: str) -> 'FileBlob':
		return cls(os.path.basename(path), path=path)

	#============================
	def read_bytes(self) -> bytes:
		if self._data is not None:
			return self._data
		with open(self.path, 'rb') as blob_file:
			return blob_file.read()

	#============================
	@property
	def extension(self) -> str:
		ext = os.path.splitext(self.name)[1].lower()
		return ext.lstrip('.')

	#============================
	def __repr__(self) -> str:
		return f"FileBlob({self.name!r}, mime_type={self.mime_type!r})"

#============================================

def guess_mime_type(name: str) -> str:
	(mime_type, _) = mimetypes.guess_type(name)
	if mime_type is None:
		return ''
	return mime_type

#============================================

class HandleRegistry():
	"""
	Revocable display references for blobs.

	Every create() must be matched by a revoke() once the owner discards
	the blob; live_count() exposes leaks.
	"""
	def __init__(self):
		self._handles = {}
		self._lock = threading.Lock()

	#============================
	def create(self, blob) -> str:
		handle = f"imgreel:{uuid.uuid4().hex}"
		with self._lock:
			self._handles[handle] = blob
		return handle

	#============================
	def revoke(self, handle: str) -> None:
		if handle is None:
			return
		with self._lock:
			self._handles.pop(handle, None)

	#============================
	def resolve(self, handle: str):
		with self._lock:
			blob = self._handles.get(handle)
		if blob is None:
			raise RuntimeError(f"handle is not live: {handle}")
		return blob

	#============================
	def is_live(self, handle: str) -> bool:
		with self._lock:
			return handle in self._handles

	#============================
	def live_count(self) -> int:
		with self._lock:
			return len(self._handles)
