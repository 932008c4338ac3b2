#!/usr/bin/env python3

"""
HEIC/HEIF detection and conversion to PNG.

The pillow_heif plugin is only imported on the first decode and then kept
for the lifetime of the decoder. Pass a decoder into FormatNormalizer to
swap it out.
"""

import importlib
import io
import re
import threading
import PIL.Image
from tqdm import tqdm
from imgreellib.core import utils
from imgreellib.core.errors import DecodeError
from imgreellib.media.blob import FileBlob

#============================================

LEGACY_MIME_TYPES = ('image/heic', 'image/heif')
LEGACY_EXTENSION = re.compile(r'\.(heic|heif)$', re.IGNORECASE)

#============================================

def is_legacy_format(blob) -> bool:
	mime_type = (blob.mime_type or '').lower()
	if mime_type in LEGACY_MIME_TYPES:
		return True
	return LEGACY_EXTENSION.search(blob.name or '') is not None

#============================================

def is_supported_image(blob) -> bool:
	mime_type = (blob.mime_type or '').lower()
	if mime_type.startswith('image/'):
		return True
	return is_legacy_format(blob)

#============================================

def converted_name(name: str) -> str:
	return LEGACY_EXTENSION.sub('.png', name)

#============================================

class HeifDecoder():
	def __init__(self, module_name: str = 'pillow_heif'):
		self.module_name = module_name
		self._module = None
		self._lock = threading.Lock()

	#============================
	@property
	def loaded(self) -> bool:
		return self._module is not None

	#============================
	def _load(self):
		with self._lock:
			if self._module is None:
				module = importlib.import_module(self.module_name)
				module.register_heif_opener()
				self._module = module
		return self._module

	#============================
	def decode(self, raw: bytes) -> bytes:
		"""
		Decode HEIC/HEIF bytes into PNG bytes at full fidelity.
		"""
		self._load()
		try:
			with PIL.Image.open(io.BytesIO(raw)) as image:
				image.load()
				out = io.BytesIO()
				image.save(out, 'PNG')
		except (OSError, ValueError) as exc:
			raise DecodeError(f"failed to convert HEIC: {exc}") from exc
		return out.getvalue()

#============================================

_DEFAULT_DECODER = None
_DEFAULT_LOCK = threading.Lock()

def default_decoder() -> HeifDecoder:
	global _DEFAULT_DECODER
	with _DEFAULT_LOCK:
		if _DEFAULT_DECODER is None:
			_DEFAULT_DECODER = HeifDecoder()
	return _DEFAULT_DECODER

#============================================

class NormalizeResult():
	def __init__(self):
		self.files = []
		self.converted_count = 0
		self.errors = []

#============================================

class FormatNormalizer():
	def __init__(self, decoder=None):
		if decoder is None:
			decoder = default_decoder()
		self.decoder = decoder

	#============================
	def convert(self, blob) -> FileBlob:
		raw = blob.read_bytes()
		data = self.decoder.decode(raw)
		return FileBlob(converted_name(blob.name), data=data,
			mime_type='image/png')

	#============================
	def normalize(self, blobs: list, progress=None) -> NormalizeResult:
		"""
		Convert every HEIC/HEIF blob in a batch, passing other files through.

		A failed decode drops that file and records (name, message); the
		batch itself never raises.
		"""
		result = NormalizeResult()
		total = len(blobs)
		legacy_count = sum(1 for blob in blobs if is_legacy_format(blob))
		bar = None
		if legacy_count > 0 and not utils.is_quiet_mode():
			bar = tqdm(total=legacy_count, desc="heic")
		for index, blob in enumerate(blobs, start=1):
			if progress is not None:
				progress(index, total)
			if not is_legacy_format(blob):
				result.files.append(blob)
				continue
			try:
				converted = self.convert(blob)
			except (RuntimeError, ImportError, OSError, ValueError) as exc:
				message = str(exc)
				result.errors.append((blob.name, message))
				utils.warn(f"{blob.name}: {message}")
			else:
				result.files.append(converted)
				result.converted_count += 1
			if bar is not None:
				bar.update(1)
		if bar is not None:
			bar.close()
		return result

