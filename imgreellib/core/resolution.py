#!/usr/bin/env python3

import io
import PIL.Image
from imgreellib.core import utils
from imgreellib.core.settings import FALLBACK_RESOLUTION

#============================================

def measure(blob):
	"""
	Return (width, height) of an image blob, or None when it cannot be read.

	Only the header is parsed; the file is closed before returning so no
	decoded bitmap is kept.
	"""
	source = blob.path
	if source is None:
		source = io.BytesIO(blob.read_bytes())
	try:
		with PIL.Image.open(source) as image:
			size = image.size
	except (OSError, ValueError, PIL.Image.DecompressionBombError):
		return None
	return (int(size[0]), int(size[1]))

#============================================

class ResolutionResolver():
	def __init__(self, measure_func=None):
		if measure_func is None:
			measure_func = measure
		self.measure_func = measure_func

	#============================
	def resolve(self, settings, frames: list) -> tuple:
		"""
		Compute the even (width, height) the video is encoded at.

		Fixed resolutions skip measuring entirely. Auto takes the largest
		width and largest height over all frames, falling back to 720p
		when nothing could be measured.
		"""
		if settings.resolution != 'auto':
			(width, height) = settings.resolution
			return (utils.make_even(width), utils.make_even(height))
		max_width = 0
		max_height = 0
		for frame in frames:
			blob = getattr(frame, 'blob', frame)
			dims = self.measure_func(blob)
			if dims is None:
				utils.warn(f"could not read dimensions of {blob.name}")
				continue
			max_width = max(max_width, dims[0])
			max_height = max(max_height, dims[1])
		if max_width <= 0 or max_height <= 0:
			(max_width, max_height) = FALLBACK_RESOLUTION
		return (utils.make_even(max_width), utils.make_even(max_height))
