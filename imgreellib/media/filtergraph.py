#!/usr/bin/env python3

"""
ffmpeg filter graph construction for scale, pad and overlay stages.

Graphs are kept as ordered stages with named inputs and outputs and are
only turned into ffmpeg filter syntax by render().
"""

import math
from imgreellib.core import utils
from imgreellib.core.settings import FILL_COLORS

#============================================

BASE_LABEL = 'base'
OVERLAY_LABEL = 'ovr'
MIN_OVERLAY_WIDTH = 16

POSITION_EXPRESSIONS = {
	'top-left': lambda m: (f"{m}", f"{m}"),
	'top': lambda m: ("(main_w-overlay_w)/2", f"{m}"),
	'top-right': lambda m: (f"main_w-overlay_w-{m}", f"{m}"),
	'left': lambda m: (f"{m}", "(main_h-overlay_h)/2"),
	'center': lambda m: ("(main_w-overlay_w)/2", "(main_h-overlay_h)/2"),
	'right': lambda m: (f"main_w-overlay_w-{m}", "(main_h-overlay_h)/2"),
	'bottom-left': lambda m: (f"{m}", f"main_h-overlay_h-{m}"),
	'bottom': lambda m: ("(main_w-overlay_w)/2", f"main_h-overlay_h-{m}"),
	'bottom-right': lambda m: (f"main_w-overlay_w-{m}", f"main_h-overlay_h-{m}"),
}

#============================================

class FilterStage():
	def __init__(self, filters: list, inputs: list = None, outputs: list = None):
		if len(filters) == 0:
			raise RuntimeError("filter stage needs at least one filter")
		self.filters = list(filters)
		self.inputs = list(inputs or [])
		self.outputs = list(outputs or [])

	#============================
	def render(self) -> str:
		text = "".join(f"[{label}]" for label in self.inputs)
		text += ",".join(self.filters)
		text += "".join(f"[{label}]" for label in self.outputs)
		return text

#============================================

class FilterGraph():
	def __init__(self):
		self.stages = []

	#============================
	def add_stage(self, filters: list, inputs: list = None,
		outputs: list = None) -> FilterStage:
		for label in inputs or []:
			if ':' in label:
				continue
			if label not in self._declared_outputs():
				raise RuntimeError(f"filter input [{label}] is not produced by an earlier stage")
		stage = FilterStage(filters, inputs, outputs)
		self.stages.append(stage)
		return stage

	#============================
	def _declared_outputs(self) -> set:
		labels = set()
		for stage in self.stages:
			labels.update(stage.outputs)
		return labels

	#============================
	def render(self) -> str:
		return ";".join(stage.render() for stage in self.stages)

#============================================

class FilterSpec():
	"""
	Rendered video filter plus the ffmpeg option it is passed with.
	"""
	def __init__(self, kind: str, graph: FilterGraph):
		if kind not in ('simple', 'complex'):
			raise RuntimeError(f"unknown filter kind: {kind}")
		self.kind = kind
		self.graph = graph

	#============================
	@property
	def text(self) -> str:
		return self.graph.render()

	#============================
	def args(self) -> list:
		if self.kind == 'simple':
			return ['-vf', self.text]
		return ['-filter_complex', self.text]

#============================================

def build_base_filters(width: int, height: int, fill_color: str) -> list:
	if fill_color not in FILL_COLORS:
		raise RuntimeError(f"unsupported fill color: {fill_color}")
	filters = []
	filters.append(f"scale={width}:{height}:force_original_aspect_ratio=decrease")
	filters.append(f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:{fill_color}")
	return filters

#============================================

def overlay_width(main_width: int, scale_percent) -> int:
	# round half up
	width = int(math.floor(main_width * (scale_percent / 100.0) + 0.5))
	return max(MIN_OVERLAY_WIDTH, width)

#============================================

def overlay_position(position: str, margin: int) -> tuple:
	expression = POSITION_EXPRESSIONS.get(position)
	if expression is None:
		utils.warn(f"unknown overlay position {position}, using bottom-right")
		expression = POSITION_EXPRESSIONS['bottom-right']
	return expression(margin)

#============================================

def build_overlay_filters(main_width: int, overlay) -> list:
	opacity = max(0.1, min(1.0, float(overlay.opacity)))
	filters = []
	filters.append(f"scale={overlay_width(main_width, overlay.scale)}:-1")
	filters.append("format=rgba")
	filters.append(f"colorchannelmixer=aa={opacity:.2f}")
	return filters

#============================================

def build_video_filter(width: int, height: int, fill_color: str,
	overlay=None) -> FilterSpec:
	"""
	Build the filter for the staged frames.

	Without an active overlay this is a plain scale/pad chain for -vf. With
	one, the padded base stream is labeled and the overlay is composited on
	top of it, so the overlay never reads the raw concat input.
	"""
	base_filters = build_base_filters(width, height, fill_color)
	graph = FilterGraph()
	if overlay is None or not overlay.active:
		graph.add_stage(base_filters)
		return FilterSpec('simple', graph)
	graph.add_stage(base_filters, inputs=['0:v'], outputs=[BASE_LABEL])
	graph.add_stage(build_overlay_filters(width, overlay), inputs=['1:v'],
		outputs=[OVERLAY_LABEL])
	(pos_x, pos_y) = overlay_position(overlay.position, overlay.margin)
	graph.add_stage([f"overlay={pos_x}:{pos_y}:format=auto"],
		inputs=[BASE_LABEL, OVERLAY_LABEL])
	return FilterSpec('complex', graph)
