#!/usr/bin/env python3

import dataclasses
import enum
from imgreellib.core.errors import ValidationError

#============================================

RESOLUTION_LITERALS = {
	'720p': (1280, 720),
	'1080p': (1920, 1080),
}
FALLBACK_RESOLUTION = RESOLUTION_LITERALS['720p']
AUTO_FPS = 24
FILL_COLORS = ('black', 'white')

PRESETS = {
	'social': {'resolution': '720p', 'fps': 24, 'duration': 0.5},
	'tutorial': {'resolution': '1080p', 'fps': 15, 'duration': 1.0},
	'small': {'resolution': '720p', 'fps': 12, 'duration': 0.5},
	'ultra': {'resolution': '1080p', 'fps': 30, 'duration': 0.5},
}
# fields a preset sets; fill_color is not one of them
PRESET_FIELDS = ('resolution', 'fps', 'duration')

OVERLAY_POSITIONS = (
	'top-left', 'top', 'top-right',
	'left', 'center', 'right',
	'bottom-left', 'bottom', 'bottom-right',
)

#============================================

class PresetState(enum.Enum):
	NONE = 'none'
	EXACT = 'exact'
	CUSTOM = 'custom'

#============================================

def parse_resolution(raw):
	"""
	Normalize a resolution value to 'auto' or a (width, height) tuple.
	"""
	if raw is None or raw == 'auto':
		return 'auto'
	if isinstance(raw, str):
		value = raw.strip().lower()
		if value in RESOLUTION_LITERALS:
			return RESOLUTION_LITERALS[value]
		if 'x' in value:
			parts = value.split('x')
			if len(parts) == 2 and parts[0].isdigit() and parts[1].isdigit():
				return (int(parts[0]), int(parts[1]))
		raise ValidationError(f"unknown resolution: {raw}")
	if isinstance(raw, (list, tuple)) and len(raw) == 2:
		try:
			return (int(raw[0]), int(raw[1]))
		except (TypeError, ValueError) as exc:
			raise ValidationError(f"resolution must be two integers: {raw}") from exc
	raise ValidationError("resolution must be auto, 720p, 1080p, WxH, or [width, height]")

#============================================

def parse_fps_setting(raw):
	if raw is None or raw == 'auto':
		return 'auto'
	if isinstance(raw, bool):
		raise ValidationError("fps must be auto or a positive integer")
	try:
		fps = int(raw)
	except (TypeError, ValueError) as exc:
		raise ValidationError(f"fps must be auto or a positive integer: {raw}") from exc
	return fps

#============================================

def to_number(raw, kind, label: str):
	if raw is None or isinstance(raw, bool):
		raise ValidationError(f"{label} must be a number")
	try:
		return kind(raw)
	except (TypeError, ValueError) as exc:
		raise ValidationError(f"{label} must be a number: {raw}") from exc

#============================================

@dataclasses.dataclass(frozen=True)
class ConversionSettings():
	resolution: object = 'auto'
	fps: object = AUTO_FPS
	duration: float = 0.5
	fill_color: str = 'black'
	preset_id: str = None
	preset_state: PresetState = PresetState.NONE

	#============================
	def __post_init__(self):
		object.__setattr__(self, 'resolution', parse_resolution(self.resolution))
		object.__setattr__(self, 'fps', parse_fps_setting(self.fps))
		if self.fps != 'auto' and self.fps <= 0:
			raise ValidationError("fps must be positive")
		if self.resolution != 'auto':
			(width, height) = self.resolution
			if width <= 0 or height <= 0:
				raise ValidationError("resolution must be positive")
		duration = to_number(self.duration, float, "duration per image")
		if duration <= 0:
			raise ValidationError("duration per image must be positive")
		object.__setattr__(self, 'duration', duration)
		if self.fill_color not in FILL_COLORS:
			raise ValidationError(f"fill color must be one of {', '.join(FILL_COLORS)}")
		if self.preset_id is not None and self.preset_id not in PRESETS:
			raise ValidationError(f"unknown preset: {self.preset_id}")

	#============================
	@property
	def target_fps(self) -> int:
		if self.fps == 'auto':
			return AUTO_FPS
		return self.fps

	#============================
	@property
	def resolution_label(self) -> str:
		if self.resolution == 'auto':
			return 'auto'
		return f"{self.resolution[0]}x{self.resolution[1]}"

	#============================
	def apply_preset(self, preset_id: str) -> 'ConversionSettings':
		preset = PRESETS.get(preset_id)
		if preset is None:
			raise ValidationError(f"unknown preset: {preset_id}")
		return dataclasses.replace(self, resolution=preset['resolution'],
			fps=preset['fps'], duration=preset['duration'],
			preset_id=preset_id, preset_state=PresetState.EXACT)

	#============================
	def with_changes(self, **changes) -> 'ConversionSettings':
		"""
		Return a new settings value with manual edits applied.

		The preset state is recomputed: any preset-governed field that no
		longer matches the applied preset makes it CUSTOM, matching all of
		them again restores EXACT. fill_color never affects it.
		"""
		for key in ('preset_id', 'preset_state'):
			if key in changes:
				raise ValidationError(f"{key} is set through apply_preset")
		updated = dataclasses.replace(self, **changes)
		if updated.preset_id is None:
			return updated
		state = PresetState.EXACT
		if not preset_matches(updated, updated.preset_id):
			state = PresetState.CUSTOM
		return dataclasses.replace(updated, preset_state=state)

#============================================

def preset_matches(settings: ConversionSettings, preset_id: str) -> bool:
	reference = ConversionSettings().apply_preset(preset_id)
	for field_name in PRESET_FIELDS:
		if getattr(settings, field_name) != getattr(reference, field_name):
			return False
	return True

#============================================

@dataclasses.dataclass(frozen=True)
class OverlayConfig():
	enabled: bool = False
	blob: object = None
	position: str = 'bottom-right'
	scale: int = 25
	margin: int = 16
	opacity: float = 0.9
	preview_handle: str = None

	#============================
	def __post_init__(self):
		object.__setattr__(self, 'scale', to_number(self.scale, int, "overlay scale"))
		object.__setattr__(self, 'margin', to_number(self.margin, int, "overlay margin"))
		object.__setattr__(self, 'opacity',
			to_number(self.opacity, float, "overlay opacity"))

	#============================
	@property
	def active(self) -> bool:
		return bool(self.enabled) and self.blob is not None

	#============================
	def validate(self) -> list:
		errors = []
		if self.enabled and self.blob is None:
			errors.append("overlay is enabled but no image file is selected")
		if self.scale < 10 or self.scale > 100:
			errors.append("overlay scale must be between 10% and 100%")
		if self.margin < 0 or self.margin > 64:
			errors.append("overlay margin must be between 0 and 64 pixels")
		if self.opacity < 0.1 or self.opacity > 1.0:
			errors.append("overlay opacity must be between 0.1 and 1.0")
		if self.position not in OVERLAY_POSITIONS:
			errors.append(f"invalid overlay position: {self.position}")
		return errors
