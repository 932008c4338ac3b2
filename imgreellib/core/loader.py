#!/usr/bin/env python3

import os
import yaml
from imgreellib.core.errors import ValidationError
from imgreellib.core.settings import ConversionSettings
from imgreellib.core.settings import OverlayConfig
from imgreellib.media.blob import FileBlob

#============================================

SETTINGS_KEYS = ('resolution', 'fps', 'duration', 'fill_color')
OVERLAY_KEYS = ('position', 'scale', 'margin', 'opacity')

#============================================

class JobData():
	def __init__(self):
		self.yaml_file = None
		self.base_dir = '.'
		self.data = {}
		self.inputs = []
		self.settings = ConversionSettings()
		self.overlay = OverlayConfig()
		self.output_file = None
		self.ffmpeg_bin = None

#============================================

class JobLoader():
	"""
	Read an imgreel job YAML into settings, overlay, inputs and output.

	Relative paths are resolved against the YAML file's directory.
	"""
	def __init__(self, yaml_file: str):
		self.yaml_file = yaml_file

	#============================
	def load(self) -> JobData:
		job = JobData()
		job.yaml_file = self.yaml_file
		job.base_dir = os.path.dirname(os.path.abspath(self.yaml_file))
		job.data = self._load_yaml()
		self._validate_required_keys(job.data)
		job.inputs = self._parse_inputs(job, job.data.get('inputs'))
		job.settings = parse_settings(job.data.get('settings', {}))
		job.overlay = self._parse_overlay(job, job.data.get('overlay'))
		output = job.data.get('output')
		job.output_file = self._resolve_path(job, output['file'])
		job.ffmpeg_bin = output.get('ffmpeg')
		return job

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise ValidationError(f"file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 7:
			raise ValidationError("yaml file is larger than 10MB")
		with open(self.yaml_file, 'r') as data_file:
			try:
				data = yaml.safe_load(data_file)
			except yaml.YAMLError as exc:
				raise ValidationError(f"invalid yaml in {self.yaml_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise ValidationError("job yaml must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		if data.get('imgreel') != 1:
			raise ValidationError("imgreel must be set to 1")
		required_keys = ('inputs', 'output')
		for key in required_keys:
			if key not in data:
				raise ValidationError(f"missing required key: {key}")
		output = data.get('output')
		if not isinstance(output, dict) or output.get('file') is None:
			raise ValidationError("output.file is required")

	#============================
	def _parse_inputs(self, job: JobData, inputs) -> list:
		if isinstance(inputs, str):
			inputs = [inputs]
		if not isinstance(inputs, list) or len(inputs) == 0:
			raise ValidationError("inputs must be a non-empty list of paths")
		return [self._resolve_path(job, str(entry)) for entry in inputs]

	#============================
	def _parse_overlay(self, job: JobData, overlay) -> OverlayConfig:
		if overlay is None:
			return OverlayConfig()
		if not isinstance(overlay, dict):
			raise ValidationError("overlay must be a mapping")
		overlay_file = overlay.get('file')
		blob = None
		if overlay_file is not None:
			path = self._resolve_path(job, overlay_file)
			if not os.path.isfile(path):
				raise ValidationError(f"overlay file not found: {path}")
			blob = FileBlob.from_path(path)
		values = {key: overlay[key] for key in OVERLAY_KEYS if key in overlay}
		enabled = overlay.get('enabled', blob is not None)
		return OverlayConfig(enabled=bool(enabled), blob=blob, **values)

	#============================
	def _resolve_path(self, job: JobData, path: str) -> str:
		path = os.path.expanduser(path)
		if os.path.isabs(path):
			return path
		return os.path.join(job.base_dir, path)

#============================================

def parse_settings(raw: dict) -> ConversionSettings:
	"""
	Build settings from a mapping: preset first, explicit keys after.
	"""
	if raw is None:
		raw = {}
	if not isinstance(raw, dict):
		raise ValidationError("settings must be a mapping")
	unknown = set(raw.keys()) - set(SETTINGS_KEYS) - {'preset'}
	if len(unknown) > 0:
		raise ValidationError(f"unknown settings keys: {', '.join(sorted(unknown))}")
	settings = ConversionSettings()
	if raw.get('preset') is not None:
		settings = settings.apply_preset(raw['preset'])
	changes = {key: raw[key] for key in SETTINGS_KEYS if raw.get(key) is not None}
	if len(changes) > 0:
		settings = settings.with_changes(**changes)
	return settings
