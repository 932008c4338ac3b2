#!/usr/bin/env python3

from imgreellib.core import utils
from imgreellib.core.errors import ValidationError
from imgreellib.core.frames import FrameSequence
from imgreellib.core.loader import JobLoader
from imgreellib.core.orchestrator import ConversionOrchestrator
from imgreellib.core.orchestrator import build_playlist
from imgreellib.core.orchestrator import frame_name
from imgreellib.core.resolution import ResolutionResolver
from imgreellib.core.settings import ConversionSettings
from imgreellib.core.settings import OverlayConfig
from imgreellib.media.blob import HandleRegistry
from imgreellib.media.engine import FFmpegEngine
from imgreellib.media.filtergraph import build_video_filter
from imgreellib.media.heif import FormatNormalizer
from imgreellib.media.ingest import FileIngestionEngine
from imgreellib.media.ingest import handles_from_paths

#============================================

class ImgReelProject():
	def __init__(self, inputs: list, settings: ConversionSettings = None,
		overlay: OverlayConfig = None, output_file: str = None, engine=None,
		decoder=None, dry_run: bool = False):
		if settings is None:
			settings = ConversionSettings()
		if overlay is None:
			overlay = OverlayConfig()
		if engine is None:
			engine = FFmpegEngine()
		self.inputs = list(inputs)
		self.settings = settings
		self.overlay = overlay
		self.output_file = output_file
		self.dry_run = dry_run
		self.engine = engine
		self.registry = HandleRegistry()
		self.frames = FrameSequence(self.registry)
		self.ingestion = FileIngestionEngine(FormatNormalizer(decoder))
		self.resolver = ResolutionResolver()
		self.orchestrator = ConversionOrchestrator(engine, registry=self.registry,
			resolver=self.resolver)
		self.ingest_result = None

	#============================
	@classmethod
	def from_yaml(cls, yaml_file: str, output_override: str = None,
		dry_run: bool = False, engine=None) -> 'ImgReelProject':
		job = JobLoader(yaml_file).load()
		output_file = output_override or job.output_file
		if engine is None:
			engine = FFmpegEngine(ffmpeg_bin=job.ffmpeg_bin)
		return cls(job.inputs, settings=job.settings, overlay=job.overlay,
			output_file=output_file, engine=engine, dry_run=dry_run)

	#============================
	def ingest(self):
		items = handles_from_paths(self.inputs)
		result = self.ingestion.ingest(items)
		self.frames.add_files(result.ordered_files)
		self.ingest_result = result
		if result.normalized_count > 0:
			utils.info(f"converted {result.normalized_count} HEIC/HEIF file(s)")
		return result

	#============================
	def plan(self) -> dict:
		"""
		Describe the conversion without running the engine.
		"""
		if self.ingest_result is None:
			self.ingest()
		items = self.frames.snapshot()
		if len(items) == 0:
			raise ValidationError("add at least one image to convert")
		(width, height) = self.resolver.resolve(self.settings, items)
		names = [frame_name(index, item.blob) for index, item in enumerate(items)]
		durations = [item.duration_seconds(self.settings.duration) for item in items]
		overlay = self.overlay if self.overlay.active else None
		filter_spec = build_video_filter(width, height, self.settings.fill_color,
			overlay)
		return {
			'frames': [item.name for item in items],
			'folders': self.ingest_result.folder_count,
			'ignored': self.ingest_result.ignored_count,
			'converted_heic': self.ingest_result.normalized_count,
			'resolution': f"{width}x{height}",
			'fps': self.settings.target_fps,
			'duration_per_image': self.settings.duration,
			'preset': self.settings.preset_id,
			'preset_state': self.settings.preset_state.value,
			'filter': filter_spec.args(),
			'playlist': build_playlist(names, durations).splitlines(),
		}

	#============================
	def run(self):
		if self.ingest_result is None:
			self.ingest()
		if self.dry_run:
			self.plan()
			utils.info("dry run: validation complete")
			return None
		if self.output_file is None:
			raise ValidationError("output file is required")
		artifact = self.orchestrator.convert(self.frames, self.settings,
			self.overlay)
		artifact.write_to(self.output_file)
		utils.info(f"wrote {self.output_file} ({artifact.resolution_label}, "
			f"{artifact.size_label}, {utils.format_seconds(artifact.duration_seconds)})")
		return artifact

	#============================
	def close(self) -> None:
		self.orchestrator.reset()
		self.frames.clear()
		if hasattr(self.engine, 'close'):
			self.engine.close()
