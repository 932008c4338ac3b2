#!/usr/bin/env python3

import argparse
import sys
import yaml
from imgreellib.core import utils
from imgreellib.core.project import ImgReelProject
from imgreellib.core.settings import OVERLAY_POSITIONS
from imgreellib.core.settings import OverlayConfig
from imgreellib.core.settings import PRESETS
from imgreellib.media.blob import FileBlob
from imgreellib.media.engine import FFmpegEngine

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Turn still images into an MP4")
	parser.add_argument('inputs', nargs='*',
		help='image files and folders, in any order')
	parser.add_argument('-y', '--yaml', dest='yamlfile',
		help='job yaml file with inputs, settings, overlay and output')
	parser.add_argument('-o', '--output', dest='output_file',
		help='output mp4 file, overrides the yaml')
	parser.add_argument('-p', '--preset', dest='preset', choices=sorted(PRESETS),
		help='quick preset for resolution, fps and duration')
	parser.add_argument('-r', '--resolution', dest='resolution',
		help='auto, 720p, 1080p, or WxH')
	parser.add_argument('-f', '--fps', dest='fps',
		help='output frame rate, or auto')
	parser.add_argument('-d', '--duration', dest='duration', type=float,
		help='seconds each image stays on screen')
	parser.add_argument('-F', '--fill', dest='fill_color', choices=('black', 'white'),
		help='padding color')
	parser.add_argument('-w', '--overlay', dest='overlay_file',
		help='overlay/watermark image')
	parser.add_argument('--overlay-position', dest='overlay_position',
		choices=OVERLAY_POSITIONS, default='bottom-right',
		help='overlay position on a 3x3 grid')
	parser.add_argument('--overlay-scale', dest='overlay_scale', type=int, default=25,
		help='overlay width as a percent of the video width')
	parser.add_argument('--overlay-opacity', dest='overlay_opacity', type=float,
		default=0.9, help='overlay opacity, 0.1 to 1.0')
	parser.add_argument('--ffmpeg', dest='ffmpeg_bin',
		help='path to the ffmpeg binary')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='ingest and print the plan, do not encode')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print warnings and errors')
	args = parser.parse_args(argv)
	if args.yamlfile is None and len(args.inputs) == 0:
		parser.error("give input images/folders or a --yaml job file")
	if args.yamlfile is None and args.output_file is None and not args.dry_run:
		parser.error("--output is required without a --yaml job file")
	return args

#============================================

def build_project(args) -> ImgReelProject:
	engine = FFmpegEngine(ffmpeg_bin=args.ffmpeg_bin)
	if args.yamlfile is not None:
		project = ImgReelProject.from_yaml(args.yamlfile,
			output_override=args.output_file, dry_run=args.dry_run, engine=engine)
		if len(args.inputs) > 0:
			project.inputs += args.inputs
	else:
		project = ImgReelProject(args.inputs, output_file=args.output_file,
			engine=engine, dry_run=args.dry_run)
	settings = project.settings
	if args.preset is not None:
		settings = settings.apply_preset(args.preset)
	changes = {}
	for key in ('resolution', 'fps', 'duration', 'fill_color'):
		if getattr(args, key) is not None:
			changes[key] = getattr(args, key)
	if len(changes) > 0:
		settings = settings.with_changes(**changes)
	project.settings = settings
	if args.overlay_file is not None:
		project.overlay = OverlayConfig(enabled=True,
			blob=FileBlob.from_path(args.overlay_file),
			position=args.overlay_position, scale=args.overlay_scale,
			opacity=args.overlay_opacity)
	return project

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	project = None
	try:
		project = build_project(args)
		if args.dry_run:
			plan = project.plan()
			print(yaml.safe_dump(plan, sort_keys=False))
			return 0
		project.run()
	except RuntimeError as exc:
		sys.stderr.write(f"ERROR: {exc}\n")
		return 1
	finally:
		if project is not None:
			project.close()
	return 0


if __name__ == '__main__':
	sys.exit(main())
