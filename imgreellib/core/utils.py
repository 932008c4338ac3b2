#!/usr/bin/env python3

import math
import re
import subprocess
import sys
import natsort

#============================================

_QUIET_MODE = False

#============================================

def set_quiet_mode(quiet: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def info(msg: str) -> None:
	if not _QUIET_MODE:
		print(msg)

#============================================

def warn(msg: str) -> None:
	sys.stderr.write(f"WARNING: {msg}\n")

#============================================

def runCmd(argv: list, cwd: str = None) -> subprocess.CompletedProcess:
	"""
	Echo and run one command given as an argument list.

	The completed process is returned unchecked; callers decide what a
	non-zero exit means.
	"""
	showcmd = " ".join(str(arg) for arg in argv)
	showcmd = re.sub("  *", " ", showcmd)
	info(f"CMD: '{showcmd}'")
	proc = subprocess.run([str(arg) for arg in argv], cwd=cwd,
		stdout=subprocess.PIPE, stderr=subprocess.PIPE)
	return proc

#============================================

def make_even(value: int) -> int:
	value = int(value)
	if value % 2 == 0:
		return value
	return value + 1

#============================================

_NATURAL_KEY = natsort.natsort_keygen(alg=natsort.ns.LOCALE | natsort.ns.IGNORECASE)

def natural_sort_key(name: str) -> tuple:
	"""
	Locale-aware, numeric-aware, case-insensitive sort key so img_2 sorts
	before img_10.
	"""
	return _NATURAL_KEY(name)

#============================================

def format_bytes(num_bytes) -> str:
	if num_bytes is None:
		return "--"
	sizes = ('B', 'KB', 'MB', 'GB')
	if num_bytes <= 0:
		return "0 B"
	index = int(math.floor(math.log(num_bytes) / math.log(1024)))
	index = min(index, len(sizes) - 1)
	value = num_bytes / (1024 ** index)
	if index == 0:
		return f"{value:.0f} {sizes[index]}"
	return f"{value:.1f} {sizes[index]}"

#============================================

def format_seconds(seconds: float) -> str:
	minutes = int(seconds // 60)
	secs = int(seconds % 60)
	return f"{minutes:02d}:{secs:02d}"
