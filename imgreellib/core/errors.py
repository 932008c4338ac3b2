#!/usr/bin/env python3

#============================================

class ValidationError(RuntimeError):
	"""Input rejected before any engine interaction."""

#============================================

class DecodeError(RuntimeError):
	"""A single HEIC/HEIF file could not be decoded."""

#============================================

class EngineError(RuntimeError):
	"""The conversion engine failed to load or to run a command."""

#============================================

class ConversionError(RuntimeError):
	"""A conversion run ended in the error phase."""

#============================================

class BusyError(RuntimeError):
	"""A conversion run is already in flight."""
