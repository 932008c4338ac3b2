#!/usr/bin/env python3

import uuid
from imgreellib.media.blob import HandleRegistry

#============================================

class FrameItem():
	def __init__(self, blob, preview_handle: str = None, delay_ms: int = None):
		self.id = uuid.uuid4().hex
		self.blob = blob
		self.preview_handle = preview_handle
		self.delay_ms = delay_ms

	#============================
	@property
	def name(self) -> str:
		return self.blob.name

	#============================
	def duration_seconds(self, default_seconds: float) -> float:
		if self.delay_ms is None:
			return float(default_seconds)
		return self.delay_ms / 1000.0

	#============================
	def __repr__(self) -> str:
		return f"FrameItem({self.id[:8]}, {self.blob.name!r})"

#============================================

class FrameSequence():
	"""
	Ordered frames owned by one conversion job.

	Position in the sequence is the only ordering; items never carry an
	index. Every preview handle is released when its frame is removed.
	"""
	def __init__(self, registry: HandleRegistry = None):
		if registry is None:
			registry = HandleRegistry()
		self.registry = registry
		self._items = []

	#============================
	def __len__(self) -> int:
		return len(self._items)

	#============================
	def __iter__(self):
		return iter(list(self._items))

	#============================
	def __getitem__(self, index: int) -> FrameItem:
		return self._items[index]

	#============================
	def add_files(self, blobs: list) -> list:
		added = []
		for blob in blobs:
			item = FrameItem(blob, preview_handle=self.registry.create(blob))
			self._items.append(item)
			added.append(item)
		return added

	#============================
	def ids(self) -> list:
		return [item.id for item in self._items]

	#============================
	def get(self, item_id: str) -> FrameItem:
		for item in self._items:
			if item.id == item_id:
				return item
		raise RuntimeError(f"frame not found: {item_id}")

	#============================
	def reorder(self, item_ids: list) -> None:
		if sorted(item_ids) != sorted(self.ids()):
			raise RuntimeError("reorder must list every frame exactly once")
		lookup = {item.id: item for item in self._items}
		self._items = [lookup[item_id] for item_id in item_ids]

	#============================
	def move(self, item_id: str, new_index: int) -> None:
		item = self.get(item_id)
		self._items.remove(item)
		new_index = max(0, min(new_index, len(self._items)))
		self._items.insert(new_index, item)

	#============================
	def remove(self, item_id: str) -> None:
		item = self.get(item_id)
		self._items.remove(item)
		self.registry.revoke(item.preview_handle)
		item.preview_handle = None

	#============================
	def set_delay(self, item_id: str, delay_ms) -> None:
		if delay_ms is not None and delay_ms <= 0:
			raise RuntimeError("frame delay must be positive")
		self.get(item_id).delay_ms = delay_ms

	#============================
	def clear(self) -> None:
		for item in self._items:
			self.registry.revoke(item.preview_handle)
			item.preview_handle = None
		self._items = []

	#============================
	def snapshot(self) -> list:
		return list(self._items)
