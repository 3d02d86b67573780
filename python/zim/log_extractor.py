#!/usr/bin/env python3
"""
Pull event extraction from container runtime logs.

Two line formats are supported, each with its own strategy:

- plain: journal text lines such as
  ``crio[581]: time="..." level=info msg="Pulled image: quay.io/calico/cni@sha256:4bf1..." id=...``
- json: ``journalctl -o json`` records, whose MESSAGE field holds the same text,
  or flat records carrying ``"image":"<ref>"``.

Extraction never raises; a line that does not name an image yields "".
"""

import json
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

from zim.utils.config_manager import ConfigValidationError, VALID_LOG_FORMATS
from zim.utils.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_MARKERS = ("Pulled image:",)
MESSAGE_FIELDS = ("MESSAGE", "msg", "message")
IMAGE_KEY_PATTERN = re.compile(r'"image"\s*:\s*"([^"]+)"')


@dataclass(frozen=True)
class PullEvent:
	"""A single observed image pull"""
	raw: str
	image_ref: str

	@property
	def has_reference(self) -> bool:
		return bool(self.image_ref)


def _extract_after_marker(text: str, markers: Sequence[str]) -> str:
	"""Return the image named after the first marker found in text."""
	for marker in markers:
		index = text.find(marker)
		if index == -1:
			continue
		image_part = text[index + len(marker):].strip()
		# kubelet style quotes the reference: Pulled image: "nginx:1.25"
		image_part = image_part.lstrip('"').strip()
		quote_index = image_part.find('"')
		if quote_index != -1:
			image_part = image_part[:quote_index]
		# Trailing metadata appended by the logging pipeline
		parts = image_part.split()
		return parts[0] if parts else ""
	return ""


class ExtractionStrategy:
	"""Finds the image reference named by a single log line"""

	name = ""

	def __init__(self, markers: Optional[Sequence[str]] = None):
		self.markers = tuple(markers) if markers else DEFAULT_MARKERS

	def extract(self, line: str) -> str:
		raise NotImplementedError


class PlainMarkerStrategy(ExtractionStrategy):
	"""Plain-text lines: the reference follows a marker phrase such as 'Pulled image:'."""

	name = "plain"

	def extract(self, line: str) -> str:
		return _extract_after_marker(line, self.markers)


class StructuredJSONStrategy(ExtractionStrategy):
	"""JSON records: an explicit "image" key, or a message field containing a marker phrase.

	Records that fail to decode (truncated output) are searched with a
	pattern for the "image" key, then for a marker phrase.
	"""

	name = "json"

	def extract(self, line: str) -> str:
		try:
			record = json.loads(line)
		except (ValueError, TypeError, RecursionError):
			record = None

		if isinstance(record, dict):
			return self._extract_from_record(record)

		match = IMAGE_KEY_PATTERN.search(line)
		if match:
			return match.group(1).strip()
		return _extract_after_marker(line, self.markers)

	def _extract_from_record(self, record: dict) -> str:
		image = record.get("image")
		if isinstance(image, str) and image.strip():
			return image.strip()

		for field in MESSAGE_FIELDS:
			message = record.get(field)
			if isinstance(message, list):
				# journald exports non-UTF-8 messages as byte arrays
				try:
					message = bytes(message).decode("utf-8", errors="replace")
				except (ValueError, TypeError):
					continue
			if isinstance(message, str):
				image = _extract_after_marker(message, self.markers)
				if image:
					return image
		return ""


STRATEGIES = {
	PlainMarkerStrategy.name: PlainMarkerStrategy,
	StructuredJSONStrategy.name: StructuredJSONStrategy,
}


def get_extraction_strategy(name: str, markers: Optional[Sequence[str]] = None) -> ExtractionStrategy:
	"""Build the strategy for a log format name ('plain' or 'json')."""
	strategy_cls = STRATEGIES.get(name)
	if strategy_cls is None:
		raise ConfigValidationError(
			f"Unknown log format '{name}', expected one of {', '.join(VALID_LOG_FORMATS)}"
		)
	return strategy_cls(markers)


class LogEventExtractor:
	"""Turns raw log lines into pull events using the configured strategy"""

	def __init__(self, strategy: ExtractionStrategy):
		self.strategy = strategy

	def extract(self, line: str) -> str:
		"""Image reference named by a line, or "" when there is none."""
		if not isinstance(line, str) or not line:
			return ""
		try:
			return self.strategy.extract(line).strip()
		except Exception as e:
			# Adversarial or truncated content never aborts the run
			logger.debug(f"Failed to extract image from line ({type(e).__name__}: {e}): {line[:200]!r}")
			return ""

	def iter_events(self, lines: Iterable[str]) -> Iterator[PullEvent]:
		for line in lines:
			yield PullEvent(raw=line, image_ref=self.extract(line))

	def extract_events(self, lines: Iterable[str]) -> List[PullEvent]:
		"""One PullEvent per line, in log order; unparsable lines carry an empty reference."""
		events = list(self.iter_events(lines))
		parsed = sum(1 for event in events if event.has_reference)
		logger.debug(f"Extracted {parsed} image references from {len(events)} log lines using '{self.strategy.name}' format")
		return events
