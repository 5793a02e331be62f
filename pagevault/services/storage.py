import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from pagevault.core.config import settings
from pagevault.utils.exceptions import NotFoundException, ValidationException

logger = logging.getLogger(__name__)


class StorageService:
	"""Local-disk document store rooted at settings.UPLOAD_DIR."""

	def _root(self) -> Path:
		# Resolved per call; UPLOAD_DIR may be overridden after import
		root = Path(settings.UPLOAD_DIR).resolve()
		root.mkdir(parents=True, exist_ok=True)
		return root

	def resolve_path(self, key: str) -> Path:
		root = self._root()
		path = (root / key).resolve()
		if path != root and root not in path.parents:
			raise ValidationException("Invalid storage key")
		return path

	def save_document(self, content: bytes, original_name: Optional[str] = None) -> tuple[str, int]:
		"""Write a document and return (storage key, size in bytes)."""
		suffix = Path(original_name or "").suffix.lower() or ".pdf"
		key = f"documents/{uuid.uuid4()}{suffix}"
		path = self.resolve_path(key)
		path.parent.mkdir(parents=True, exist_ok=True)
		tmp_path = path.with_name(path.name + ".part")
		with open(tmp_path, "wb") as fh:
			fh.write(content)
		os.replace(tmp_path, path)
		logger.info("Stored document", extra={"storage.key": key, "storage.size": len(content)})
		return key, len(content)

	def has_document(self, key: str) -> bool:
		return self.resolve_path(key).is_file()

	def read_document(self, key: str) -> bytes:
		path = self.resolve_path(key)
		if not path.is_file():
			raise NotFoundException("Document file not found")
		return path.read_bytes()

	def delete_document(self, key: str) -> bool:
		"""Remove a stored document. Returns False if it was already gone."""
		path = self.resolve_path(key)
		try:
			path.unlink()
		except FileNotFoundError:
			logger.warning("Document file already missing", extra={"storage.key": key})
			return False
		return True


storage_service = StorageService()
