"""
Credential persistence - provider name -> credential record.

The backing file is a single JSON document shared by every provider, so
writes always re-read the document and replace only one key.
"""
from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from th.core.config import get_auth_path

logger = logging.getLogger(__name__)


class CredentialRecord(BaseModel):
    """Stored credentials for one provider.

    ``kind`` is written as ``type`` to stay readable by other 008 clients.
    ``key`` and ``token`` belong to other auth kinds and are carried through
    untouched, as are any fields this version does not know about.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: str = Field(default="oauth", alias="type")
    refresh: Optional[str] = None
    access: Optional[str] = None
    expires: Optional[int] = None
    key: Optional[str] = None
    token: Optional[str] = None
    # Copilot API host the access token was issued for
    endpoint: Optional[str] = None

    @model_validator(mode="after")
    def _access_has_expiry(self) -> "CredentialRecord":
        if (self.access is None) != (self.expires is None):
            raise ValueError("access and expires must be set together")
        return self

    @property
    def is_oauth(self) -> bool:
        return self.kind == "oauth"

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CredentialStore(Protocol):
    """Storage for per-provider credential records."""

    def load(self, provider: str) -> Optional[CredentialRecord]:
        """Get the record for a provider, or None if there is none."""
        ...

    def save(self, provider: str, record: CredentialRecord) -> None:
        """Store a provider's record without touching the others."""
        ...

    def remove(self, provider: str) -> bool:
        """Delete a provider's record. Returns True if one existed."""
        ...

    def all(self) -> Dict[str, Any]:
        """Get the raw provider -> record document."""
        ...


def _parse_record(provider: str, raw: Any) -> Optional[CredentialRecord]:
    if not isinstance(raw, dict):
        return None
    try:
        return CredentialRecord.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed credentials for {provider}: {e.error_count()} error(s)")
        return None


class FileCredentialStore:
    """
    Credential store backed by a JSON file.

    Defaults to ``$XDG_CONFIG_HOME/008/auth.json``. The file is rewritten
    through a temporary sibling and ``os.replace`` so readers never see a
    half-written document, and it is kept owner read/write only.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path or get_auth_path()

    def all(self) -> Dict[str, Any]:
        """Read the whole document. Missing or corrupt files read as empty."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.debug(f"Unreadable credential file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, provider: str) -> Optional[CredentialRecord]:
        return _parse_record(provider, self.all().get(provider))

    def save(self, provider: str, record: CredentialRecord) -> None:
        data = self.all()
        data[provider] = record.to_dict()
        self._write(data)
        logger.debug(f"Saved credentials for {provider} to {self.path}")

    def remove(self, provider: str) -> bool:
        data = self.all()
        if provider not in data:
            return False
        del data[provider]
        self._write(data)
        return True

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(data, indent=2) + "\n"

        # mkstemp creates the file 0o600
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(serialized)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        try:
            self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)
        except OSError as e:
            logger.warning(f"Could not restrict permissions on {self.path}: {e}")


class MemoryCredentialStore:
    """In-process credential store with the same merge semantics."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def all(self) -> Dict[str, Any]:
        return dict(self._data)

    def load(self, provider: str) -> Optional[CredentialRecord]:
        return _parse_record(provider, self._data.get(provider))

    def save(self, provider: str, record: CredentialRecord) -> None:
        self._data[provider] = record.to_dict()

    def remove(self, provider: str) -> bool:
        return self._data.pop(provider, None) is not None
