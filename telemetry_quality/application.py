import json
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from telemetry_quality.errors import TelemetryFormatError


@dataclass
class ApplicationMetadata:
    """Описание оцениваемого приложения / Assessed application descriptor"""

    name: str = "application"
    type: str = ""
    technology: str = ""
    path: str = ""
    url: str = ""

    def has_type(self, marker: str) -> bool:
        """Case-insensitive check of the declared type, e.g. 'frontend'."""
        return marker.lower() in str(self.type or "").lower()

    @property
    def is_frontend(self) -> bool:
        return self.has_type("frontend")

    @property
    def is_backend(self) -> bool:
        return self.has_type("backend")

    def normalized_name(self, separator: str = "-") -> str:
        """'My Shop App' -> 'my-shop-app'"""
        parts = re.split(r"[^0-9a-zA-Z]+", str(self.name).strip().lower())
        return separator.join(part for part in parts if part)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicationMetadata":
        if not isinstance(data, Mapping):
            raise TelemetryFormatError("application metadata must be a JSON object")
        return cls(
            name=str(data.get("name") or "application"),
            type=str(data.get("type") or ""),
            technology=str(data.get("technology") or ""),
            path=str(data.get("path") or ""),
            url=str(data.get("url") or ""),
        )


def load_application_metadata(path: Union[str, Path]) -> ApplicationMetadata:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"application metadata file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise TelemetryFormatError(f"invalid application metadata JSON in '{path}': {e}") from e
    return ApplicationMetadata.from_dict(data)
