"""Local implementation of the host runtime consumed by tasks.

Tasks only rely on a small contract: property rendering, file storage, a
working directory for temp files, counters and a logger. ``RunContext``
provides all of it on top of the local filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional
from urllib.parse import unquote, urlparse
import logging
import os
import re
import shutil
import tempfile
import uuid

from .config import _get_bool, parse_duration
from .exceptions import RenderingError
from .models import Counter

logger = logging.getLogger(__name__)

STORAGE_SCHEME = "storage"

_EXPRESSION = re.compile(r"\{\{\s*(.+?)\s*\}\}")
_ENV_CALL = re.compile(r"""^env\(\s*['"]([^'"]+)['"]\s*\)$""")


@dataclass(frozen=True)
class Property:
    """A task property holding a literal or a ``{{ ... }}`` expression."""

    value: Any

    @classmethod
    def of(cls, value: Any) -> "Property":
        return cls(value)


class LocalStorage:
    """Blob storage rooted at a local directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def put_file(self, path: Path | str) -> str:
        source = Path(path)
        name = f"{uuid.uuid4().hex}{source.suffix}"
        shutil.copyfile(source, self.root / name)
        logger.debug("Stored %s as %s", source, name)
        return f"{STORAGE_SCHEME}:///{name}"

    def get_file(self, uri: str) -> BinaryIO:
        return open(self._resolve(uri), "rb")

    def _resolve(self, uri: str) -> Path:
        parsed = urlparse(str(uri))
        if parsed.scheme == STORAGE_SCHEME:
            return self.root / unquote(parsed.path).lstrip("/")
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        raise ValueError(f"Unsupported storage URI: {uri}")


class WorkingDir:
    """Per-run scratch directory."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)

    def create_temp_file(self, suffix: str = "") -> Path:
        fd, name = tempfile.mkstemp(suffix=suffix, dir=self.path)
        os.close(fd)
        return Path(name)


class RunContext:
    """Everything a task sees of the host while it runs."""

    def __init__(
        self,
        variables: Optional[Mapping[str, Any]] = None,
        storage: Optional[LocalStorage] = None,
        working_dir: Optional[WorkingDir] = None,
        task_id: Optional[str] = None,
    ) -> None:
        base = None
        if storage is None or working_dir is None:
            base = Path(tempfile.mkdtemp(prefix="influxdb_tasks_"))
        self.variables: Dict[str, Any] = dict(variables or {})
        self.storage = storage or LocalStorage(base / "storage")
        self.working_dir = working_dir or WorkingDir(base / "work")
        self.task_id = task_id
        self._metrics: List[Counter] = []

    # -------------------- Rendering --------------------

    def render(self, value: Any, as_type: Any = None, default: Any = None) -> Any:
        """Resolve a literal, ``Property`` or expression and coerce it to ``as_type``."""
        if isinstance(value, Property):
            value = value.value
        if value is None:
            return default
        if isinstance(value, str):
            value = self._render_string(value)
        elif isinstance(value, (list, tuple)):
            value = [self._render_string(v) if isinstance(v, str) else v for v in value]
        if value is None:
            return default
        return _coerce(value, as_type)

    def _render_string(self, text: str) -> Any:
        whole = _EXPRESSION.fullmatch(text.strip())
        if whole:
            return self._evaluate(whole.group(1))
        return _EXPRESSION.sub(lambda m: str(self._evaluate(m.group(1))), text)

    def _evaluate(self, expression: str) -> Any:
        env_call = _ENV_CALL.match(expression)
        if env_call:
            name = env_call.group(1)
            if name not in os.environ:
                raise RenderingError(f"Environment variable '{name}' is not set")
            return os.environ[name]
        current: Any = self.variables
        for part in expression.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                raise RenderingError(f"Unable to render '{{{{ {expression} }}}}': '{part}' is undefined")
        return current

    # -------------------- Metrics / logging --------------------

    def metric(self, counter: Counter) -> None:
        self._metrics.append(counter)

    @property
    def metrics(self) -> List[Counter]:
        return list(self._metrics)

    def metric_value(self, name: str) -> Optional[int]:
        """Value of the last counter published under ``name``."""
        for counter in reversed(self._metrics):
            if counter.name == name:
                return counter.value
        return None

    def logger(self) -> logging.Logger:
        return logging.getLogger(f"{__name__}.{self.task_id or 'task'}")


def _coerce(value: Any, as_type: Any) -> Any:
    if as_type is None:
        return value
    try:
        if isinstance(as_type, type) and issubclass(as_type, Enum):
            parse = getattr(as_type, "parse", None)
            return parse(value) if parse else as_type(value)
        if as_type is bool:
            return value if isinstance(value, bool) else _get_bool(str(value))
        if as_type is int:
            return int(value)
        if as_type is str:
            return str(value)
        if as_type is timedelta:
            return parse_duration(value)
        if as_type is list:
            if isinstance(value, str):
                return [v.strip() for v in value.split(",") if v.strip()]
            return list(value)
    except (TypeError, ValueError) as exc:
        raise RenderingError(f"Unable to convert {value!r} to {getattr(as_type, '__name__', as_type)}") from exc
    return value
