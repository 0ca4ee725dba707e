"""Resolve string handler references to callables, once per process."""

from __future__ import annotations

import hashlib
import importlib
import importlib.machinery
import importlib.util
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Callable, Dict, Iterable, List, Optional

import structlog

logger = structlog.get_logger()

DEFAULT_ENTRY = "handle"


@dataclass(frozen=True)
class HandlerReference:
    """A parsed handler reference.

    ``path/to/unit.py[:func]`` names a file-resident unit,
    ``package.module[:func]`` an importable one. ``func`` defaults to
    ``handle``.
    """

    target: str
    entry: str
    is_file: bool

    @classmethod
    def parse(cls, ref: str) -> HandlerReference:
        ref = ref.strip()
        target, entry = ref, DEFAULT_ENTRY
        head, sep, tail = ref.rpartition(":")
        if sep and head and tail.isidentifier():
            target, entry = head, tail
        is_file = target.endswith(".py") or "/" in target or "\\" in target
        return cls(target=target, entry=entry, is_file=is_file)


class HandlerLoader:
    """Loads external handler units and caches them for the process lifetime."""

    def __init__(self, search_paths: Optional[Iterable[str | Path]] = None) -> None:
        self._search_paths: List[Path] = [Path(p) for p in (search_paths or [])]
        self._modules: Dict[str, ModuleType] = {}
        self._units: Dict[tuple, Callable] = {}

    @property
    def search_paths(self) -> List[Path]:
        return list(self._search_paths)

    def add_search_path(self, path: str | Path) -> None:
        path = Path(path)
        if path not in self._search_paths:
            self._search_paths.append(path)

    def locate(self, target: str) -> Optional[Path]:
        """Find a handler file, trying search paths for relative targets."""
        candidate = Path(target)
        if candidate.is_absolute():
            return candidate.resolve() if candidate.is_file() else None
        for base in self._search_paths:
            path = base / candidate
            if path.is_file():
                return path.resolve()
        if candidate.is_file():
            return candidate.resolve()
        return None

    def is_resolvable(self, ref: str) -> bool:
        """Check a reference can be found without importing or executing it."""
        if not isinstance(ref, str) or not ref.strip():
            return False
        parsed = HandlerReference.parse(ref)
        if parsed.is_file:
            return self.locate(parsed.target) is not None
        if parsed.target in self._modules:
            return True
        return _module_exists(parsed.target)

    def load(self, ref: str) -> Callable:
        """Return the callable a reference names, loading its module on first use."""
        parsed = HandlerReference.parse(ref)
        module = self._load_file(parsed.target) if parsed.is_file else self._import(parsed.target)
        key = (module.__name__, parsed.entry)

        unit = self._units.get(key)
        if unit is not None:
            return unit

        unit = getattr(module, parsed.entry, None)
        if unit is None:
            raise AttributeError(f"Handler unit '{parsed.target}' has no '{parsed.entry}'")
        if not callable(unit):
            raise TypeError(f"'{parsed.entry}' in '{parsed.target}' is not callable")

        self._units[key] = unit
        logger.debug("handler_loaded", ref=ref, module=module.__name__, entry=parsed.entry)
        return unit

    def loaded(self) -> List[str]:
        """Names of modules loaded so far."""
        return sorted(self._modules)

    def _import(self, target: str) -> ModuleType:
        module = self._modules.get(target)
        if module is None:
            module = importlib.import_module(target)
            self._modules[target] = module
        return module

    def _load_file(self, target: str) -> ModuleType:
        path = self.locate(target)
        if path is None:
            raise ImportError(f"Handler file not found: {target}")

        cache_key = str(path)
        module = self._modules.get(cache_key)
        if module is not None:
            return module

        digest = hashlib.sha1(cache_key.encode("utf-8")).hexdigest()[:10]
        module_name = f"phaseline_unit_{path.stem}_{digest}"

        # Another loader in this process may already have executed the file.
        module = sys.modules.get(module_name)
        if module is not None:
            self._modules[cache_key] = module
            return module

        spec = importlib.util.spec_from_file_location(module_name, str(path))
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load handler file: {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        self._modules[cache_key] = module
        return module


def _module_exists(name: str) -> bool:
    """Find a dotted module without importing any of its parent packages."""
    parts = name.split(".")
    if not all(part.isidentifier() for part in parts):
        return False

    search_path = None
    for depth in range(1, len(parts) + 1):
        qualified = ".".join(parts[:depth])
        module = sys.modules.get(qualified)
        if module is not None:
            locations = getattr(module, "__path__", None)
        elif depth == 1:
            try:
                spec = importlib.util.find_spec(qualified)
            except (ImportError, ValueError):
                return False
            if spec is None:
                return False
            locations = spec.submodule_search_locations
        else:
            spec = importlib.machinery.PathFinder.find_spec(qualified, search_path)
            if spec is None:
                return False
            locations = spec.submodule_search_locations

        if depth < len(parts):
            if locations is None:
                return False
            search_path = list(locations)
    return True
