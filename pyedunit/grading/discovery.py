"""Locate the CheckRegistry exported by an author's check module."""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable

from .checks import Check, CheckRegistry

LOGGER = logging.getLogger("pyedunit.discovery")

DEFAULT_ATTRIBUTE = "checks"


class CheckLoadError(RuntimeError):
    """The check module exists but raised while it was being executed.

    This usually comes from the submission a check module imports (a syntax
    error, or ``sys.exit`` at module level); ``cause`` holds that error.
    """

    def __init__(self, reference: str, cause: BaseException):
        self.reference = reference
        self.cause = cause
        super().__init__(f"Could not load checks from {reference}: {type(cause).__name__}: {cause}")


def extend_import_path(directories: Iterable[Path]) -> None:
    """Make submission and check directories importable (e.g. ``import solution``)."""
    for directory in directories:
        entry = str(Path(directory).expanduser().resolve())
        if entry not in sys.path:
            sys.path.insert(0, entry)


def _execute(reference: str, name: str, loader) -> ModuleType:
    try:
        return loader()
    except (Exception, SystemExit) as exc:
        sys.modules.pop(name, None)
        raise CheckLoadError(reference, exc) from exc


def _load_module(reference: str, target: str) -> ModuleType:
    path = Path(target).expanduser()
    if target.endswith(".py") or path.is_file():
        path = path.resolve()
        if not path.is_file():
            raise FileNotFoundError(f"Check module {path} does not exist")
        extend_import_path([path.parent])
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Cannot load check module from {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = module

        def run_file() -> ModuleType:
            spec.loader.exec_module(module)
            return module

        return _execute(reference, spec.name, run_file)
    # Raises ModuleNotFoundError for a missing module or parent package.
    if importlib.util.find_spec(target) is None:
        raise ModuleNotFoundError(f"No module named {target!r}", name=target)
    return _execute(reference, target, lambda: importlib.import_module(target))


def failed_registry(error: CheckLoadError) -> CheckRegistry:
    """A single check that re-raises ``error.cause``, so the run records it as failed."""

    def reraise(ctx) -> None:
        raise error.cause

    return CheckRegistry([Check(name="load_checks", description=f"Load checks from {error.reference}", body=reraise)])


def load_checks(reference: str) -> CheckRegistry:
    """Resolve ``module:attribute`` or ``path/to/checks.py:attribute``.

    The attribute defaults to ``checks`` and must be a CheckRegistry or a
    sequence of Check objects; its order is the evaluation order. A missing
    module or attribute raises ImportError, FileNotFoundError or ValueError;
    anything the module raises while executing becomes CheckLoadError.
    """
    target, separator, attribute = reference.rpartition(":")
    if not separator or len(target) == 1:
        # No attribute given, or only a drive letter was split off.
        target, attribute = reference, ""
    attribute = attribute or DEFAULT_ATTRIBUTE

    module = _load_module(reference, target)
    exported = getattr(module, attribute, None)
    if exported is None:
        raise ValueError(f"{target} does not define {attribute!r}")
    if isinstance(exported, CheckRegistry):
        registry = exported
    elif isinstance(exported, (list, tuple)) and all(isinstance(item, Check) for item in exported):
        registry = CheckRegistry(exported)
    else:
        raise ValueError(f"{target}:{attribute} is not a CheckRegistry (got {type(exported).__name__})")
    LOGGER.info("Loaded %d check(s) from %s", len(registry), reference)
    return registry


__all__ = ["CheckLoadError", "extend_import_path", "failed_registry", "load_checks"]
