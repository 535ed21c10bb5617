"""Compile and load synthesized units.

A `ModuleGateway` owns one session's loader space: a package registered in
`sys.modules` under a unique name, backed by the session's output directory.
Units are written to that directory, byte-compiled with `py_compile`, and
executed from the bytecode file. Type declarations are registered as
submodules of the session package so later units can import them; ordinary
units are never registered and disappear once their files are removed.
"""

from __future__ import annotations

import importlib.abc
import importlib.machinery
import importlib.util
import logging
import py_compile
import shutil
import sys
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ._context import get_active_gateway, reset_active_gateway, set_active_gateway
from ._errors import CompilationError, UnitLoadError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence
    from types import ModuleType

logger = logging.getLogger(__name__)

_UNIT_METHODS = ("initialize", "run")


@dataclass(frozen=True, slots=True)
class CompiledUnit:
    """A unit whose source compiled successfully and can be loaded.

    Attributes:
        name: The unit name, also the name of its module inside the session package.
        source_file: The written source file.
        bytecode_file: The compiled bytecode file.

    """

    name: str
    source_file: Path
    bytecode_file: Path


class _LookupPathFinder(importlib.abc.MetaPathFinder):
    """Resolve top-level imports against the active gateway's lookup paths.

    Installed once at the end of `sys.meta_path`, so it only sees imports the
    regular finders could not satisfy, and only while a unit is loading or
    running.
    """

    def find_spec(
        self,
        fullname: str,
        path: Sequence[str] | None,
        target: ModuleType | None = None,
    ) -> importlib.machinery.ModuleSpec | None:
        gateway = get_active_gateway()
        if gateway is None or path is not None or not gateway.lookup_paths:
            return None
        return importlib.machinery.PathFinder.find_spec(fullname, [str(p) for p in gateway.lookup_paths], target)


_FINDER = _LookupPathFinder()


def _install_finder() -> None:
    if _FINDER not in sys.meta_path:
        sys.meta_path.append(_FINDER)


def random_identifier(prefix: str) -> str:
    """Generate an identifier unique enough to name one evaluation attempt."""
    return f"{prefix}_{uuid.uuid4().hex}"


class ModuleGateway:
    """Compile/load collaborator for one session.

    Attributes:
        output_directory: Where unit sources and bytecode are written.
        package: Name of the session package in `sys.modules`.
        lookup_paths: Extra directories searched for imports made by units.

    """

    def __init__(self, output_directory: Path, lookup_paths: Iterable[Path] = ()) -> None:
        self.output_directory = output_directory
        self.package = random_identifier("_replcore")
        self.lookup_paths: list[Path] = [Path(p) for p in lookup_paths]
        self._types: list[str] = []

        spec = importlib.machinery.ModuleSpec(self.package, None, is_package=True)
        spec.submodule_search_locations.append(str(output_directory))  # type: ignore[union-attr]
        sys.modules[self.package] = importlib.util.module_from_spec(spec)
        _install_finder()
        logger.debug("Created session package %s in %s", self.package, output_directory)

    def source_file(self, unit_name: str) -> Path:
        return self.output_directory / f"{unit_name}.py"

    def bytecode_file(self, unit_name: str) -> Path:
        return self.output_directory / f"{unit_name}.pyc"

    def add_lookup_path(self, path: Path | str) -> None:
        self.lookup_paths.append(Path(path))
        logger.debug("Added lookup path %s", path)

    @property
    def loaded_types(self) -> tuple[str, ...]:
        """Names of the registered type modules, in registration order."""
        return tuple(self._types)

    def is_loaded(self, type_name: str) -> bool:
        return f"{self.package}.{type_name}" in sys.modules

    def compile(self, unit_name: str, source: str) -> CompiledUnit:
        """Write a unit's source and byte-compile it.

        Args:
            unit_name: Name of the unit; determines the file names.
            source: Complete module source.

        Returns:
            The compiled unit.

        Raises:
            CompilationError: If the source does not compile.

        """
        source_file = self.source_file(unit_name)
        bytecode_file = self.bytecode_file(unit_name)
        source_file.write_text(source, encoding="utf-8")
        logger.debug("Compiling %s (lookup paths: %s)", source_file, self.lookup_paths)

        try:
            py_compile.compile(str(source_file), cfile=str(bytecode_file), doraise=True)
        except py_compile.PyCompileError as e:
            raise CompilationError(unit_name, status=1, diagnostics=e.msg, source=source) from e

        return CompiledUnit(name=unit_name, source_file=source_file, bytecode_file=bytecode_file)

    def load_module(self, unit: CompiledUnit, *, register: bool = False) -> ModuleType:
        """Execute a compiled unit's bytecode as a module of the session package.

        Args:
            unit: The unit to load.
            register: Keep the module in `sys.modules` so later units can import it.

        Raises:
            UnitLoadError: If executing the module fails, including by `SystemExit`.

        """
        fullname = f"{self.package}.{unit.name}"
        loader = importlib.machinery.SourcelessFileLoader(fullname, str(unit.bytecode_file))
        spec = importlib.util.spec_from_loader(fullname, loader)
        if spec is None:
            raise UnitLoadError(unit.name, "no module spec for compiled unit")
        module = importlib.util.module_from_spec(spec)

        if register:
            sys.modules[fullname] = module
        try:
            loader.exec_module(module)
        except (Exception, SystemExit) as e:
            if register:
                sys.modules.pop(fullname, None)
            raise UnitLoadError(unit.name, f"{type(e).__name__}: {e}") from e

        if register:
            setattr(sys.modules[self.package], unit.name, module)
            self._types.append(unit.name)
        logger.debug("Loaded %s", fullname)
        return module

    def load(self, unit: CompiledUnit) -> type:
        """Load a compiled unit and return its executable unit class.

        Raises:
            UnitLoadError: If the module fails to load, lacks the unit class, or the
                class does not implement ``initialize`` and ``run``.

        """
        module = self.load_module(unit)
        unit_class = getattr(module, unit.name, None)
        if not isinstance(unit_class, type):
            raise UnitLoadError(unit.name, f"module does not define class '{unit.name}'")
        missing = [name for name in _UNIT_METHODS if not callable(getattr(unit_class, name, None))]
        if missing:
            raise UnitLoadError(unit.name, f"class '{unit.name}' does not implement {', '.join(missing)}")
        return unit_class

    @contextmanager
    def activated(self) -> Iterator[None]:
        """Make this gateway's lookup paths visible to imports in the current context."""
        token = set_active_gateway(self)
        try:
            yield
        finally:
            reset_active_gateway(token)

    @contextmanager
    def transient(self, unit_name: str) -> Iterator[None]:
        """Remove the unit's files when the block exits, however it exits."""
        try:
            yield
        finally:
            self.discard(unit_name)

    def discard(self, unit_name: str) -> None:
        self.source_file(unit_name).unlink(missing_ok=True)
        self.bytecode_file(unit_name).unlink(missing_ok=True)

    def purge(self) -> None:
        """Delete every file in the output directory; loaded modules stay loaded."""
        for path in self.output_directory.iterdir():
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            else:
                path.unlink(missing_ok=True)

    def close(self) -> None:
        """Unload the session package and remove the output directory."""
        prefix = f"{self.package}."
        for name in [name for name in sys.modules if name == self.package or name.startswith(prefix)]:
            del sys.modules[name]
        self._types.clear()
        shutil.rmtree(self.output_directory, ignore_errors=True)
        logger.debug("Closed session package %s", self.package)
