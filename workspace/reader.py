"""Project context reader.

Reads a bounded set of declarative files from a project root:
1. Dependency manifest (package.json or pyproject.toml) -> tech stack
2. Constraints file (markdown list) -> constraints and existing patterns

Only a failure to read the root itself is fatal. Missing, unreadable or
malformed optional files degrade to an unknown tech stack / empty lists.
"""

import json
import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from contracts import ProjectContext, TechStack
from errors import ContextReadError, MalformedConstraintEntry
from workspace.cache import ContextCache, fingerprint_files
from config import settings

logger = logging.getLogger(__name__)


# Framework names by priority tier. The first tier with any dependency match
# wins; inside a tier the manifest's declaration order breaks ties.
FRAMEWORK_TIERS: Tuple[Tuple[str, ...], ...] = (
    # Meta-frameworks
    ("next", "nuxt", "@remix-run/react", "@sveltejs/kit", "astro"),
    # UI libraries
    ("react", "vue", "svelte", "@angular/core", "solid-js"),
    # Node servers
    ("@nestjs/core", "express", "fastify", "koa", "hono"),
    # Python web
    ("django", "fastapi", "flask", "starlette"),
)

_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+[.)])(?:\s+(?P<text>.*))?$")
_HEADING = re.compile(r"^\s*#{1,6}\s+(?P<title>.+?)\s*#*\s*$")
_CHECKBOX = re.compile(r"^\[[ xX]\]\s*")
_FENCE = re.compile(r"^\s*(```|~~~)")
_VERSION = re.compile(r"\d+(?:\.[0-9A-Za-z-]+)*")
_PEP508_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(.*)$")


@dataclass
class Manifest:
    """Dependencies declared by one manifest, in declaration order."""
    kind: str
    dependencies: List[Tuple[str, str]] = field(default_factory=list)

    def names(self) -> List[str]:
        return [name for name, _ in self.dependencies]


def clean_version(spec: str) -> Optional[str]:
    """Reduce a version spec (^18.2.0, >=4.2,<5) to its first concrete version."""
    match = _VERSION.search(spec or "")
    return match.group(0) if match else None


def detect_framework(manifest: Manifest) -> Tuple[Optional[str], Optional[str]]:
    """Return (framework, version) using FRAMEWORK_TIERS priority."""
    for tier in FRAMEWORK_TIERS:
        for name, version in manifest.dependencies:
            if name.lower() in tier:
                return name, clean_version(version)
    return None, None


def parse_package_json(text: str) -> Manifest:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("package.json is not an object")
    deps: List[Tuple[str, str]] = []
    for section in ("dependencies", "devDependencies"):
        entries = data.get(section) or {}
        if not isinstance(entries, dict):
            continue
        for name, version in entries.items():
            deps.append((name, str(version)))
    return Manifest(kind="package.json", dependencies=deps)


def parse_pyproject(text: str) -> Manifest:
    data = tomllib.loads(text)
    deps: List[Tuple[str, str]] = []
    for requirement in data.get("project", {}).get("dependencies", []) or []:
        match = _PEP508_NAME.match(str(requirement))
        if not match:
            continue
        name = re.sub(r"[-_.]+", "-", match.group(1)).lower()
        version = match.group(2).split(";", 1)[0].strip()
        deps.append((name, version))
    # Poetry projects declare dependencies as a table
    poetry = data.get("tool", {}).get("poetry", {}).get("dependencies", {}) or {}
    for name, version in poetry.items():
        if name.lower() == "python":
            continue
        if isinstance(version, dict):
            version = version.get("version", "")
        deps.append((name.lower(), str(version)))
    return Manifest(kind="pyproject.toml", dependencies=deps)


MANIFEST_PARSERS = {
    "package.json": parse_package_json,
    "pyproject.toml": parse_pyproject,
}


def language_for(manifest: Manifest) -> Optional[str]:
    if manifest.kind == "package.json":
        return "TypeScript" if "typescript" in manifest.names() else "JavaScript"
    if manifest.kind == "pyproject.toml":
        return "Python"
    return None


def _parse_entry(line_no: int, line: str) -> Optional[str]:
    """Return the entry text of a list-item line, None for non-list lines."""
    match = _LIST_ITEM.match(line)
    if not match:
        return None
    text = _CHECKBOX.sub("", (match.group("text") or "").strip()).strip()
    if not text:
        raise MalformedConstraintEntry(line_no, line)
    return text


def parse_constraints(text: str) -> Tuple[List[str], List[str]]:
    """Split a constraints file into (constraints, existing_patterns).

    Only list items count. Items under a heading mentioning "pattern" are
    existing patterns; all other items are constraints. Fenced code is ignored.
    """
    constraints: List[str] = []
    patterns: List[str] = []
    target = constraints
    in_fence = False
    for line_no, line in enumerate(text.splitlines(), start=1):
        if _FENCE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        heading = _HEADING.match(line)
        if heading:
            target = patterns if "pattern" in heading.group("title").lower() else constraints
            continue
        try:
            entry = _parse_entry(line_no, line)
        except MalformedConstraintEntry as e:
            logger.warning("%s; skipped", e)
            continue
        if entry is not None:
            target.append(entry)
    return constraints, patterns


class ProjectContextReader:
    """Builds a ProjectContext from a project root passed in by the caller."""

    def __init__(
        self,
        manifest_files: Optional[Sequence[str]] = None,
        constraints_file: Optional[str] = None,
        cache: Optional[ContextCache] = None,
    ):
        """Initialize the reader.

        Args:
            manifest_files: Manifest file names in lookup order.
                            Defaults to config setting.
            constraints_file: Constraints file path relative to the root.
                              Defaults to config setting.
            cache: Optional shared ContextCache.
        """
        self.manifest_files = list(manifest_files or settings.manifest_files)
        self.constraints_file = constraints_file or settings.constraints_file
        self.cache = cache

    def read(self, project_root: Union[str, Path]) -> ProjectContext:
        """Read the project's declarative files.

        Raises:
            ContextReadError: If the root is missing, not a directory or unreadable.
        """
        root = Path(project_root)
        self._check_root(root)

        fingerprint = None
        if self.cache is not None:
            fingerprint = fingerprint_files(root, [*self.manifest_files, self.constraints_file])
            cached = self.cache.get(root.resolve(), fingerprint)
            if cached is not None:
                logger.debug("context cache hit for %s", root)
                return cached

        context = ProjectContext(
            tech_stack=self._read_tech_stack(root),
            **self._read_constraints(root),
        )
        if self.cache is not None:
            self.cache.put(root.resolve(), fingerprint, context)
        return context

    @staticmethod
    def _check_root(root: Path) -> None:
        if not root.exists():
            raise ContextReadError(root, "not found")
        if not root.is_dir():
            raise ContextReadError(root, "not a directory")
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise ContextReadError(root, e.strerror or str(e)) from e

    @staticmethod
    def _read_optional(path: Path) -> Optional[str]:
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("could not read %s: %s", path, e)
            return None

    def _read_manifest(self, root: Path) -> Optional[Manifest]:
        for name in self.manifest_files:
            text = self._read_optional(root / name)
            if text is None:
                continue
            parser = MANIFEST_PARSERS.get(Path(name).name)
            if parser is None:
                logger.warning("no parser for manifest %s", name)
                continue
            try:
                return parser(text)
            except (ValueError, tomllib.TOMLDecodeError) as e:
                # json.JSONDecodeError is a ValueError
                logger.warning("malformed manifest %s: %s", root / name, e)
                return None
        return None

    def _read_tech_stack(self, root: Path) -> TechStack:
        manifest = self._read_manifest(root)
        if manifest is None:
            return TechStack()
        framework, version = detect_framework(manifest)
        return TechStack(
            language=language_for(manifest),
            framework=framework,
            version=version,
        )

    def _read_constraints(self, root: Path) -> dict:
        text = self._read_optional(root / self.constraints_file)
        if text is None:
            return {"constraints": (), "existing_patterns": ()}
        constraints, patterns = parse_constraints(text)
        return {"constraints": tuple(constraints), "existing_patterns": tuple(patterns)}
