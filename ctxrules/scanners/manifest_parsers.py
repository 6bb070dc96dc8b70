"""Dependency extraction from project declaration files.

Each parser takes raw text and returns the declared dependency names, or
raises SourceScanError when the text cannot be parsed.
"""

from __future__ import annotations

import json
import re
import tomllib
from fnmatch import fnmatchcase
from typing import Any, Callable

import yaml

from ..errors import SourceScanError
from ..models import ManifestFile, Source

_PEP508_NAME = re.compile(r"^\s*([A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?)")
_GO_REQUIRE = re.compile(r"^\s*(\S+)\s+v\S+")


def normalize_python_name(name: str) -> str:
    return re.sub(r"[-_.]+", "-", name).lower()


def _fail(manifest: ManifestFile, reason: str) -> SourceScanError:
    return SourceScanError(Source.MANIFEST.value, manifest.path, reason)


def _mapping_keys(data: dict[str, Any], *sections: str) -> set[str]:
    out = set()
    for section in sections:
        value = data.get(section)
        if isinstance(value, dict):
            out.update(str(k) for k in value)
    return out


def parse_package_json(manifest: ManifestFile) -> set[str]:
    try:
        data = json.loads(manifest.text or "")
    except json.JSONDecodeError as exc:
        raise _fail(manifest, f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    if not isinstance(data, dict):
        raise _fail(manifest, "top level is not an object")
    return _mapping_keys(data, "dependencies", "devDependencies", "peerDependencies", "optionalDependencies")


def parse_composer_json(manifest: ManifestFile) -> set[str]:
    try:
        data = json.loads(manifest.text or "")
    except json.JSONDecodeError as exc:
        raise _fail(manifest, f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    if not isinstance(data, dict):
        raise _fail(manifest, "top level is not an object")
    return _mapping_keys(data, "require", "require-dev")


def parse_requirements(manifest: ManifestFile) -> set[str]:
    out = set()
    for line in (manifest.text or "").splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        m = _PEP508_NAME.match(line)
        if m and "://" not in line.split(";", 1)[0].split("@", 1)[0]:
            out.add(normalize_python_name(m.group(1)))
    return out


def _pep508_names(specs: Any) -> set[str]:
    out = set()
    if not isinstance(specs, list):
        return out
    for spec in specs:
        if isinstance(spec, str):
            m = _PEP508_NAME.match(spec)
            if m:
                out.add(normalize_python_name(m.group(1)))
    return out


def parse_pyproject(manifest: ManifestFile) -> set[str]:
    try:
        data = tomllib.loads(manifest.text or "")
    except tomllib.TOMLDecodeError as exc:
        raise _fail(manifest, f"invalid TOML: {exc}") from exc

    out = set()
    project = data.get("project")
    if isinstance(project, dict):
        out |= _pep508_names(project.get("dependencies"))
        optional = project.get("optional-dependencies")
        if isinstance(optional, dict):
            for specs in optional.values():
                out |= _pep508_names(specs)

    poetry = data.get("tool", {}).get("poetry") if isinstance(data.get("tool"), dict) else None
    if isinstance(poetry, dict):
        names = _mapping_keys(poetry, "dependencies", "dev-dependencies")
        groups = poetry.get("group")
        if isinstance(groups, dict):
            for group in groups.values():
                if isinstance(group, dict):
                    names |= _mapping_keys(group, "dependencies")
        out |= {normalize_python_name(n) for n in names if n.lower() != "python"}
    return out


def parse_go_mod(manifest: ManifestFile) -> set[str]:
    text = manifest.text or ""
    if not re.search(r"^\s*module\s+\S+", text, re.MULTILINE):
        raise _fail(manifest, "missing module directive")

    out = set()
    in_block = False
    for raw in text.splitlines():
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        if in_block:
            if line == ")":
                in_block = False
                continue
            m = _GO_REQUIRE.match(line)
            if m:
                out.add(m.group(1))
        elif line.startswith("require"):
            rest = line[len("require"):].strip()
            if rest == "(":
                in_block = True
                continue
            m = _GO_REQUIRE.match(rest)
            if m:
                out.add(m.group(1))
    if in_block:
        raise _fail(manifest, "unterminated require block")
    return out


def parse_cargo_toml(manifest: ManifestFile) -> set[str]:
    try:
        data = tomllib.loads(manifest.text or "")
    except tomllib.TOMLDecodeError as exc:
        raise _fail(manifest, f"invalid TOML: {exc}") from exc

    sections = ("dependencies", "dev-dependencies", "build-dependencies")
    out = _mapping_keys(data, *sections)
    workspace = data.get("workspace")
    if isinstance(workspace, dict):
        out |= _mapping_keys(workspace, "dependencies")
    targets = data.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            if isinstance(target, dict):
                out |= _mapping_keys(target, *sections)
    return out


def parse_pubspec(manifest: ManifestFile) -> set[str]:
    try:
        data = yaml.safe_load(manifest.text or "")
    except yaml.YAMLError as exc:
        raise _fail(manifest, f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise _fail(manifest, "top level is not a mapping")
    return _mapping_keys(data, "dependencies", "dev_dependencies")


# file-name glob -> parser; first match wins
PARSERS: list[tuple[str, Callable[[ManifestFile], set[str]]]] = [
    ("package.json", parse_package_json),
    ("composer.json", parse_composer_json),
    ("requirements*.txt", parse_requirements),
    ("pyproject.toml", parse_pyproject),
    ("go.mod", parse_go_mod),
    ("cargo.toml", parse_cargo_toml),
    ("pubspec.yaml", parse_pubspec),
]

KNOWN_MANIFESTS = (
    "package.json",
    "tsconfig.json",
    "composer.json",
    "requirements.txt",
    "requirements-dev.txt",
    "pyproject.toml",
    "go.mod",
    "Cargo.toml",
    "pubspec.yaml",
    "ios/Podfile",
    "android/build.gradle",
    "prisma/schema.prisma",
)


def parser_for(manifest: ManifestFile) -> Callable[[ManifestFile], set[str]] | None:
    name = manifest.name.lower()
    for pattern, parser in PARSERS:
        if fnmatchcase(name, pattern):
            return parser
    return None


def parse_dependencies(manifest: ManifestFile) -> set[str] | None:
    """Declared dependency names, or None for presence-only files.

    Raises SourceScanError when the file is unreadable or malformed.
    """
    if manifest.text is None:
        raise _fail(manifest, "file could not be read")
    parser = parser_for(manifest)
    if parser is None:
        return None
    return parser(manifest)
