"""Loading rule registries from TOML files and markdown rule documents."""

from __future__ import annotations

import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

import frontmatter

from ..config import EngineConfig
from ..errors import RegistryError
from ..models import Source
from .schema import KeywordMatch, ManifestMatch, RuleDef, RuleRegistry, SuffixMatch

logger = logging.getLogger(__name__)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _coerce_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, dict)):
        return [value]
    if isinstance(value, list):
        return value
    return []


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _score(raw: dict[str, Any], default: int, where: str) -> int:
    score = raw.get("score", default)
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        raise RegistryError(f"{where}: score must be a non-negative integer")
    return score


def _parse_suffixes(value: Any, default: int, where: str) -> tuple[SuffixMatch, ...]:
    out = []
    for raw in _coerce_list(value):
        if isinstance(raw, str):
            pattern, score = raw, default
        else:
            raw = _coerce_dict(raw)
            pattern, score = str(raw.get("pattern", "")), _score(raw, default, where)
        pattern = pattern.strip()
        if not pattern:
            continue
        if not pattern.startswith(".") and not any(ch in pattern for ch in "*?["):
            pattern = "." + pattern
        out.append(SuffixMatch(pattern=pattern, score=score))
    return tuple(out)


def _parse_manifests(value: Any, default: int, where: str) -> tuple[ManifestMatch, ...]:
    out = []
    for raw in _coerce_list(value):
        if isinstance(raw, str):
            # "package.json:react" or bare "go.mod"
            file, _, dependency = raw.partition(":")
            out_file, out_dep, score = file.strip(), dependency.strip() or None, default
        else:
            raw = _coerce_dict(raw)
            out_file = str(raw.get("file", "")).strip()
            out_dep = _str_or_none(raw.get("dependency"))
            score = _score(raw, default, where)
        if not out_file:
            raise RegistryError(f"{where}: manifest entry needs a file pattern")
        out.append(ManifestMatch(file=out_file, dependency=out_dep, score=score))
    return tuple(out)


def _parse_keywords(value: Any, default: int, where: str) -> tuple[KeywordMatch, ...]:
    out = []
    for raw in _coerce_list(value):
        if isinstance(raw, str):
            pattern, score = raw, default
        else:
            raw = _coerce_dict(raw)
            pattern, score = str(raw.get("pattern", "")), _score(raw, default, where)
        pattern = pattern.strip()
        if pattern:
            out.append(KeywordMatch(pattern=pattern, score=score))
    return tuple(out)


def _parse_ids(value: Any) -> tuple[str, ...]:
    return tuple(str(v).strip() for v in _coerce_list(value) if str(v).strip())


def parse_rule(raw: dict[str, Any], config: EngineConfig, *, rule_id: str | None = None, path: str | None = None) -> RuleDef:
    """Build a RuleDef from a TOML table or frontmatter mapping."""
    rid = str(raw.get("id") or rule_id or "").strip()
    if not rid:
        raise RegistryError(f"{path or 'registry'}: rule id is required")
    where = f"rule {rid}"

    return RuleDef(
        id=rid,
        description=_str_or_none(raw.get("description")),
        suffixes=_parse_suffixes(raw.get("suffixes"), config.weight_for(Source.FILE_TYPE), where),
        manifests=_parse_manifests(raw.get("manifests"), config.weight_for(Source.MANIFEST), where),
        keywords=_parse_keywords(raw.get("keywords"), config.weight_for(Source.KEYWORD), where),
        required=_parse_ids(raw.get("required")),
        optional=_parse_ids(raw.get("optional")),
        path=path,
    )


def build_registry(
    rules: list[RuleDef],
    *,
    registry_id: str,
    version: int,
    config: EngineConfig | None = None,
    description: str | None = None,
) -> RuleRegistry:
    """Assemble and validate a registry. Raises on duplicate ids and required cycles."""
    by_id: dict[str, RuleDef] = {}
    for rule in rules:
        if rule.id in by_id:
            raise RegistryError(f"duplicate rule id: {rule.id}")
        by_id[rule.id] = rule

    registry = RuleRegistry(
        registry_id=registry_id,
        version=version,
        rules=by_id,
        config=config or EngineConfig(),
        description=description,
    )
    for src, dst in registry.graph.dangling():
        logger.warning("rule %s references unknown rule %s", src, dst)
    logger.debug("loaded registry %s v%d with %d rules", registry_id, version, len(by_id))
    return registry


def load_registry_data(data: dict[str, Any], *, origin: str = "registry") -> RuleRegistry:
    registry_id = str(data.get("registry_id", "")).strip()
    if not registry_id:
        raise RegistryError(f"{origin}: registry_id is required")

    version = data.get("version", 0)
    if isinstance(version, bool) or not isinstance(version, int) or version <= 0:
        raise RegistryError(f"{origin}: version must be a positive integer")

    config = EngineConfig.from_tables(_coerce_dict(data.get("engine")), _coerce_dict(data.get("weights")))

    rules = []
    for raw in data.get("rules", []):
        if not isinstance(raw, dict):
            continue
        rules.append(parse_rule(raw, config, path=origin))

    return build_registry(
        rules,
        registry_id=registry_id,
        version=version,
        config=config,
        description=_str_or_none(data.get("description")),
    )


def load_registry(path: Path) -> RuleRegistry:
    """
    Load a rule registry from TOML.

    Rules are data; matching and resolution are code.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise RegistryError(f"{path}: {exc}") from exc
    return load_registry_data(data, origin=str(path))


def load_default_registry() -> RuleRegistry:
    """Load the registry shipped with the package."""
    text = resources.files("ctxrules").joinpath("data/registry.toml").read_text(encoding="utf-8")
    return load_registry_data(tomllib.loads(text), origin="ctxrules:data/registry.toml")


def _document_rule_id(path: Path) -> str:
    # skills/<name>/SKILL.md is named after its directory
    if path.name.upper() == "SKILL.MD":
        return path.parent.name
    return path.stem


def load_rule_documents(
    directory: Path,
    *,
    registry_id: str | None = None,
    version: int = 1,
    config: EngineConfig | None = None,
) -> RuleRegistry:
    """Build a registry from markdown rule documents with YAML frontmatter.

    Only the frontmatter is read; document bodies belong to the rule store.
    Documents without applicability or dependency keys are skipped.
    """
    config = config or EngineConfig()
    keys = {"suffixes", "manifests", "keywords", "required", "optional"}

    rules = []
    for path in sorted(directory.rglob("*.md")):
        post = frontmatter.load(path)
        fm = post.metadata
        if not keys.intersection(fm):
            continue
        rel = path.relative_to(directory).as_posix()
        rules.append(parse_rule(dict(fm), config, rule_id=_document_rule_id(path), path=rel))

    return build_registry(
        rules,
        registry_id=registry_id or f"documents/{directory.name}",
        version=version,
        config=config,
    )
