"""Pydantic models for the layer path list with strict validation.

The wire format is a JSON list of path specs::

    [
      {"path": "/nix/store/...-hello",
       "options": {
         "rewrite": {"regex": "^/nix/store/[^/]+-hello", "repl": "/opt/hello"},
         "perms": [{"regex": "/bin/.*", "mode": "0755"}]
       }},
      "/nix/store/...-glibc"
    ]

A bare string is a path without options. ``pattern``/``replacement`` are
accepted as aliases of ``regex``/``repl``.

Rewrites replace every match with Python's ``re.sub`` rules, which also
replace an empty match directly after a non-empty one: ``x*`` with ``-``
turns ``axb`` into ``-a--b-``. Patterns that can match the empty string are
best avoided.
"""

import os
import re
from typing import Iterator, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_validator,
    model_validator,
)

_GROUP_NAME_RE = re.compile(r"[A-Za-z0-9_]+")
_OCTAL_RE = re.compile(r"[0-7]+")


def _compile(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}")


def _extract_reference(template: str, pos: int) -> Optional[Tuple[str, int]]:
    """Parse a group reference right after a ``$`` at *pos*.

    Returns the group name and the position after the reference, or None
    when the reference is malformed.
    """
    braced = template.startswith("{", pos)
    start = pos + 1 if braced else pos
    m = _GROUP_NAME_RE.match(template, start)
    if m is None:
        return None
    end = m.end()
    if braced:
        if not template.startswith("}", end):
            return None
        end += 1
    return m.group(0), end


def _group_value(match: "re.Match[str]", name: str) -> str:
    if name.isdigit():
        index = int(name)
        if index > match.re.groups:
            return ""
        return match.group(index) or ""
    if name in match.re.groupindex:
        return match.group(name) or ""
    return ""


def expand_template(match: "re.Match[str]", template: str) -> str:
    """Expand group references in a replacement *template* for *match*.

    Rules:
    - ``$1``, ``${1}``, ``$name`` and ``${name}`` insert the group's text
    - ``$name`` takes the longest run of letters, digits and underscores
    - Missing or unmatched groups expand to the empty string
    - ``$$`` inserts a literal ``$``; a malformed reference leaves ``$`` as is
    - Backslashes have no special meaning
    """
    out: List[str] = []
    pos = 0
    while True:
        dollar = template.find("$", pos)
        if dollar < 0:
            out.append(template[pos:])
            break
        out.append(template[pos:dollar])
        pos = dollar + 1
        if template.startswith("$", pos):
            out.append("$")
            pos += 1
            continue
        ref = _extract_reference(template, pos)
        if ref is None:
            out.append("$")
            continue
        name, pos = ref
        out.append(_group_value(match, name))
    return "".join(out)


class RewriteRule(BaseModel):
    """Regex rewrite from a filesystem path to an archive entry name.

    An empty pattern disables the rewrite.
    """
    pattern: str = Field("", validation_alias=AliasChoices("regex", "pattern"))
    replacement: str = Field("", validation_alias=AliasChoices("repl", "replacement"))

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Validate the pattern compiles."""
        _compile(v)
        return v

    @property
    def enabled(self) -> bool:
        return self.pattern != ""

    def apply(self, path: str) -> str:
        """Replace every non-overlapping match of the pattern in *path*."""
        if not self.enabled:
            return path
        return _compile(self.pattern).sub(
            lambda m: expand_template(m, self.replacement), path
        )


class PermRule(BaseModel):
    """Mode override for every path its pattern matches."""
    pattern: str = Field(..., validation_alias=AliasChoices("regex", "pattern"))
    mode: str = Field(..., description="Octal permission string, e.g. '0755'")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Validate the pattern compiles."""
        _compile(v)
        return v

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Validate the mode is an octal string that fits in the tar mode bits."""
        digits = v.strip()
        if digits[:2] in ("0o", "0O"):
            digits = digits[2:]
        if not _OCTAL_RE.fullmatch(digits):
            raise ValueError(f"mode must be an octal string (e.g. '0644'), got {v!r}")
        if int(digits, 8) > 0o7777:
            raise ValueError(f"mode {v!r} exceeds 0o7777")
        return v

    @property
    def mode_bits(self) -> int:
        digits = self.mode.strip()
        if digits[:2] in ("0o", "0O"):
            digits = digits[2:]
        return int(digits, 8)

    def matches(self, path: str) -> bool:
        return _compile(self.pattern).search(path) is not None


class PathOptions(BaseModel):
    """Per-path archive options: name rewrite and ordered mode overrides."""
    rewrite: Optional[RewriteRule] = None
    perms: Tuple[PermRule, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("perms", mode="before")
    @classmethod
    def validate_perms(cls, v):
        """Treat a JSON null as no overrides."""
        return () if v is None else v

    def entry_name(self, path: str) -> str:
        """Archive entry name for the original filesystem *path*."""
        if self.rewrite is None:
            return path
        return self.rewrite.apply(path)

    def override_mode(self, path: str, mode: int) -> int:
        """Apply every matching perms rule in order; the last match wins."""
        for rule in self.perms:
            if rule.matches(path):
                mode = rule.mode_bits
        return mode


class PathSpec(BaseModel):
    """A root path of the layer plus the options applied to its subtree."""
    path: str
    options: Optional[PathOptions] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def accept_bare_path(cls, data):
        """A bare string or path-like stands for a path without options."""
        if isinstance(data, (str, os.PathLike)):
            return {"path": data}
        return data

    @field_validator("path", mode="before")
    @classmethod
    def validate_path(cls, v) -> str:
        """Validate the path is a non-empty string."""
        if isinstance(v, os.PathLike):
            v = os.fspath(v)
        if not isinstance(v, str):
            raise ValueError(f"path must be a string, got {type(v).__name__}")
        if v == "":
            raise ValueError("path must not be empty")
        return v


class Paths(RootModel[List[PathSpec]]):
    """Ordered list of root paths making up one layer."""

    def __iter__(self) -> Iterator[PathSpec]:
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> PathSpec:
        return self.root[index]

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "Paths":
        """Load a path list from JSON bytes (pure, no I/O)."""
        return cls.model_validate_json(data)
