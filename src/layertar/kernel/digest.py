"""Content digests for layer archives.

Digests use the content-addressable form ``<algorithm>:<hex>``, e.g.
``sha256:e3b0c442...``. sha256 is the canonical algorithm; sha384 and
sha512 are accepted for callers whose registry requires them.
"""

import hashlib
import re
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

CANONICAL_ALGORITHM = "sha256"

# algorithm -> hex digest length
SUPPORTED_ALGORITHMS = {
    "sha256": 64,
    "sha384": 96,
    "sha512": 128,
}

_DIGEST_RE = re.compile(r"([a-z0-9]+):([a-f0-9]+)")


class DigestError(ValueError):
    """Raised when a digest string is malformed or uses an unknown algorithm."""
    pass


def format_digest(algorithm: str, hex_digest: str) -> str:
    """Render an algorithm and hex digest as ``algorithm:hex``."""
    return f"{algorithm}:{hex_digest}"


def parse_digest(digest: str) -> Tuple[str, str]:
    """Split and validate an ``algorithm:hex`` digest string.

    Returns:
        (algorithm, hex) tuple

    Raises:
        DigestError: if the string is malformed, the algorithm unknown, or
            the hex part has the wrong length for the algorithm
    """
    m = _DIGEST_RE.fullmatch(digest)
    if m is None:
        raise DigestError(f"Malformed digest {digest!r}: expected '<algorithm>:<lowercase hex>'")
    algorithm, hex_digest = m.groups()
    expected = SUPPORTED_ALGORITHMS.get(algorithm)
    if expected is None:
        raise DigestError(f"Unsupported digest algorithm {algorithm!r}")
    if len(hex_digest) != expected:
        raise DigestError(
            f"Digest {digest!r} has {len(hex_digest)} hex characters, {algorithm} needs {expected}"
        )
    return algorithm, hex_digest


class LayerDigest(BaseModel):
    """Digest and byte count of one serialized archive."""
    digest: str = Field(..., description="Content digest, e.g. 'sha256:<64 hex chars>'")
    size: int = Field(..., ge=0, description="Archive length in bytes")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate the digest is ``algorithm:hex`` with a supported algorithm."""
        try:
            parse_digest(v)
        except DigestError as e:
            raise ValueError(str(e))
        return v

    @property
    def algorithm(self) -> str:
        return parse_digest(self.digest)[0]

    @property
    def hex(self) -> str:
        return parse_digest(self.digest)[1]


class Digester:
    """Incremental hash accumulator that also counts bytes."""

    def __init__(self, algorithm: str = CANONICAL_ALGORITHM):
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise DigestError(f"Unsupported digest algorithm {algorithm!r}")
        self.algorithm = algorithm
        self._hash = hashlib.new(algorithm)
        self.size = 0

    def update(self, data: bytes) -> None:
        self._hash.update(data)
        self.size += len(data)

    def digest(self) -> str:
        return format_digest(self.algorithm, self._hash.hexdigest())

    def result(self) -> LayerDigest:
        return LayerDigest(digest=self.digest(), size=self.size)
