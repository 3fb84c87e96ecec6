"""Specifier classification and filesystem resolution.

Resolution follows the bundler convention: try the path as written, then
with each known extension, then as a directory ``index`` file. A direct
file always wins over an index file of the same base name.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import config
from .models import ImportCategory, Resolution
from .scanner import normalize_path

logger = logging.getLogger(__name__)


def is_relative(specifier: str) -> bool:
    if specifier in (".", ".."):
        return True
    return specifier.startswith("./") or specifier.startswith("../")


def classify(specifier: str, alias_prefixes: Iterable[str] = (config.DEFAULT_ALIAS_PREFIX,)) -> ImportCategory:
    """Category of *specifier*, decided from its syntax alone."""
    if is_relative(specifier):
        return ImportCategory.RELATIVE
    for prefix in alias_prefixes:
        if specifier.startswith(prefix):
            return ImportCategory.ALIASED
    return ImportCategory.EXTERNAL


def package_name(specifier: str) -> str:
    """``@scope/pkg/sub`` -> ``@scope/pkg``; ``pkg/sub`` -> ``pkg``."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def relative_depth(specifier: str) -> int:
    """Number of ``..`` segments in a relative specifier."""
    return sum(1 for part in specifier.split("/") if part == "..")


class PathResolver:
    """Map import specifiers to files on disk.

    ``aliases`` maps an alias prefix (``"@/"``) to the directory it stands
    for. When several prefixes match, the longest one is used.
    """

    def __init__(
        self,
        aliases: Optional[Dict[str, str]] = None,
        extensions: Sequence[str] = config.RESOLVE_EXTENSIONS,
    ) -> None:
        self.aliases: List[Tuple[str, str]] = sorted(
            ((prefix, normalize_path(root)) for prefix, root in (aliases or {}).items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        self.extensions = tuple(extensions)

    @property
    def alias_prefixes(self) -> List[str]:
        return [prefix for prefix, _ in self.aliases]

    def classify(self, specifier: str) -> ImportCategory:
        return classify(specifier, self.alias_prefixes)

    def base_path(self, specifier: str, from_file: str) -> Optional[str]:
        """Unresolved candidate path for a relative or aliased specifier."""
        if is_relative(specifier):
            return normalize_path(os.path.join(os.path.dirname(from_file), specifier))
        for prefix, root in self.aliases:
            if specifier.startswith(prefix):
                remainder = specifier[len(prefix):]
                return normalize_path(os.path.join(root, remainder)) if remainder else root
        return None

    def candidates(self, base: str) -> List[str]:
        return (
            [base]
            + [base + ext for ext in self.extensions]
            + [f"{base}/index{ext}" for ext in self.extensions]
        )

    def resolve(self, specifier: str, from_file: str) -> Resolution:
        category = self.classify(specifier)
        if category is ImportCategory.EXTERNAL:
            return Resolution(specifier=specifier, category=category)

        base = self.base_path(specifier, from_file)
        if base is None:
            return Resolution(specifier, category, reason=f"no alias matches '{specifier}'")

        for candidate in self.candidates(base):
            if os.path.isfile(candidate):
                return Resolution(specifier, category, resolved_path=candidate)

        logger.debug("Unresolved %s from %s (base %s)", specifier, from_file, base)
        return Resolution(specifier, category, reason=f"no file matches {base}")
