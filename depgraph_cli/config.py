"""Default settings and configuration paths for depgraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("DEPGRAPH_HOME", str(Path.home() / ".depgraph"))).expanduser()
USER_CONFIG_FILE = BASE_DIR / "config.toml"
PROJECT_CONFIG_NAME = os.environ.get("DEPGRAPH_CONFIG", "depgraph.toml")

DEFAULT_SRC_DIR = "src"
SUPPORTED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
# Order matters: it is the extension search order used during resolution.
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
# Unless configured otherwise this prefix maps onto the source directory.
DEFAULT_ALIAS_PREFIX = "@/"

EXCLUDE_DIRS = {
    "node_modules", ".next", ".git", "dist", "build", "out",
    "coverage", ".turbo", ".vercel", ".backup", "__pycache__",
}

MAX_FILE_BYTES = 1024 * 1024
READ_TIMEOUT = 10.0
MAX_WORKERS = 8
TOP_N = 10
DEEP_RELATIVE_THRESHOLD = 3

# Top-level source directories recognised by the deep-relative rewrite rules.
KNOWN_SOURCE_DIRS = (
    "components", "hooks", "lib", "types", "contexts", "providers",
    "services", "stores", "data", "i18n", "test", "styles",
)

ANALYSIS_REPORT = "project-structure-analysis.json"
CYCLES_REPORT = "circular-deps-report.json"
TRANSFORM_REPORT = "import-transformation-report.json"
VALIDATION_REPORT = "import-validation-report.json"
UNUSED_REPORT = "unused-imports-report.json"

BACKUP_DIR_NAME = ".backup"
BACKUP_METADATA = "backup-metadata.json"
BACKUP_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".json", ".md")
# Project-root files copied alongside the source tree when present.
BACKUP_ROOT_FILES = (
    "package.json", "tsconfig.json", "next.config.ts", "next.config.js",
    "tailwind.config.ts", "eslint.config.ts", ".env.example", "README.md",
)


def ensure_base_dirs() -> None:
    """Create the user configuration directory if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
