"""Pytest configuration and fixtures for depgraph tests."""

from pathlib import Path
from typing import Callable, Dict

import pytest

from depgraph_cli.config_manager import Settings


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path_factory, monkeypatch):
    """Keep tests away from any real ~/.depgraph/config.toml."""
    home = tmp_path_factory.mktemp("depgraph_home")
    monkeypatch.setattr("depgraph_cli.config.BASE_DIR", home)
    monkeypatch.setattr("depgraph_cli.config.USER_CONFIG_FILE", home / "config.toml")


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary working directory, also used as the current directory."""
    return tmp_path


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Factory writing ``{relative path: content}`` under ``tmp_path``."""

    def _write(files: Dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def sample_project(write_tree) -> Path:
    """A small Next.js style project with one cycle and one broken import."""
    return write_tree({
        "src/app/page.tsx": (
            "import React from 'react'\n"
            "import { Button } from '../components/Button'\n"
            "import { useAuth } from '@/hooks/useAuth'\n"
            "\n"
            "export default function Page() {\n"
            "  const auth = useAuth()\n"
            "  return <Button label={auth.user} />\n"
            "}\n"
        ),
        "src/components/Button.tsx": (
            "import React from 'react'\n"
            "import clsx from 'clsx'\n"
            "import { theme } from '@/lib/theme'\n"
            "\n"
            "export function Button({ label }) {\n"
            "  return <button className={theme.button}>{label}</button>\n"
            "}\n"
        ),
        "src/components/index.ts": "export { Button } from './Button'\n",
        "src/hooks/useAuth.ts": (
            "import { session } from '../lib/session'\n"
            "import { missing } from './missing'\n"
            "\n"
            "export const useAuth = () => session\n"
        ),
        "src/lib/session.ts": (
            "import { useAuth } from '../hooks/useAuth'\n"
            "\n"
            "export const session = { user: 'me' }\n"
        ),
        "src/lib/theme.ts": "export const theme = { button: 'btn' }\n",
        "src/node_modules/pkg/index.js": "module.exports = {}\n",
    })


@pytest.fixture
def settings_for() -> Callable[[Path], Settings]:
    """Settings rooted at a project directory with the default ``@/`` alias."""

    def _settings(root: Path, **overrides) -> Settings:
        return Settings(project_root=str(root), **overrides)

    return _settings
