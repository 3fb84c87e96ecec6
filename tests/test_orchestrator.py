"""Tests for the analysis and rewrite pipelines."""

from pathlib import Path

import pytest

from depgraph_cli.backup import BackupManager
from depgraph_cli.errors import ConfigError, ScanRootError
from depgraph_cli.orchestrator import AnalysisOrchestrator
from depgraph_cli.scanner import normalize_path


class TestLoadSources:
    """Parallel reads keep scan order and skip bad files."""

    def test_scan_order(self, sample_project: Path, settings_for):
        files, skipped = AnalysisOrchestrator(settings_for(sample_project)).load_sources()

        src = sample_project / "src"
        assert [f.path for f in files] == [
            normalize_path(src / rel) for rel in (
                "app/page.tsx",
                "components/Button.tsx",
                "components/index.ts",
                "hooks/useAuth.ts",
                "lib/session.ts",
                "lib/theme.ts",
            )
        ]
        assert skipped == []

    def test_oversized_file_skipped(self, write_tree, settings_for):
        root = write_tree({"src/a.ts": "import b from './b'\n", "src/big.ts": "x" * 200})
        orchestrator = AnalysisOrchestrator(settings_for(root, max_file_bytes=100, max_workers=2))

        files, skipped = orchestrator.load_sources()

        assert [Path(f.path).name for f in files] == ["a.ts"]
        assert [Path(p).name for p in skipped] == ["big.ts"]

    def test_empty_tree(self, write_tree, settings_for):
        root = write_tree({"src/readme.md": ""})
        assert AnalysisOrchestrator(settings_for(root)).load_sources() == ([], [])

    def test_missing_source_dir(self, tmp_path: Path, settings_for):
        with pytest.raises(ScanRootError):
            AnalysisOrchestrator(settings_for(tmp_path)).analyze()


class TestPipelines:
    """End-to-end analysis and transform runs."""

    def test_analyze(self, sample_project: Path, settings_for):
        result = AnalysisOrchestrator(settings_for(sample_project)).analyze()

        assert result.root == normalize_path(sample_project / "src")
        assert result.graph.edge_count == 6
        assert result.has_cycles
        assert len(result.cycles) == 1

    def test_transform_deep_relative(self, write_tree, settings_for):
        root = write_tree({
            "src/app/dashboard/settings/page.tsx": "import Foo from '../../../components/Foo'\n",
            "src/components/Foo.ts": "export default 1\n",
        })
        orchestrator = AnalysisOrchestrator(settings_for(root))

        report = orchestrator.transform()

        page = root / "src/app/dashboard/settings/page.tsx"
        assert page.read_text() == "import Foo from '@/components/Foo'\n"
        assert report.success
        assert report.transformed_imports == 1
        assert report.results[0].warnings == []

        resolution = orchestrator.resolver.resolve("@/components/Foo", str(page))
        assert resolution.resolved_path == normalize_path(root / "src/components/Foo.ts")

    def test_transform_dry_run(self, write_tree, settings_for):
        content = "import Foo from '../components/Foo'\n"
        root = write_tree({"src/app/page.tsx": content})

        report = AnalysisOrchestrator(settings_for(root)).transform(dry_run=True)

        assert report.transformed_files == 1
        assert (root / "src/app/page.tsx").read_text() == content

    def test_deep_rule_set(self, write_tree, settings_for):
        root = write_tree({"src/a/b/c.ts": "import x from '../../lib/x'\n"})
        report = AnalysisOrchestrator(settings_for(root)).transform(dry_run=True, rule_set="deep")
        assert report.results[0].transformed_content == "import x from '@/lib/x'\n"

    def test_unknown_rule_set(self, settings_for, tmp_path: Path):
        with pytest.raises(ConfigError):
            AnalysisOrchestrator(settings_for(tmp_path)).rules("fancy")

    def test_rewrite_prefix_must_be_a_configured_alias(self, settings_for, tmp_path: Path):
        settings = settings_for(tmp_path, aliases={"~/": "src"})

        with pytest.raises(ConfigError, match="'@/'"):
            AnalysisOrchestrator(settings).rules()
        with pytest.raises(ConfigError):
            AnalysisOrchestrator(settings).transform(dry_run=True)

    def test_configured_rewrite_prefix(self, write_tree, settings_for):
        root = write_tree({
            "src/app/page.ts": "import y from '../lib/y'\n",
            "src/lib/y.ts": "export default 1\n",
        })
        settings = settings_for(root, aliases={"~/": "src"}, alias_prefix="~/")

        report = AnalysisOrchestrator(settings).transform(dry_run=True)

        assert report.results[0].transformed_content == "import y from '~/lib/y'\n"
        assert report.results[0].warnings == []

    def test_transform_with_backup_can_be_undone(self, write_tree, settings_for):
        content = "import Foo from '../components/Foo'\n"
        root = write_tree({"src/app/page.tsx": content, "src/components/Foo.ts": "export default 1\n"})
        settings = settings_for(root)

        report = AnalysisOrchestrator(settings).transform(backup=True)

        page = root / "src/app/page.tsx"
        assert page.read_text() == "import Foo from '@/components/Foo'\n"
        assert report.backup_id is not None

        BackupManager(settings).restore(report.backup_id)
        assert page.read_text() == content

    def test_dry_run_takes_no_backup(self, write_tree, settings_for):
        root = write_tree({"src/app/page.tsx": "import Foo from '../components/Foo'\n"})

        report = AnalysisOrchestrator(settings_for(root)).transform(dry_run=True, backup=True)

        assert report.backup_id is None
        assert not (root / ".backup").exists()

    def test_find_unused(self, sample_project: Path, settings_for):
        files, unused = AnalysisOrchestrator(settings_for(sample_project)).find_unused()

        assert len(files) == 6
        names = {(Path(u.file_path).name, u.name) for u in unused}
        assert ("useAuth.ts", "missing") in names
        assert ("page.tsx", "Button") not in names
        assert ("page.tsx", "useAuth") not in names
