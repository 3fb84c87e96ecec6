"""Tests for the unused-import finder."""

from depgraph_cli.models import SourceFile
from depgraph_cli.parser import extract
from depgraph_cli.unused import find_unused_imports


def _unused(content: str):
    imports, exports = extract(content)
    source = SourceFile("/p/src/a.tsx", content, imports=imports, exports=exports)
    return [(u.name, u.line) for u in find_unused_imports(source)]


def test_used_and_unused_names():
    content = (
        "import React, { useState, useEffect } from 'react'\n"
        "import { helper as h } from './helper'\n"
        "\n"
        "export function C() {\n"
        "  const [v] = useState(h())\n"
        "  return <div>{v}</div>\n"
        "}\n"
    )
    assert _unused(content) == [("React", 1), ("useEffect", 1)]


def test_multiline_import_lines_are_not_usages():
    content = (
        "import {\n"
        "  a,\n"
        "  b,\n"
        "} from './x'\n"
        "console.log(a)\n"
    )
    assert _unused(content) == [("b", 4)]


def test_namespace_and_require():
    content = "import * as utils from './utils'\nconst fs = require('fs')\nutils.run()\n"
    assert _unused(content) == [("fs", 2)]


def test_side_effect_and_dynamic_imports_ignored():
    content = "import './styles.css'\nconst m = import('./lazy')\n"
    assert _unused(content) == []


def test_word_boundaries():
    content = "import { map } from 'lodash'\nconst mapper = 1\nconst $map = 2\n"
    assert _unused(content) == [("map", 1)]
