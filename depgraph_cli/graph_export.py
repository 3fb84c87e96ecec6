"""Graph export helpers for DOT and simple standalone HTML outputs."""

from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Dict, List, Optional

from .cycles import cycle_edges
from .models import AnalysisResult, display_path


def export_dot(result: AnalysisResult, output_file: Path, focus: str = "") -> None:
    """Write the module graph as Graphviz DOT; cycle edges are drawn red."""
    selected = _focused_subgraph(result, focus)
    in_cycle = cycle_edges(result.cycles)

    lines = ["digraph Dependencies {"]
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box, fontname=\"monospace\"];")

    for node in selected["nodes"]:
        label = display_path(node, result.root)
        lines.append(f'  "{_esc(node)}" [label="{_esc(label)}"];')

    for src, dst in selected["edges"]:
        attrs = ' [color="red", penwidth=2]' if (src, dst) in in_cycle else ""
        lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}"{attrs};')

    lines.append("}")
    output_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def export_html(result: AnalysisResult, output_file: Path, focus: str = "") -> None:
    """Write a self-contained HTML page listing modules and dependencies."""
    selected = _focused_subgraph(result, focus)
    in_cycle = cycle_edges(result.cycles)
    graph_payload = {
        "root": result.root,
        "nodes": [
            {"id": node, "label": display_path(node, result.root)}
            for node in selected["nodes"]
        ],
        "edges": [
            {
                "src": display_path(src, result.root),
                "dst": display_path(dst, result.root),
                "cycle": (src, dst) in in_cycle,
            }
            for src, dst in selected["edges"]
        ],
        "cycles": [cycle.describe(result.root) for cycle in result.cycles],
    }
    output_file.write_text(_basic_html_export(graph_payload), encoding="utf-8")


def _basic_html_export(graph_payload: dict) -> str:
    # Closing tags inside the JSON would end the script block early.
    data = json.dumps(graph_payload, ensure_ascii=False).replace("</", "<\\/")
    title = html.escape(f"Dependency graph: {graph_payload['root']}")
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{title}</title>
  <style>
    body {{ font-family: ui-monospace, SFMono-Regular, Menlo, monospace; margin: 20px; }}
    #container {{ display: grid; grid-template-columns: 1fr 1fr; gap: 18px; }}
    .panel {{ border: 1px solid #ddd; border-radius: 8px; padding: 10px; }}
    ul {{ list-style: none; padding: 0; margin: 0; }}
    li {{ margin: 4px 0; }}
    .cycle {{ color: #c62828; font-weight: bold; }}
  </style>
</head>
<body>
  <h1>{title}</h1>
  <div class="panel">
    <h2>Circular dependencies</h2>
    <ul id="cycles"></ul>
  </div>
  <div id="container">
    <div class="panel">
      <h2>Modules</h2>
      <ul id="nodes"></ul>
    </div>
    <div class="panel">
      <h2>Dependencies</h2>
      <ul id="edges"></ul>
    </div>
  </div>
  <script>
    const graph = {data};
    const add = (id, text, cls) => {{
      const li = document.createElement('li');
      li.textContent = text;
      if (cls) li.className = cls;
      document.getElementById(id).appendChild(li);
    }};
    if (graph.cycles.length === 0) add('cycles', 'None');
    graph.cycles.forEach(c => add('cycles', c, 'cycle'));
    graph.nodes.forEach(n => add('nodes', n.label));
    graph.edges.forEach(e => add('edges', `${{e.src}} -> ${{e.dst}}`, e.cycle ? 'cycle' : ''));
  </script>
</body>
</html>
"""


def _focused_subgraph(result: AnalysisResult, focus: Optional[str]) -> Dict[str, List]:
    nodes = result.graph.nodes
    edges = list(result.graph.edges())
    if not focus:
        return {"nodes": nodes, "edges": edges}

    focus_ids = {node for node in nodes if focus in node}
    if not focus_ids:
        return {"nodes": nodes, "edges": edges}

    edge_subset = [e for e in edges if e[0] in focus_ids or e[1] in focus_ids]
    node_subset = set(focus_ids)
    for src, dst in edge_subset:
        node_subset.add(src)
        node_subset.add(dst)
    return {"nodes": sorted(node_subset), "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
