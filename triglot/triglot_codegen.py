"""
Stub generator for cross-language proxies.

Given a source file and a mode (proxy or agent), renders a header-style stub
and an implementation-style stub from the Mustache templates in
codegen_templates.yaml and writes both into the output directory. The
evaluator treats this as an opaque collaborator: it only looks at the
success flag and the two paths.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import pystache
import yaml

MODES = ("proxy", "agent")
DEFAULT_OUTPUT_DIR = "generated"

_templates: Optional[Dict[str, Any]] = None


@dataclass
class GenerationResult:
    ok: bool
    header_path: Optional[str] = None
    impl_path: Optional[str] = None
    error: Optional[str] = None


def load_templates() -> Dict[str, Any]:
    """Loads (once) the stub templates keyed by mode."""
    global _templates
    if _templates is None:
        path = Path(__file__).parent / "codegen_templates.yaml"
        with open(path, "r", encoding="utf-8") as f:
            _templates = yaml.safe_load(f)
    return _templates


def output_dir() -> str:
    return os.environ.get("TRIGLOT_CODEGEN_DIR") or DEFAULT_OUTPUT_DIR


def _class_name(base_name: str, mode: str) -> str:
    words = [w for w in re.split(r"[^0-9A-Za-z]+", base_name) if w]
    stem = "".join(w[:1].upper() + w[1:] for w in words) or "Generated"
    if stem[0].isdigit():
        stem = f"_{stem}"
    return f"{stem}{mode.capitalize()}"


def build_context(source_path: str, source: str, mode: str) -> Dict[str, Any]:
    base_name = Path(source_path).stem
    header_name = f"{base_name}_{mode}.h"
    lines = source.splitlines()
    return {
        "base_name": base_name,
        "class_name": _class_name(base_name, mode),
        "guard": re.sub(r"[^0-9A-Za-z]", "_", header_name).upper(),
        "mode": mode,
        "source_name": Path(source_path).name,
        "header_name": header_name,
        "impl_name": f"{base_name}_{mode}.cpp",
        "line_count": len(lines),
        "source_lines": [{"text": line} for line in lines],
    }


def generate(source_path: str, mode: str, out_dir: Optional[str] = None) -> GenerationResult:
    """Generate the header and implementation stubs for `source_path`."""
    if mode not in MODES:
        return GenerationResult(False, error=f"unknown mode {mode!r}, expected one of {', '.join(MODES)}")
    try:
        source = Path(source_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return GenerationResult(False, error=f"cannot read {source_path}: {e}")

    templates = load_templates()[mode]
    context = build_context(source_path, source, mode)
    renderer = pystache.Renderer(escape=lambda u: u)

    target = Path(out_dir or output_dir())
    header_path = target / context["header_name"]
    impl_path = target / context["impl_name"]
    try:
        target.mkdir(parents=True, exist_ok=True)
        header_path.write_text(renderer.render(templates["header"], context), encoding="utf-8")
        impl_path.write_text(renderer.render(templates["implementation"], context), encoding="utf-8")
    except OSError as e:
        return GenerationResult(False, error=f"cannot write stubs to {target}: {e}")
    return GenerationResult(True, str(header_path), str(impl_path))
