import pytest
from triglot.triglot_codegen import generate, build_context, load_templates, output_dir, MODES


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "color-mixer.rho"
    path.write_text('a = color(255, 0, 0)\nblend(a, a)\n', encoding="utf-8")
    return path


def test_templates_cover_every_mode():
    templates = load_templates()
    for mode in MODES:
        assert set(templates[mode]) == {"header", "implementation"}

def test_build_context(source_file):
    ctx = build_context(str(source_file), source_file.read_text(), "proxy")
    assert ctx["base_name"] == "color-mixer"
    assert ctx["class_name"] == "ColorMixerProxy"
    assert ctx["header_name"] == "color-mixer_proxy.h"
    assert ctx["impl_name"] == "color-mixer_proxy.cpp"
    assert ctx["guard"] == "COLOR_MIXER_PROXY_H"
    assert ctx["line_count"] == 2
    assert ctx["source_lines"][1] == {"text": "blend(a, a)"}

def test_class_name_cannot_start_with_digit(tmp_path):
    ctx = build_context(str(tmp_path / "3d.pi"), "", "agent")
    assert ctx["class_name"] == "_3dAgent"

@pytest.mark.parametrize("mode", MODES)
def test_generate_writes_both_stubs(source_file, tmp_path, mode):
    out = tmp_path / "generated"
    result = generate(str(source_file), mode, str(out))
    assert result.ok, result.error
    header = (out / f"color-mixer_{mode}.h").read_text()
    impl = (out / f"color-mixer_{mode}.cpp").read_text()
    assert result.header_path == str(out / f"color-mixer_{mode}.h")
    assert result.impl_path == str(out / f"color-mixer_{mode}.cpp")
    assert "#ifndef COLOR_MIXER_" in header
    assert f"class ColorMixer{mode.capitalize()}" in header
    assert f'#include "color-mixer_{mode}.h"' in impl
    assert "//   a = color(255, 0, 0)" in impl

def test_generate_uses_env_output_dir(source_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TRIGLOT_CODEGEN_DIR", str(tmp_path / "env-out"))
    assert output_dir() == str(tmp_path / "env-out")
    result = generate(str(source_file), "proxy")
    assert result.ok
    assert (tmp_path / "env-out" / "color-mixer_proxy.cpp").exists()

def test_generate_unknown_mode(source_file, tmp_path):
    result = generate(str(source_file), "server", str(tmp_path))
    assert not result.ok
    assert "unknown mode" in result.error
    assert result.header_path is None

def test_generate_missing_source(tmp_path):
    result = generate(str(tmp_path / "nope.pi"), "proxy", str(tmp_path))
    assert not result.ok
    assert "cannot read" in result.error

def test_generate_unwritable_target(source_file, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    result = generate(str(source_file), "proxy", str(blocker / "sub"))
    assert not result.ok
    assert "cannot write" in result.error
