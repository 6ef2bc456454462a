from dataclasses import dataclass

import pytest
import yaml

from meshprobe.template import (
    ImageCatalog,
    TemplateError,
    add_line_numbers,
    indent,
    run,
    to_yaml,
    until,
)


def test_indent_prefixes_all_lines_but_the_first():
    result = indent(4, "a\nb\nc")
    lines = result.split("\n")
    assert lines[0] == "a"
    assert all(line.startswith(" " * 4) for line in lines[1:])
    assert [line.strip() for line in lines] == ["a", "b", "c"]


def test_indent_zero_spaces_leaves_text_unchanged():
    assert indent(0, "a\nb") == "a\nb"


def test_indent_single_line_unchanged():
    assert indent(6, "single") == "single"


def test_until_counts_from_zero():
    assert until(4) == [0, 1, 2, 3]
    assert until(0) == []


def test_until_rejects_negative():
    with pytest.raises(ValueError):
        until(-1)


def test_to_yaml_round_trip_and_sorted_keys():
    value = {"b": [1, 2], "a": {"x": "y"}}
    text = to_yaml(value)
    assert yaml.safe_load(text) == value
    assert text.index("a:") < text.index("b:")


def test_to_yaml_scalar_has_no_document_end_marker():
    assert to_yaml("foo") == "foo\n"


def test_to_yaml_unserialisable_raises():
    with pytest.raises(TemplateError):
        to_yaml(object())


def test_add_line_numbers_format():
    assert add_line_numbers("first\nsecond") == "  1: first\n  2: second\n"


def test_add_line_numbers_empty_text():
    assert add_line_numbers("") == ""


def test_add_line_numbers_keeps_line_count_and_alignment():
    text = "\n".join(f"line{i}" for i in range(12))
    numbered = add_line_numbers(text).splitlines()
    assert len(numbered) == 12
    assert numbered[11].startswith(" 12: ")
    assert numbered[11].endswith("line11")


def test_run_with_mapping():
    assert run("name: {{ Name }}", {"Name": "basic"}) == "name: basic"


def test_run_conditional_false_renders_nothing():
    assert run("{% if Rosa %}identity{% endif %}", {"Rosa": False}) == ""


def test_run_with_dataclass_values():
    @dataclass
    class Params:
        Ns: str
        Subset: bool

    rendered = run("host: my-nginx.{{ Ns }}{% if Subset %} v1{% endif %}", Params("foo", True))
    assert rendered == "host: my-nginx.foo v1"


def test_run_keeps_trailing_newline():
    assert run("a\n") == "a\n"


def test_run_helper_functions():
    rendered = run("{% for i in until(3) %}{{ i }}{% endfor %}|{{ indent(2, text) }}", {"text": "x\ny"})
    assert rendered == "012|" + indent(2, "x\ny")
    assert yaml.safe_load(run("{{ toYaml(v) }}", {"v": {"k": [1, 2]}})) == {"k": [1, 2]}


def test_run_syntax_error_shows_numbered_template():
    with pytest.raises(TemplateError) as info:
        run("ok\n{% if %}")
    assert "  1: ok" in str(info.value)
    assert "  2: {% if %}" in str(info.value)


def test_run_undefined_value_raises():
    with pytest.raises(TemplateError):
        run("{{ Missing }}", {})


def _catalog(tmp_path):
    path = tmp_path / "images.yaml"
    path.write_text(yaml.safe_dump({"testssl": {"x86_64": "registry.example.com/testssl:1"}}))
    return ImageCatalog.load(path), path


def test_image_catalog_lookup(tmp_path):
    catalog, _ = _catalog(tmp_path)
    assert catalog.image("testssl", "x86_64") == "registry.example.com/testssl:1"


def test_image_catalog_missing_image_and_arch(tmp_path):
    catalog, path = _catalog(tmp_path)
    with pytest.raises(TemplateError) as info:
        catalog.image("nginx", "x86_64")
    assert str(path) in str(info.value)
    with pytest.raises(TemplateError):
        catalog.image("testssl", "arm64")


def test_image_catalog_unreadable_file(tmp_path):
    with pytest.raises(TemplateError):
        ImageCatalog.load(tmp_path / "absent.yaml")


def test_image_catalog_bad_yaml(tmp_path):
    path = tmp_path / "images.yaml"
    path.write_text("testssl: [unclosed")
    with pytest.raises(TemplateError):
        ImageCatalog.load(path)


def test_run_image_function(tmp_path):
    catalog, _ = _catalog(tmp_path)
    rendered = run('image: {{ image("testssl") }}', None, images=catalog, arch="x86_64")
    assert rendered == "image: registry.example.com/testssl:1"


def test_run_image_without_catalog_raises():
    with pytest.raises(TemplateError):
        run('{{ image("testssl") }}')