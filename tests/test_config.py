import pydantic
import pytest
import yaml

from wasmenv.common import patch_config
from wasmenv.defaults import get_default_config
from wasmenv.scan_config import (
    default_config, dump_config, load_config, load_unpatched_config, validate_config,
)
from wasmenv.scan_config.structure import Main


def test_defaults():
    config = default_config()
    assert isinstance(config, Main)
    assert config.call_site.pointer_floor == 0x1000
    assert (config.call_site.min_length, config.call_site.max_length) == (3, 100)
    assert config.extraction.max_length == 1000
    assert config.classifier.min_letter_ratio == 0.5
    assert "_SECRET" in config.classifier.keywords
    assert any(rule.pattern == "LOCALHOST" for rule in config.classifier.noise)


def test_default_dict_is_a_copy():
    config = get_default_config()
    config["classifier"]["keywords"].append("_EXTRA")
    assert "_EXTRA" not in get_default_config()["classifier"]["keywords"]


class TestPatchConfig:
    def test_scalars_override(self):
        assert patch_config({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_dicts_merge(self):
        base = {"call_site": {"min_length": 3, "max_length": 100}}
        merged = patch_config(base, {"call_site": {"max_length": 64}})
        assert merged == {"call_site": {"min_length": 3, "max_length": 64}}
        assert base["call_site"]["max_length"] == 100

    def test_lists_concatenate(self):
        assert patch_config({"k": ["a"]}, {"k": ["b"]}) == {"k": ["a", "b"]}

    def test_new_keys_are_added(self):
        assert patch_config({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_empty_patch(self):
        base = {"a": 1}
        assert patch_config(base, None) is base
        assert patch_config(base, {}) is base

    def test_type_mismatch(self):
        with pytest.raises(ValueError):
            patch_config({"k": ["a"]}, {"k": "b"})


def test_load_config_without_overrides():
    assert load_config() == default_config()


def test_load_config_merges_over_defaults(tmp_path):
    path = tmp_path / "overrides.yaml"
    path.write_text(
        "call_site:\n"
        "  pointer_floor: 0x400\n"
        "classifier:\n"
        "  keywords: [_ENDPOINT]\n"
    )
    config = load_config(path)
    assert config.call_site.pointer_floor == 0x400
    assert config.call_site.max_length == 100
    assert config.classifier.keywords[-1] == "_ENDPOINT"
    assert "_KEY" in config.classifier.keywords


def test_yaml_core_schema(tmp_path):
    # YAML 1.2 core schema: "no" is a string, not a boolean
    path = tmp_path / "overrides.yaml"
    path.write_text("classifier:\n  keywords: [no]\n")
    assert load_unpatched_config(path) == {"classifier": {"keywords": ["no"]}}


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("# nothing here\n")
    assert load_unpatched_config(path) == {}
    assert load_config(path) == default_config()


def test_top_level_must_be_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize("overrides", [
    {"classifier": {"unknown_option": 1}},
    {"call_site": {"min_length": 0}},
    {"classifier": {"min_letter_ratio": 1.5}},
    {"classifier": {"noise": [{"pattern": "X", "match": "regex"}]}},
    {"extra_section": {}},
])
def test_invalid_config(overrides):
    with pytest.raises(pydantic.ValidationError):
        validate_config(patch_config(get_default_config(), overrides))


def test_inconsistent_lengths():
    config = get_default_config()
    config["classifier"]["min_length"] = 50
    config["classifier"]["max_length"] = 10
    with pytest.raises(ValueError, match="invalid wasmenv configuration"):
        validate_config(config)


def test_dump_config(tmp_path):
    path = tmp_path / "wasmenv.yaml"
    dump_config(default_config(), path)
    text = path.read_text()
    assert text.startswith("# wasmenv configuration")
    assert yaml.safe_load(text)["call_site"]["pointer_floor"] == 0x1000

    # A dumped config fed back as overrides doesn't duplicate list entries
    assert load_config(path) == default_config()


def test_dump_config_from_dict(tmp_path):
    path = tmp_path / "wasmenv.yaml"
    config = get_default_config()
    config["extraction"]["max_length"] = 200
    dump_config(config, path)
    assert load_config(path).extraction.max_length == 200
