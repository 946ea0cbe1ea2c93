from __future__ import annotations

import pytest

from quazar.core import config as core_config


def _defaults():
    return {
        "session": {"total_questions": 0, "types": ["identification"]},
        "logging": {"level": "INFO"},
    }


def test_merge_defaults_overrides_nested_values():
    base = _defaults()

    core_config.merge_defaults(
        base, {"session": {"types": ["trueOrFalse"]}, "logging": {"level": "DEBUG"}}
    )

    assert base == {
        "session": {"total_questions": 0, "types": ["trueOrFalse"]},
        "logging": {"level": "DEBUG"},
    }


def test_merge_defaults_rejects_unknown_keys():
    with pytest.raises(core_config.TomlConfigError, match="'session.bogus'"):
        core_config.merge_defaults(_defaults(), {"session": {"bogus": 1}})
    with pytest.raises(core_config.TomlConfigError, match="'extra'"):
        core_config.merge_defaults(_defaults(), {"extra": {}})


def test_merge_defaults_requires_tables_for_sections():
    with pytest.raises(core_config.TomlConfigError, match="Expected table for 'logging'"):
        core_config.merge_defaults(_defaults(), {"logging": "DEBUG"})


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("yes", True), (" On ", True), ("0", False), ("off", False)],
)
def test_coerce_bool_accepts_common_spellings(value, expected):
    assert core_config.coerce_bool(value, field="session.unique_answer_only") is expected


@pytest.mark.parametrize("value", ["maybe", 1, None])
def test_coerce_bool_rejects_other_values(value):
    with pytest.raises(core_config.TomlConfigError, match="'flag' must be a boolean"):
        core_config.coerce_bool(value, field="flag")


def test_load_toml_reports_missing_and_malformed_files(tmp_path):
    with pytest.raises(core_config.TomlConfigError, match="Config file not found"):
        core_config.load_toml(tmp_path / "absent.toml")

    broken = tmp_path / "broken.toml"
    broken.write_text("[session\n", encoding="utf-8")
    with pytest.raises(core_config.TomlConfigError, match="Failed to parse"):
        core_config.load_toml(broken)


def test_write_toml_template_refuses_to_overwrite(tmp_path):
    target = tmp_path / "nested" / "quazar.toml"

    core_config.write_toml_template(target, template="[session]\n")
    assert target.read_text(encoding="utf-8") == "[session]\n"

    with pytest.raises(core_config.TomlConfigError, match="already exists"):
        core_config.write_toml_template(target, template="[logging]\n")

    core_config.write_toml_template(target, template="[logging]\n", overwrite=True)
    assert target.read_text(encoding="utf-8") == "[logging]\n"
