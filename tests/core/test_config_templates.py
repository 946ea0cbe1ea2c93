from __future__ import annotations

from pathlib import Path

import pytest

from quazar.core import config_templates, config as core_config
from quazar.core.config_templates import ConfigTemplate, ConfigTemplateError


def test_quiz_template_writes_and_refuses_to_clobber(tmp_path: Path) -> None:
    template = config_templates.get_template("quiz")
    assert isinstance(template, ConfigTemplate)

    contents = template.read_text()
    for section in ("[paths]", "[session]", "[table]", "[grading]", "[logging]"):
        assert section in contents

    target = tmp_path / "config" / "quazar.toml"
    assert template.write(target) == target
    assert target.read_text(encoding="utf-8") == contents

    with pytest.raises(ConfigTemplateError, match="already exists"):
        template.write(target)

    target.write_text("# edited\n", encoding="utf-8")
    template.write(target, overwrite=True)
    assert target.read_text(encoding="utf-8") == contents


def test_quiz_template_parses_as_toml(tmp_path: Path) -> None:
    target = config_templates.get_template("quiz").write(tmp_path / "quazar.toml")

    parsed = core_config.load_toml(target)

    assert parsed["session"]["total_questions"] == 0
    assert parsed["table"]["files"] == []
    assert parsed["grading"]["step_delay"] == 0.2


def test_iter_templates_lists_quiz() -> None:
    names = {template.name for template in config_templates.iter_templates()}
    assert names == {"quiz"}


@pytest.mark.parametrize("unknown", ["missing", "", "convert_markdown"])
def test_get_template_unknown_raises(unknown: str) -> None:
    with pytest.raises(ConfigTemplateError):
        config_templates.get_template(unknown)
