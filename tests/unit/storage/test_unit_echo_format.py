# tests/unit/storage/test_unit_echo_format.py — v1
"""Tests for storage/echo_format.py — echo file frontmatter."""

from __future__ import annotations

from loretech.storage.echo_format import dataset_ref_for, parse_echo, render_echo
from loretech.storage.models import EchoRef


def _ref(**overrides) -> EchoRef:
    fields = {
        "echo_id": "echo-abc",
        "private_key": "pk_secret",
        "title": "Plain title",
        "status": "draft",
        "created_at": "2026-02-26T10:00:00Z",
        "updated_at": "2026-02-26T11:00:00Z",
        "markdown": "## Body\n\ntext",
    }
    fields.update(overrides)
    return EchoRef(**fields)


class TestRenderEcho:
    def test_layout(self):
        text = render_echo(_ref())
        lines = text.splitlines()
        assert lines[0] == "---"
        assert "echoId: echo-abc" in lines
        assert "privateKey: pk_secret" in lines
        assert 'title: "Plain title"' in lines
        assert "updatedAt: 2026-02-26T11:00:00Z" in lines
        assert text.endswith("## Body\n\ntext\n")

    def test_dataset_line_only_when_set(self):
        assert "dataset:" not in render_echo(_ref())
        text = render_echo(_ref(dataset_ref=dataset_ref_for("echo-abc")))
        assert 'dataset: "[[echo-abc.json]]"' in text

    def test_empty_body(self):
        assert render_echo(_ref(markdown="")).endswith("---\n")


class TestParseEcho:
    def test_recovers_fields(self):
        ref = parse_echo(render_echo(_ref()))
        assert ref is not None
        assert ref.echo_id == "echo-abc"
        assert ref.private_key.get_secret_value() == "pk_secret"
        assert ref.title == "Plain title"
        assert ref.created_at == "2026-02-26T10:00:00Z"
        assert ref.markdown == "## Body\n\ntext"
        assert ref.dataset_ref is None

    def test_title_with_quotes_and_backslashes(self):
        title = 'She said "yes" \\ then: left'
        assert parse_echo(render_echo(_ref(title=title))).title == title

    def test_dataset_reference(self):
        ref = parse_echo(render_echo(_ref(dataset_ref="[[echo-abc.json]]")))
        assert ref.dataset_ref == "[[echo-abc.json]]"

    def test_body_with_horizontal_rule(self):
        body = "intro\n\n---\n\nafter rule"
        assert parse_echo(render_echo(_ref(markdown=body))).markdown == body

    def test_legacy_escaping(self):
        text = (
            "---\n"
            "echoId: echo-old\n"
            "privateKey: pk_old\n"
            'title: "A \\"quoted\\" word\\x"\n'
            "---\n\nbody\n"
        )
        ref = parse_echo(text)
        assert ref.title == 'A "quoted" word\\x'

    def test_missing_key_fields(self):
        assert parse_echo("---\nechoId: e1\n---\nbody") is None
        assert parse_echo("---\nprivateKey: pk\n---\nbody") is None

    def test_not_frontmatter(self):
        assert parse_echo("just markdown") is None
        assert parse_echo("---\nechoId: e1\nprivateKey: pk\n") is None

    def test_crlf(self):
        text = render_echo(_ref()).replace("\n", "\r\n")
        assert parse_echo(text).echo_id == "echo-abc"


class TestEchoRefSecrecy:
    def test_private_key_hidden_in_repr(self):
        assert "pk_secret" not in repr(_ref())
