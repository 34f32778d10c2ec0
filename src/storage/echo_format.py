# src/storage/echo_format.py — v1
"""Text format of echoes/{echo_id}.md files.

The only module that reads or writes the raw frontmatter text:

    ---
    echoId: echo-abc
    privateKey: pk_...
    title: "Quoted \\"title\\""
    status: draft
    createdAt: 2026-02-26T00:00:00Z
    updatedAt: 2026-02-26T00:00:00Z
    dataset: "[[echo-abc.json]]"
    ---

    markdown body...

Quoted values use JSON string escaping, so quotes, backslashes and
newlines inside a title survive a round trip.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from loretech.storage.models import EchoRef

DELIMITER = "---"


def dataset_ref_for(echo_id: str) -> str:
    return f"[[{echo_id}.json]]"


def render_echo(ref: EchoRef) -> str:
    """Serialize an EchoRef to frontmatter + body text."""
    lines = [
        DELIMITER,
        f"echoId: {_plain(ref.echo_id)}",
        f"privateKey: {_plain(ref.private_key.get_secret_value())}",
        f"title: {_quoted(ref.title)}",
        f"status: {_plain(ref.status)}",
        f"createdAt: {_plain(ref.created_at)}",
        f"updatedAt: {_plain(ref.updated_at)}",
    ]
    if ref.dataset_ref:
        lines.append(f"dataset: {_quoted(ref.dataset_ref)}")
    lines.append(DELIMITER)
    header = "\n".join(lines)
    if ref.markdown:
        return f"{header}\n\n{ref.markdown}\n"
    return f"{header}\n"


def parse_echo(content: str) -> EchoRef | None:
    """Parse an echo file; None if it is not a well-formed echo record."""
    lines = content.replace("\r\n", "\n").split("\n")
    if not lines or lines[0].strip() != DELIMITER:
        return None
    try:
        end = next(i for i in range(1, len(lines)) if lines[i].strip() == DELIMITER)
    except StopIteration:
        return None

    fields: dict[str, str] = {}
    for line in lines[1:end]:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        fields[key.strip()] = _unquote(value.strip())

    echo_id = fields.get("echoId", "")
    private_key = fields.get("privateKey", "")
    if not echo_id or not private_key:
        return None

    try:
        return EchoRef(
            echo_id=echo_id,
            private_key=private_key,
            title=fields.get("title", ""),
            status=fields.get("status") or "draft",
            created_at=fields.get("createdAt", ""),
            updated_at=fields.get("updatedAt", ""),
            markdown="\n".join(lines[end + 1:]).strip(),
            dataset_ref=fields.get("dataset") or None,
        )
    except ValidationError:
        return None


def dump_dataset(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _plain(value: str) -> str:
    return " ".join(str(value).splitlines()).strip()


def _quoted(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            # Older writers escaped only the quote character.
            return value[1:-1].replace('\\"', '"')
        if isinstance(decoded, str):
            return decoded
    return value
