"""Serialize host records back into OpenSSH client config text."""

import logging
from collections.abc import Iterable, Sequence

from hostbook.codec.metadata import encode_metadata
from hostbook.types import ForeignBlock, HostRecord

logger = logging.getLogger(__name__)

DEFAULT_INDENT = "  "


def quote_value(value: str) -> str:
    """Double-quote values containing whitespace so ssh reads them as one argument."""
    if any(c.isspace() for c in value) and not (value.startswith('"') and value.endswith('"')):
        return f'"{value}"'
    return value


def format_comment(comment: str) -> str:
    """Render a record comment, stored without its marker, as a comment line.

    Text that itself starts with "#" gets a bare marker so that
    "## section" survives a parse and serialize cycle unchanged.
    """
    comment = comment.strip()
    if not comment:
        return ""
    if comment.startswith("#"):
        return f"#{comment}"
    return f"# {comment}"


def _inner_comment_line(comment: str) -> str:
    comment = comment.strip()
    if comment.startswith("#"):
        return comment
    return f"# {comment}"


def _directive_lines(record: HostRecord) -> list[tuple[str, str]]:
    directives = []
    if record.host_name:
        directives.append(("HostName", quote_value(record.host_name)))
    if record.user:
        directives.append(("User", quote_value(record.user)))
    if record.port is not None:
        directives.append(("Port", str(record.port)))
    if record.identity_file:
        directives.append(("IdentityFile", quote_value(record.identity_file)))
    if record.proxy_jump:
        directives.append(("ProxyJump", quote_value(record.proxy_jump)))
    if record.forward_agent is not None:
        directives.append(("ForwardAgent", "yes" if record.forward_agent else "no"))
    for option in record.extra_options:
        directives.append((option.name, option.value))
    return directives


def serialize_record(record: HostRecord, indent: str = DEFAULT_INDENT) -> list[str]:
    """Render one Host block, without the trailing blank line."""
    lines = []
    comment = format_comment(record.comment)
    if comment:
        lines.append(comment)
    metadata = encode_metadata(record)
    if metadata:
        lines.append(metadata)

    lines.append(f"Host {record.host}")
    for name, value in _directive_lines(record):
        lines.append(f"{indent}{name} {value}" if value else f"{indent}{name}")
    for inner in record.inner_comments:
        lines.append(f"{indent}{_inner_comment_line(inner)}")
    return lines


def serialize(
    records: Sequence[HostRecord],
    foreign_blocks: Iterable[ForeignBlock] = (),
    indent: str = DEFAULT_INDENT,
) -> str:
    """Render records, in order, with foreign blocks placed after their anchor record.

    Foreign blocks anchored to a record that is no longer present are
    written at the end of the file.
    """
    record_ids = {r.id for r in records}
    anchored: dict[str | None, list[ForeignBlock]] = {}
    trailing: list[ForeignBlock] = []
    for block in foreign_blocks:
        if block.after_id is None or block.after_id in record_ids:
            anchored.setdefault(block.after_id, []).append(block)
        else:
            trailing.append(block)

    chunks: list[list[str]] = [b.lines for b in anchored.get(None, [])]
    for record in records:
        if not record.host:
            logger.warning(f"Skipping record {record.id} with empty Host alias")
        else:
            chunks.append(serialize_record(record, indent))
        chunks.extend(b.lines for b in anchored.get(record.id, []))
    chunks.extend(b.lines for b in trailing)

    return "".join("\n".join(chunk) + "\n\n" for chunk in chunks if chunk)
