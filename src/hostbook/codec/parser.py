"""Parse OpenSSH client config text into host records.

Parsing is total: anything the parser does not model is kept verbatim,
either as an extra option on the record it belongs to or as a foreign
block, and reported as a diagnostic instead of an error.
"""

import logging
import re

from hostbook.codec.metadata import apply_metadata, decode_metadata
from hostbook.types import (
    DiagnosticKind,
    Directive,
    ForeignBlock,
    HostRecord,
    ParseDiagnostic,
    ParseResult,
)

logger = logging.getLogger(__name__)

# "Key value", "Key=value" and "Key = value" are all accepted by ssh.
_DIRECTIVE_RE = re.compile(r"^(?P<key>[^\s=]+)\s*(?:=\s*)?(?P<value>.*?)\s*$")

MODELED_DIRECTIVES = {
    "hostname": "host_name",
    "user": "user",
    "port": "port",
    "identityfile": "identity_file",
    "proxyjump": "proxy_jump",
    "forwardagent": "forward_agent",
}

# Directives ssh collects from every occurrence instead of keeping the first.
_CUMULATIVE = {"identityfile"}

# Valid config the codec does not model; logged at DEBUG instead of WARNING.
_ROUTINE = {
    DiagnosticKind.UNKNOWN_DIRECTIVE,
    DiagnosticKind.UNSUPPORTED_HOST,
    DiagnosticKind.MATCH_BLOCK,
}


def split_directive(line: str) -> tuple[str, str] | None:
    """Split a config line into (keyword, value). None for blanks and comments."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    m = _DIRECTIVE_RE.match(stripped)
    if m is None:
        return None
    return m.group("key"), m.group("value")


def unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_port(value: str) -> int | None:
    """Parse a Port value. None if it is not an integer in 1-65535."""
    if not (value.isascii() and value.isdigit()):
        return None
    port = int(value)
    if 1 <= port <= 65535:
        return port
    return None


def _is_comment(line: str) -> bool:
    return line.strip().startswith("#")


def strip_comment_marker(text: str) -> str:
    """Return comment text without its leading "#" and the space after it."""
    text = text.strip()
    if text.startswith("#"):
        text = text[1:]
        if text.startswith(" "):
            text = text[1:]
    return text


def _trim_blank(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


class _ConfigParser:
    """Single-pass line scanner. Use parse() instead."""

    def __init__(self):
        self.result = ParseResult()
        self.record: HostRecord | None = None
        self.seen_directives: set[str] = set()
        self.foreign: list[str] | None = None
        self.foreign_after: str | None = None
        self.pending: list[str] = []
        self.last_record_id: str | None = None
        self.alias_lines: dict[str, int] = {}

    def diagnose(self, line_number: int, kind: DiagnosticKind, message: str) -> None:
        self.result.diagnostics.append(
            ParseDiagnostic(line_number=line_number, kind=kind, message=message)
        )
        if kind in _ROUTINE:
            logger.debug(f"line {line_number}: {message}")
        else:
            logger.warning(f"line {line_number}: {message}")

    # Foreign block handling

    def open_foreign(self, lines: list[str]) -> None:
        self.close_current()
        self.foreign = list(lines)
        self.foreign_after = self.last_record_id

    def close_foreign(self) -> None:
        if self.foreign is None:
            return
        self.add_foreign(self.foreign, self.foreign_after)
        self.foreign = None

    def add_foreign(self, lines: list[str], after_id: str | None) -> None:
        lines = _trim_blank(lines)
        if lines:
            self.result.foreign_blocks.append(ForeignBlock(lines=lines, after_id=after_id))

    def close_current(self) -> None:
        self.close_foreign()
        if self.record is not None:
            self.last_record_id = self.record.id
            self.record = None

    # Line handlers

    def feed(self, line_number: int, line: str) -> None:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            self.pending.append(line)
            return

        parts = split_directive(line)
        if parts is None:
            self.diagnose(line_number, DiagnosticKind.MALFORMED_LINE, f"Cannot parse {stripped!r}; kept verbatim")
            parts = (stripped, "")
            if self.record is not None:
                self.flush_inner_comments()
                self.record.extra_options.append(Directive(name=stripped, value=""))
                return

        key, value = parts
        keyword = key.lower()
        if keyword == "host":
            self.start_host(line_number, line, value)
        elif keyword == "match":
            self.absorb_trailing_comments()
            self.diagnose(line_number, DiagnosticKind.MATCH_BLOCK, "Match block kept verbatim")
            self.open_foreign(self.take_pending() + [line])
        elif self.record is not None:
            self.flush_inner_comments()
            self.add_directive(line_number, key, value)
        else:
            if self.foreign is None:
                self.foreign = []
                self.foreign_after = self.last_record_id
            self.foreign.extend(self.take_pending())
            self.foreign.append(line)

    def flush_inner_comments(self) -> None:
        self.record.inner_comments.extend(p.strip() for p in self.take_pending() if p.strip())

    def absorb_trailing_comments(self) -> None:
        """Indented comments right after a block's last directive belong to the block."""
        if self.record is None:
            return
        i = 0
        while i < len(self.pending) and _is_comment(self.pending[i]) and self.pending[i][:1].isspace():
            i += 1
        self.record.inner_comments.extend(p.strip() for p in self.pending[:i])
        del self.pending[:i]

    def take_pending(self) -> list[str]:
        pending, self.pending = self.pending, []
        return pending

    def split_leading_comments(self) -> tuple[list[str], list[str]]:
        """Split pending lines into (rest, comment run directly above the next line)."""
        pending = self.take_pending()
        i = len(pending)
        while i > 0 and _is_comment(pending[i - 1]):
            i -= 1
        return pending[:i], pending[i:]

    def start_host(self, line_number: int, line: str, value: str) -> None:
        self.absorb_trailing_comments()
        rest, leading = self.split_leading_comments()
        if self.foreign is not None:
            self.foreign.extend(rest)
            rest = []
        self.close_current()
        self.add_foreign(rest, self.last_record_id)

        patterns = value.split()
        if len(patterns) != 1 or '"' in value:
            self.diagnose(
                line_number,
                DiagnosticKind.UNSUPPORTED_HOST,
                f"Host line with {len(patterns)} pattern(s) kept verbatim: {value!r}",
            )
            self.open_foreign(leading + [line])
            return

        alias = patterns[0]
        record = HostRecord(host=alias)
        self.apply_leading_comments(record, leading)

        if alias in self.alias_lines:
            self.diagnose(
                line_number,
                DiagnosticKind.DUPLICATE_ALIAS,
                f"Host {alias} already defined on line {self.alias_lines[alias]}",
            )
        else:
            self.alias_lines[alias] = line_number

        self.record = record
        self.seen_directives = set()
        self.result.records.append(record)

    def apply_leading_comments(self, record: HostRecord, leading: list[str]) -> None:
        lines = [line.strip() for line in leading]

        for i in range(len(lines) - 1, -1, -1):
            data = decode_metadata(lines[i])
            if data is not None:
                apply_metadata(record, data)
                del lines[i]
                break

        # A bare "#" has no text to keep as a comment; it stays a foreign line.
        if lines and strip_comment_marker(lines[-1]):
            record.comment = strip_comment_marker(lines.pop())
        self.add_foreign(lines, self.last_record_id)

    def add_directive(self, line_number: int, key: str, value: str) -> None:
        record = self.record
        keyword = key.lower()

        if not value:
            self.diagnose(line_number, DiagnosticKind.MISSING_VALUE, f"{key} has no value")
            record.extra_options.append(Directive(name=key, value=value))
            return

        field = MODELED_DIRECTIVES.get(keyword)
        if field is None:
            self.diagnose(
                line_number,
                DiagnosticKind.UNKNOWN_DIRECTIVE,
                f"{key} is not modeled; kept verbatim",
            )
            record.extra_options.append(Directive(name=key, value=value))
            return

        if keyword in self.seen_directives:
            if keyword not in _CUMULATIVE:
                self.diagnose(
                    line_number,
                    DiagnosticKind.REPEATED_DIRECTIVE,
                    f"{key} repeated in Host {record.host}; ssh uses the first value",
                )
            record.extra_options.append(Directive(name=key, value=value))
            return
        self.seen_directives.add(keyword)

        if field == "port":
            port = parse_port(value)
            if port is None:
                self.diagnose(
                    line_number,
                    DiagnosticKind.INVALID_PORT,
                    f"Port {value!r} is not in 1-65535; kept verbatim",
                )
                record.extra_options.append(Directive(name=key, value=value))
            else:
                record.port = port
        elif field == "forward_agent":
            flag = value.lower()
            if flag in ("yes", "no"):
                record.forward_agent = flag == "yes"
            else:
                self.diagnose(
                    line_number,
                    DiagnosticKind.INVALID_FORWARD_AGENT,
                    f"ForwardAgent {value!r} is not yes/no; kept verbatim",
                )
                record.extra_options.append(Directive(name=key, value=value))
        else:
            setattr(record, field, unquote(value))

    def finish(self) -> ParseResult:
        self.absorb_trailing_comments()
        pending = self.take_pending()
        if self.foreign is not None:
            self.foreign.extend(pending)
            pending = []
        self.close_current()
        self.add_foreign(pending, self.last_record_id)
        return self.result


def parse(text: str) -> ParseResult:
    """Parse ssh_config text into ordered records and preserved foreign blocks."""
    parser = _ConfigParser()
    for line_number, line in enumerate(text.splitlines(), start=1):
        parser.feed(line_number, line)
    return parser.finish()
