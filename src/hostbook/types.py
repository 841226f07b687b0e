"""Core type definitions for hostbook."""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

WILDCARD_ALIAS = "*"
DEFAULT_SSH_PORT = 22


class DiagnosticKind(str, Enum):
    """Kinds of parse anomalies."""

    UNKNOWN_DIRECTIVE = "unknown_directive"
    INVALID_PORT = "invalid_port"
    INVALID_FORWARD_AGENT = "invalid_forward_agent"
    REPEATED_DIRECTIVE = "repeated_directive"
    MISSING_VALUE = "missing_value"
    MALFORMED_LINE = "malformed_line"
    UNSUPPORTED_HOST = "unsupported_host"
    MATCH_BLOCK = "match_block"
    DUPLICATE_ALIAS = "duplicate_alias"


class Directive(BaseModel):
    """A single config keyword/value pair, kept verbatim."""

    name: str
    value: str = ""


class HostRecord(BaseModel):
    """One Host block of an SSH client config."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, frozen=True)
    host: str = ""
    label: str = ""
    host_name: str = ""
    user: str = ""
    port: int | None = Field(default=None, ge=1, le=65535)
    identity_file: str = ""
    proxy_jump: str = ""
    forward_agent: bool | None = None
    sftp_path: str = ""
    icon: str = ""
    comment: str = ""
    extra_options: list[Directive] = []
    inner_comments: list[str] = []
    metadata_extra: dict[str, Any] = {}

    @property
    def is_wildcard(self) -> bool:
        return self.host == WILDCARD_ALIAS

    @property
    def display_name(self) -> str:
        """Label if set, then the alias, then the target host name."""
        return self.label or self.host or self.host_name

    def get_option(self, name: str) -> str | None:
        """First value of an extra directive, matched case-insensitively."""
        key = name.lower()
        for option in self.extra_options:
            if option.name.lower() == key:
                return option.value
        return None

    def set_option(self, name: str, value: str) -> None:
        """Replace every same-named extra directive with a single entry.

        The entry keeps the position of the first match, or is appended.
        """
        key = name.lower()
        options: list[Directive] = []
        placed = False
        for option in self.extra_options:
            if option.name.lower() != key:
                options.append(option)
            elif not placed:
                options.append(Directive(name=name, value=value))
                placed = True
        if not placed:
            options.append(Directive(name=name, value=value))
        self.extra_options = options

    def remove_option(self, name: str) -> bool:
        """Drop every extra directive with this name. Returns True if any were removed."""
        key = name.lower()
        kept = [o for o in self.extra_options if o.name.lower() != key]
        removed = len(kept) != len(self.extra_options)
        self.extra_options = kept
        return removed


class ForeignBlock(BaseModel):
    """Config text the parser does not model, preserved line for line."""

    lines: list[str]
    after_id: str | None = None  # record this block follows; None = top of file


class ParseDiagnostic(BaseModel):
    """A non-fatal anomaly found while parsing."""

    line_number: int
    kind: DiagnosticKind
    message: str


class ParseResult(BaseModel):
    """Output of parsing a config file."""

    records: list[HostRecord] = []
    foreign_blocks: list[ForeignBlock] = []
    diagnostics: list[ParseDiagnostic] = []

    def replace_record(self, record: HostRecord) -> None:
        """Swap in an edited record with the same id."""
        for i, existing in enumerate(self.records):
            if existing.id == record.id:
                self.records[i] = record
                return
        raise KeyError(record.id)

    def remove_record(self, record_id: str) -> HostRecord:
        """Remove a record, moving foreign blocks anchored to it onto its predecessor."""
        for i, record in enumerate(self.records):
            if record.id == record_id:
                break
        else:
            raise KeyError(record_id)

        previous_id = self.records[i - 1].id if i > 0 else None
        for block in self.foreign_blocks:
            if block.after_id == record_id:
                block.after_id = previous_id
        return self.records.pop(i)


class ValidationIssue(BaseModel):
    """A user-facing validation failure naming the offending field."""

    field: str
    message: str
    record_id: str | None = None

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class HostValidationError(ValueError):
    """Raised when a record cannot be saved or used."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(str(i) for i in issues))
