"""Validation of host records and the add/edit form that produces them."""

from collections.abc import Iterable, Sequence
from typing import Literal

from pydantic import BaseModel

from hostbook.alias import duplicate_aliases, sanitize_alias, unique_alias
from hostbook.codec.parser import parse_port, split_directive
from hostbook.types import WILDCARD_ALIAS, Directive, HostRecord, HostValidationError, ValidationIssue

CollisionPolicy = Literal["suffix", "reject"]

# Keywords that open a new section; inside a Host block they would end it.
RESERVED_OPTIONS = {"host", "match", "include"}


def _has_newline(value: str) -> bool:
    return "\n" in value or "\r" in value


def validate_extra_options(options: Iterable[Directive]) -> list[ValidationIssue]:
    """Check user-supplied extra directives before they are written into a block."""
    issues = []
    for option in options:
        name = option.name
        if not name or any(c.isspace() for c in name) or "#" in name or "=" in name:
            message = f"Option name {name!r} must be a single word without '#' or '='"
        elif name.lower() in RESERVED_OPTIONS:
            message = f"{name} cannot be set as an extra option"
        elif _has_newline(option.value):
            message = f"Value of {name} must be a single line"
        else:
            continue
        issues.append(ValidationIssue(field="extra_options", message=message))
    return issues


def validate_record(record: HostRecord) -> list[ValidationIssue]:
    """Check a single record for problems that would break the config file."""
    issues = []
    if not record.host:
        issues.append(ValidationIssue(field="host", message="Alias is required", record_id=record.id))
    elif any(c.isspace() for c in record.host) or "#" in record.host:
        issues.append(
            ValidationIssue(
                field="host",
                message=f"Alias {record.host!r} contains whitespace or '#'",
                record_id=record.id,
            )
        )
    if record.port is not None and not 1 <= record.port <= 65535:
        issues.append(
            ValidationIssue(field="port", message="Port must be between 1 and 65535", record_id=record.id)
        )
    return issues


def validate_records(records: Sequence[HostRecord]) -> list[ValidationIssue]:
    """Check a full record set, including alias uniqueness."""
    issues = []
    for record in records:
        issues.extend(validate_record(record))

    for alias in duplicate_aliases(records):
        if alias == WILDCARD_ALIAS:
            message = "More than one wildcard (Host *) block"
        else:
            message = f"Alias {alias!r} is defined more than once"
        issues.append(ValidationIssue(field="host", message=message))
    return issues


def parse_extra_options_text(text: str) -> list[Directive]:
    """Parse one "Name value" directive per line. Lines without a value are skipped."""
    options = []
    for line in text.splitlines():
        parts = split_directive(line)
        if parts is None:
            continue
        name, value = parts
        if value:
            options.append(Directive(name=name, value=value))
    return options


def format_extra_options_text(options: Iterable[Directive]) -> str:
    return "\n".join(f"{o.name} {o.value}" for o in options)


class HostForm(BaseModel):
    """Raw values from the add/edit host form."""

    name: str = ""
    host_name: str = ""
    user: str = ""
    port: str = ""
    identity_file: str = ""
    proxy_jump: str = ""
    sftp_path: str = ""
    forward_agent: bool | None = None
    icon: str = ""
    comment: str = ""
    extra_options: str = ""

    @classmethod
    def from_record(cls, record: HostRecord) -> "HostForm":
        """Prefill the form for editing an existing record."""
        return cls(
            name=record.label or record.host,
            host_name=record.host_name,
            user=record.user,
            port=str(record.port) if record.port is not None else "",
            identity_file=record.identity_file,
            proxy_jump=record.proxy_jump,
            sftp_path=record.sftp_path,
            forward_agent=record.forward_agent,
            icon=record.icon,
            comment=record.comment,
            extra_options=format_extra_options_text(record.extra_options),
        )

    def errors(self) -> list[ValidationIssue]:
        issues = []
        if not self.name.strip():
            issues.append(ValidationIssue(field="name", message="Name is required"))

        port = self.port.strip()
        if port and parse_port(port) is None:
            issues.append(
                ValidationIssue(field="port", message=f"Port {port!r} must be a number between 1 and 65535")
            )

        for field, value in self:
            if field != "extra_options" and isinstance(value, str) and _has_newline(value):
                issues.append(ValidationIssue(field=field, message="Must be a single line"))

        issues.extend(validate_extra_options(parse_extra_options_text(self.extra_options)))
        return issues

    def is_rename_of(self, existing: HostRecord) -> bool:
        """Whether the name differs from the one the form was prefilled with."""
        return self.name.strip() != (existing.label or existing.host)

    def to_record(
        self,
        existing: HostRecord | None = None,
        others: Iterable[HostRecord] = (),
        collision: CollisionPolicy = "suffix",
    ) -> HostRecord:
        """Build a record from the form.

        When editing, the existing record's id and any fields the form does
        not cover are kept. The alias and label only change when the name
        does; a new alias that clashes with another record is resolved
        according to the collision policy.
        """
        issues = self.errors()
        if issues:
            raise HostValidationError(issues)

        port = self.port.strip()
        values = {
            "host_name": self.host_name.strip(),
            "user": self.user.strip(),
            "port": int(port) if port else None,
            "identity_file": self.identity_file.strip(),
            "proxy_jump": self.proxy_jump.strip(),
            "forward_agent": self.forward_agent,
            "sftp_path": self.sftp_path.strip(),
            "icon": self.icon.strip(),
            "comment": self.comment.strip(),
            "extra_options": parse_extra_options_text(self.extra_options),
        }

        if existing is None or self.is_rename_of(existing):
            name = self.name.strip()
            alias = sanitize_alias(name)
            existing_id = existing.id if existing is not None else None
            taken = {r.host for r in others if r.id != existing_id}
            if alias in taken:
                if collision == "reject":
                    raise HostValidationError(
                        [ValidationIssue(field="host", message=f"Alias {alias!r} is already in use")]
                    )
                alias = unique_alias(alias, taken)
            values["host"] = alias
            values["label"] = name

        if existing is None:
            return HostRecord(**values)
        return existing.model_copy(update=values, deep=True)
