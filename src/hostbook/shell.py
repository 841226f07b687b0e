"""Shell-safe command construction for host records."""

import re

from hostbook.types import DEFAULT_SSH_PORT, HostRecord, HostValidationError, ValidationIssue

_SAFE_TOKEN = re.compile(r"[A-Za-z0-9\-_./:@]+")


def escape_shell_token(token: str) -> str:
    """Quote token for a POSIX shell, leaving safe tokens untouched."""
    if token and _SAFE_TOKEN.fullmatch(token):
        return token
    return "'" + token.replace("'", "'\\''") + "'"


def _has_alias(record: HostRecord) -> bool:
    return bool(record.host) and not record.is_wildcard


def _require_target(record: HostRecord) -> None:
    if not record.host_name:
        issue = ValidationIssue(field="host_name", message="No alias or HostName to connect to", record_id=record.id)
        raise HostValidationError([issue])


def _target(record: HostRecord) -> str:
    host = escape_shell_token(record.host_name)
    if record.user:
        return f"{escape_shell_token(record.user)}@{host}"
    return host


def _custom_port(record: HostRecord) -> int | None:
    if record.port is not None and record.port != DEFAULT_SSH_PORT:
        return record.port
    return None


def build_ssh_command(record: HostRecord) -> str:
    """Build the ssh invocation for a record.

    An aliased record resolves through the config file, so only the alias
    is passed. Without an alias the connection parameters go on the
    command line. Raises HostValidationError when there is neither.
    """
    if _has_alias(record):
        return f"ssh {escape_shell_token(record.host)}"

    _require_target(record)
    cmd = f"ssh {_target(record)}"
    port = _custom_port(record)
    if port is not None:
        cmd += f" -p {port}"
    return cmd


def build_sftp_command(record: HostRecord) -> str:
    """Build the sftp invocation for a record, opening sftp_path if set."""
    if _has_alias(record):
        target = record.host
        port = None
    else:
        _require_target(record)
        target = f"{record.user}@{record.host_name}" if record.user else record.host_name
        port = _custom_port(record)

    if record.sftp_path:
        target = f"{target}:{record.sftp_path}"

    cmd = "sftp"
    if port is not None:
        cmd += f" -P {port}"
    return f"{cmd} {escape_shell_token(target)}"
