"""Reading and writing the ssh config file on disk."""

import logging
import os
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path

from hostbook.codec import parse, serialize
from hostbook.codec.serializer import DEFAULT_INDENT
from hostbook.types import ForeignBlock, HostRecord, ParseResult

logger = logging.getLogger(__name__)


class SSHConfigFile:
    """An ssh client config file.

    Writes go through a temp file in the same directory and os.replace,
    so a crash never leaves a half-written config behind.
    """

    def __init__(self, path: Path, indent: str = DEFAULT_INDENT, backup: bool = True):
        # A symlinked config is written through to its target.
        self.path = path.expanduser().resolve()
        self.indent = indent
        self.backup = backup

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        """Return the file content, or an empty string if it does not exist.

        Bytes that are not valid UTF-8 decode to surrogates and are written
        back unchanged.
        """
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8", errors="surrogateescape")

    def load(self) -> ParseResult:
        result = parse(self.read_text())
        logger.debug(
            f"Loaded {len(result.records)} host(s), {len(result.foreign_blocks)} foreign block(s) from {self.path}"
        )
        return result

    def save(
        self,
        records: Sequence[HostRecord],
        foreign_blocks: Iterable[ForeignBlock] = (),
    ) -> str:
        """Serialize and write records. Returns the written text."""
        text = serialize(records, foreign_blocks, indent=self.indent)
        self.write_text(text)
        return text

    def write_text(self, text: str) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

        if self.backup and self.path.exists():
            previous = self.path.read_bytes()
            self.backup_path.write_bytes(previous)
            os.chmod(self.backup_path, 0o600)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as f:
                f.write(text)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Wrote {self.path}")
