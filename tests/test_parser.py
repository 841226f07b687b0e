"""Tests for ssh_config parsing."""

import pytest

from hostbook.codec import parse
from hostbook.codec.parser import parse_port, split_directive
from hostbook.types import DiagnosticKind, Directive


def kinds(result):
    return [d.kind for d in result.diagnostics]


class TestSplitDirective:
    def test_space_separated(self):
        assert split_directive("  HostName 1.2.3.4") == ("HostName", "1.2.3.4")

    def test_equals_separated(self):
        assert split_directive("Port=2222") == ("Port", "2222")
        assert split_directive("Port = 2222") == ("Port", "2222")

    def test_value_keeps_inner_spaces(self):
        assert split_directive("LocalCommand echo  hi ") == ("LocalCommand", "echo  hi")

    def test_blank_and_comment(self):
        assert split_directive("") is None
        assert split_directive("   ") is None
        assert split_directive("  # note") is None

    def test_keyword_only(self):
        assert split_directive("Compression") == ("Compression", "")


class TestParsePort:
    def test_valid(self):
        assert parse_port("22") == 22
        assert parse_port("65535") == 65535

    @pytest.mark.parametrize("value", ["0", "65536", "abc", "-1", "22-24", "%p", "２２"])
    def test_invalid(self, value):
        assert parse_port(value) is None


class TestParseBasics:
    def test_single_block(self):
        result = parse("Host web\n  HostName 1.2.3.4\n  User root\n\n")

        assert len(result.records) == 1
        record = result.records[0]
        assert record.host == "web"
        assert record.host_name == "1.2.3.4"
        assert record.user == "root"
        assert record.port is None
        assert record.forward_agent is None
        assert record.extra_options == []
        assert result.foreign_blocks == []
        assert result.diagnostics == []

    def test_all_modeled_fields(self):
        text = """Host prod
    hostname prod.example.com
    USER deploy
    Port 2222
    IdentityFile ~/.ssh/prod_ed25519
    ProxyJump bastion
    ForwardAgent YES
"""
        record = parse(text).records[0]
        assert record.host_name == "prod.example.com"
        assert record.user == "deploy"
        assert record.port == 2222
        assert record.identity_file == "~/.ssh/prod_ed25519"
        assert record.proxy_jump == "bastion"
        assert record.forward_agent is True

    def test_forward_agent_no(self):
        record = parse("Host a\n  ForwardAgent no\n").records[0]
        assert record.forward_agent is False

    def test_quoted_value_unquoted(self):
        record = parse('Host a\n  IdentityFile "~/.ssh/my key"\n').records[0]
        assert record.identity_file == "~/.ssh/my key"

    def test_order_preserved(self):
        result = parse("Host b\nHost a\nHost *\n  User me\n")
        assert [r.host for r in result.records] == ["b", "a", "*"]
        assert result.records[2].is_wildcard

    def test_ids_unique(self):
        result = parse("Host a\nHost b\n")
        assert result.records[0].id != result.records[1].id

    def test_empty_text(self):
        result = parse("")
        assert result.records == []
        assert result.foreign_blocks == []


class TestParsePreservation:
    def test_unknown_directive_kept(self):
        result = parse("Host x\n  Foo bar\n")
        assert result.records[0].extra_options == [Directive(name="Foo", value="bar")]
        assert kinds(result) == [DiagnosticKind.UNKNOWN_DIRECTIVE]

    def test_invalid_port_kept_as_option(self):
        result = parse("Host x\n  Port %p\n")
        record = result.records[0]
        assert record.port is None
        assert record.get_option("port") == "%p"
        assert DiagnosticKind.INVALID_PORT in kinds(result)

    def test_out_of_range_port_kept_as_option(self):
        record = parse("Host x\n  Port 70000\n").records[0]
        assert record.port is None
        assert record.get_option("Port") == "70000"

    def test_forward_agent_socket_kept_as_option(self):
        result = parse("Host x\n  ForwardAgent $SSH_AUTH_SOCK\n")
        record = result.records[0]
        assert record.forward_agent is None
        assert record.get_option("ForwardAgent") == "$SSH_AUTH_SOCK"
        assert DiagnosticKind.INVALID_FORWARD_AGENT in kinds(result)

    def test_repeated_identity_file_accumulates(self):
        result = parse("Host x\n  IdentityFile ~/.ssh/a\n  IdentityFile ~/.ssh/b\n")
        record = result.records[0]
        assert record.identity_file == "~/.ssh/a"
        assert record.extra_options == [Directive(name="IdentityFile", value="~/.ssh/b")]
        assert result.diagnostics == []

    def test_repeated_hostname_reported(self):
        result = parse("Host x\n  HostName a\n  HostName b\n")
        record = result.records[0]
        assert record.host_name == "a"
        assert record.get_option("HostName") == "b"
        assert kinds(result) == [DiagnosticKind.REPEATED_DIRECTIVE]

    def test_directive_without_value(self):
        result = parse("Host x\n  Compression\n")
        assert result.records[0].extra_options == [Directive(name="Compression", value="")]
        assert kinds(result) == [DiagnosticKind.MISSING_VALUE]

    def test_duplicate_aliases_both_kept(self):
        result = parse("Host dup\n  User a\n\nHost dup\n  User b\n")
        assert [r.user for r in result.records] == ["a", "b"]
        assert result.records[0].id != result.records[1].id
        assert kinds(result) == [DiagnosticKind.DUPLICATE_ALIAS]
        assert result.diagnostics[0].line_number == 4

    def test_preamble_is_foreign(self):
        text = "# global settings\nInclude ~/.ssh/config.d/*\nServerAliveInterval 30\n\nHost a\n"
        result = parse(text)
        assert len(result.foreign_blocks) == 1
        block = result.foreign_blocks[0]
        assert block.after_id is None
        assert block.lines == [
            "# global settings",
            "Include ~/.ssh/config.d/*",
            "ServerAliveInterval 30",
        ]

    def test_multi_pattern_host_is_foreign(self):
        result = parse("Host a\n\nHost b c\n  User x\n\nHost d\n")
        assert [r.host for r in result.records] == ["a", "d"]
        assert result.foreign_blocks[0].lines == ["Host b c", "  User x"]
        assert result.foreign_blocks[0].after_id == result.records[0].id
        assert DiagnosticKind.UNSUPPORTED_HOST in kinds(result)

    def test_match_block_is_foreign(self):
        text = "Host a\n  User x\n\nMatch host *.corp exec true\n  User corp\n\nHost b\n"
        result = parse(text)
        assert [r.host for r in result.records] == ["a", "b"]
        assert result.records[0].user == "x"
        assert result.foreign_blocks[0].lines == [
            "Match host *.corp exec true",
            "  User corp",
        ]
        assert result.foreign_blocks[0].after_id == result.records[0].id

    def test_trailing_comments_kept(self):
        result = parse("Host a\n  User x\n\n# the end\n")
        assert result.foreign_blocks[0].lines == ["# the end"]
        assert result.foreign_blocks[0].after_id == result.records[0].id

    def test_inner_comments_kept(self):
        record = parse("Host a\n  # old box\n  HostName 1.2.3.4\n").records[0]
        assert record.inner_comments == ["# old box"]
        assert record.host_name == "1.2.3.4"

    def test_garbage_never_raises(self):
        text = "\x00\n=\n==\nHost\nHost \"quoted name\"\n\tPort\n  = value\n#hostbook: {\n"
        result = parse(text)
        assert result.records == []
        assert result.foreign_blocks


class TestParseComments:
    def test_comment_above_host(self):
        record = parse("# production web\nHost web\n").records[0]
        assert record.comment == "production web"

    def test_only_adjacent_comment_used(self):
        result = parse("# file header\n\n# web box\nHost web\n")
        assert result.records[0].comment == "web box"
        assert result.foreign_blocks[0].lines == ["# file header"]

    def test_earlier_comment_lines_foreign(self):
        result = parse("# one\n# two\nHost web\n")
        assert result.records[0].comment == "two"
        assert result.foreign_blocks[0].lines == ["# one"]

    def test_metadata_line(self):
        text = '# my note\n# hostbook: {"icon":"db","label":"My DB","sftp_path":"/srv","v":1}\nHost My-DB\n'
        result = parse(text)
        record = result.records[0]
        assert record.comment == "my note"
        assert record.label == "My DB"
        assert record.sftp_path == "/srv"
        assert record.icon == "db"
        assert record.display_name == "My DB"
        assert result.foreign_blocks == []

    def test_unknown_metadata_keys_kept(self):
        text = '# hostbook: {"label":"X","color":"red","v":2}\nHost x\n'
        record = parse(text).records[0]
        assert record.label == "X"
        assert record.metadata_extra == {"color": "red"}

    def test_malformed_metadata_is_plain_comment(self):
        record = parse("# hostbook: {not json\nHost x\n").records[0]
        assert record.comment == "hostbook: {not json"
        assert record.label == ""

    def test_comment_marker_stripped_once(self):
        record = parse("## section\nHost a\n").records[0]
        assert record.comment == "# section"

    def test_bare_marker_stays_foreign(self):
        result = parse("#\nHost a\n")
        assert result.records[0].comment == ""
        assert result.foreign_blocks[0].lines == ["#"]
