"""Tests for host list parsing and small helpers."""

from pushdeploy.utils import known_hosts_name, parse_host_list, printable, strip_ansi


class TestParseHostList:
    """Tests for comma-separated host lists."""

    def test_trims_and_drops_empty_entries(self):
        """Whitespace is trimmed and empty entries vanish."""
        assert parse_host_list(" a.test, b.test,,c.test ,") == ["a.test", "b.test", "c.test"]

    def test_duplicates_keep_first_position(self):
        assert parse_host_list("b.test,a.test,b.test") == ["b.test", "a.test"]

    def test_accepts_iterables(self):
        """Each item of a list may itself be comma-separated."""
        assert parse_host_list(["a.test", "b.test, c.test"]) == ["a.test", "b.test", "c.test"]

    def test_empty_input(self):
        assert parse_host_list(None) == []
        assert parse_host_list("") == []
        assert parse_host_list(" , ,") == []


class TestKnownHostsName:
    def test_default_port_is_bare(self):
        assert known_hosts_name("app.example.com") == "app.example.com"
        assert known_hosts_name("app.example.com", 22) == "app.example.com"

    def test_other_port_is_bracketed(self):
        assert known_hosts_name("203.0.113.7", 2222) == "[203.0.113.7]:2222"


def test_strip_ansi():
    assert strip_ansi("\x1b[32mok\x1b[0m done") == "ok done"


def test_printable_replaces_undecodable_bytes():
    assert printable("caf\udce9") == "caf\ufffd"
    assert printable("plain") == "plain"
