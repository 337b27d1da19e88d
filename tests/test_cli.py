"""
Tests for the CLI — end-to-end through main()

Each test runs real commands against a registry and project directory
inside tmp_path. Exit status is part of the contract: 0 when everything
is fine, 1 when something needs attention.
"""

import json
import logging

import pytest

from grainmirror.cli import build_parser, main
from grainmirror.commands import dispatch, get_registered_commands
from grainmirror.commands.mirror_cmd import MirrorCommand
from grainmirror.commands.verify_cmd import VerifyCommand
from grainmirror.core.grainorder import LAST_CODE, START_CODE
from grainmirror.logging_setup import ROOT_LOGGER
from tests.factories import tagged_filename


@pytest.fixture(autouse=True)
def ascii_output(monkeypatch):
    monkeypatch.setenv("GRAINMIRROR_SYMBOLS", "ascii")
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True


@pytest.fixture
def run(mirror_factory, capsys):
    """Run main() with the factory's registry and project directory."""
    project = mirror_factory.tmp_path / "project"
    project.mkdir(exist_ok=True)

    def _run(*args):
        status = main(["--registry", str(mirror_factory.registry_path),
                       "--project", str(project), *args])
        captured = capsys.readouterr()
        return status, captured.out, captured.err

    _run.project = project
    return _run


class TestBasics:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: grainmirror" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "grainmirror 0.1.0" in capsys.readouterr().out

    def test_every_command_registered(self):
        build_parser()
        assert get_registered_commands() == [
            "register", "remove", "list", "sync", "verify", "rebalance", "grain", "config",
        ]

    def test_dispatch_unknown_command(self, mock_cli):
        build_parser()
        with pytest.raises(KeyError, match="Unknown command"):
            dispatch("frobnicate", mock_cli, None)


class TestMirrorLoop:

    def test_register_sync_verify(self, mirror_factory, run):
        source = mirror_factory.write_source("notes.md", b"hello\n")
        mirror = mirror_factory.mirror_path("notes.md")

        status, out, _ = run("register", str(source), str(mirror))
        assert status == 0
        assert "[OK] " + str(mirror) in out
        assert "grainmirror sync <source>" in out

        status, out, _ = run("sync")
        assert status == 0
        assert mirror.read_bytes() == b"hello\n"

        status, out, _ = run("verify")
        assert status == 0
        assert "(in sync)" in out
        assert "All mirrors in sync" in out

    def test_drift_exits_nonzero(self, mirror_factory, run):
        source, mirrors = mirror_factory.add_mirrored_source("a.md", b"a")
        run("sync")
        mirrors[0].write_bytes(b"changed")

        status, out, _ = run("verify")

        assert status == 1
        assert "[!=] " + str(mirrors[0]) + " (drifted)" in out
        assert "grainmirror sync" in out

    def test_verify_json(self, mirror_factory, run):
        mirror_factory.add_mirrored_source("a.md", b"a")
        status, out, _ = run("verify", "--format", "json")
        data = json.loads(out)
        assert status == 1
        assert data["counts"]["missing"] == 1

    def test_verify_unregistered_source_is_error(self, run, tmp_path):
        status, _, err = run("verify", str(tmp_path / "nope.md"))
        assert status == 1
        assert "ERROR: [GM_E200]" in err

    def test_sync_reports_failures(self, mirror_factory, run):
        source, _ = mirror_factory.add_mirrored_source("a.md")
        source.unlink()
        status, out, _ = run("sync")
        assert status == 1
        assert "[GM_E101]" in out

    def test_sync_json(self, mirror_factory, run):
        mirror_factory.add_mirrored_source("a.md", b"a")
        status, out, _ = run("sync", "--format", "json")
        assert status == 0
        assert json.loads(out)["outcomes"][0]["written"]

    def test_list(self, mirror_factory, run):
        mirror_factory.add_mirrored_source("a.md", mirror_count=2)
        status, out, _ = run("list")
        assert status == 0
        assert "1 source(s), 2 mirror(s), 1 never synced" in out
        assert "last sync: never" in out

    def test_list_json(self, mirror_factory, run):
        source, mirrors = mirror_factory.add_mirrored_source("a.md")
        status, out, _ = run("list", "-f", "json")
        data = json.loads(out)
        assert data[str(source)]["mirrors"] == [str(mirrors[0])]

    def test_list_empty_hint(self, run):
        status, out, _ = run("list")
        assert status == 0
        assert "grainmirror register" in out

    def test_remove_mirror(self, mirror_factory, run):
        source, mirrors = mirror_factory.add_mirrored_source("a.md")
        status, out, _ = run("remove", str(source), str(mirrors[0]))
        assert status == 0
        assert mirror_factory.registry.get(source).mirrors == []

    def test_remove_requires_target(self, mirror_factory, run):
        source, _ = mirror_factory.add_mirrored_source("a.md")
        status, out, _ = run("remove", str(source))
        assert status == 1
        assert "Error:" in out

    def test_remove_entry_with_mirrors_refused(self, mirror_factory, run):
        source, _ = mirror_factory.add_mirrored_source("a.md")
        status, _, err = run("remove", str(source), "--entry")
        assert status == 1
        assert "[GM_E202]" in err
        status, _, _ = run("remove", str(source), "--entry", "--force")
        assert status == 0
        assert not mirror_factory.registry.is_registered(source)

    def test_register_missing_source(self, mirror_factory, run):
        status, _, err = run("register", str(mirror_factory.sources_dir / "ghost.md"), "/tmp/x.md")
        assert status == 1
        assert "[GM_E100]" in err


class TestGrain:

    def test_check(self, run):
        status, out, _ = run("grain", "check", START_CODE, "zvsnml")
        assert status == 0
        assert "a space of 1235520" in out
        assert f"{START_CODE}  0\n" in out
        assert "zvsnml  1235519  (archive)" in out

    def test_check_invalid(self, run):
        status, out, _ = run("grain", "check", "xxbdgh")
        assert status == 1
        assert "invalid" in out

    def test_step(self, run):
        assert run("grain", "step", "xbdghk")[1].strip() == "xbdghj"
        assert run("grain", "step", "xbdghj", "--older")[1].strip() == "xbdghk"

    def test_step_exhausted(self, run):
        status, out, _ = run("grain", "step", START_CODE)
        assert status == 1
        assert "exhausted" in out

    def test_step_invalid(self, run):
        status, _, err = run("grain", "step", "zvsnml")
        assert status == 1
        assert "[GM_E001]" in err

    def test_next_uses_configured_start(self, mirror_factory, run):
        directory = mirror_factory.make_tagged_dir(["plain.txt"])
        assert run("grain", "next", str(directory))[1].strip() == LAST_CODE

    def test_tag(self, mirror_factory, run):
        directory = mirror_factory.make_tagged_dir(["draft.md"])
        status, out, _ = run("grain", "tag", str(directory / "draft.md"), "--tz", "pdt")
        assert status == 0
        [name] = mirror_factory.listing(directory)
        assert name.startswith(LAST_CODE + "-")
        assert name.endswith("-pdt--draft.md")

    def test_tag_bad_tz_rejected_by_parser(self, mirror_factory, run):
        directory = mirror_factory.make_tagged_dir(["draft.md"])
        with pytest.raises(SystemExit):
            run("grain", "tag", str(directory / "draft.md"), "--tz", "Pacific")


class TestRebalance:

    @pytest.fixture
    def shuffled_dir(self, mirror_factory):
        return mirror_factory.make_tagged_dir([
            tagged_filename("xbdghj", 2024, 5, 1, remainder="old.md"),
            tagged_filename("xbdghk", 2025, 5, 1, remainder="new.md"),
        ])

    def test_dry_run(self, mirror_factory, run, shuffled_dir):
        before = mirror_factory.listing(shuffled_dir)
        status, out, _ = run("rebalance", str(shuffled_dir), "--dry-run", "--headroom", "0")
        assert status == 0
        assert "Plan (dry run)" in out
        assert mirror_factory.listing(shuffled_dir) == before

    def test_dry_run_json(self, run, shuffled_dir):
        status, out, _ = run("rebalance", str(shuffled_dir), "-n", "--headroom", "0", "-f", "json")
        assert status == 0
        assert json.loads(out)["change_count"] == 2

    def test_apply_with_yes(self, mirror_factory, run, shuffled_dir):
        status, out, _ = run("rebalance", str(shuffled_dir), "--yes", "--headroom", "0")
        assert status == 0
        assert "2 file(s) renamed" in out
        assert mirror_factory.listing(shuffled_dir)[0].endswith("--new.md")

    def test_default_headroom_from_config(self, mirror_factory, run, shuffled_dir):
        status, out, _ = run("rebalance", str(shuffled_dir), "--dry-run")
        assert status == 0
        assert "headroom 1000" in out

    def test_declined(self, mirror_factory, run, shuffled_dir, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        before = mirror_factory.listing(shuffled_dir)
        status, out, _ = run("rebalance", str(shuffled_dir), "--headroom", "0")
        assert status == 1
        assert "Rebalance cancelled." in out
        assert mirror_factory.listing(shuffled_dir) == before

    def test_confirmed(self, mirror_factory, run, shuffled_dir, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "y")
        status, _, _ = run("rebalance", str(shuffled_dir), "--headroom", "0")
        assert status == 0

    def test_no_input_means_no(self, run, shuffled_dir, monkeypatch):
        def eof(prompt):
            raise EOFError
        monkeypatch.setattr("builtins.input", eof)
        assert run("rebalance", str(shuffled_dir), "--headroom", "0")[0] == 1

    def test_negative_headroom_rejected(self, run, shuffled_dir):
        with pytest.raises(SystemExit):
            run("rebalance", str(shuffled_dir), "--headroom", "-3")


class TestConfigCommand:

    def test_show(self, run):
        status, out, _ = run("config")
        assert status == 0
        assert "hashing.algorithm = sha256" in out

    def test_set_then_sync_uses_it(self, mirror_factory, run):
        status, out, _ = run("config", "--set", "hashing.algorithm", "xxh128")
        assert status == 0
        assert (run.project / ".grainmirror" / "config.yaml").exists()

        mirror_factory.add_mirrored_source("a.md", b"a")
        run("sync")
        status, out, _ = run("list", "--format", "json")
        [entry] = json.loads(out).values()
        assert entry["hash_algorithm"] == "xxh128"

    def test_set_invalid(self, run):
        status, out, _ = run("config", "--set", "hashing.algorithm", "md5")
        assert status == 1
        assert "Unknown hash algorithm" in out


class TestCommandsDirect:
    """Command classes against a mock CLI with real engines."""

    def test_verify_empty_registry(self, mock_cli, capsys):
        assert VerifyCommand(mock_cli).verify([]) == 0
        assert "0 source(s)" in capsys.readouterr().out

    def test_list_uses_config_format(self, mirror_factory, capsys):
        mirror_factory.config.display.format = "json"
        mirror_factory.add_mirrored_source("a.md")
        command = mirror_factory.create_command(MirrorCommand)
        assert command.list_mirrors() == 0
        assert len(json.loads(capsys.readouterr().out)) == 1
