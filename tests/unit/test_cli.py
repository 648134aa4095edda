"""
Tests for the redirector CLI.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.adapters.kv_store import InMemoryKeyValueStore
from src.app_shell.cli import build_parser, main
from src.components.redirects import RedirectService


@pytest.fixture
def cli_service() -> RedirectService:
    return RedirectService(InMemoryKeyValueStore())


def run_cli(service: RedirectService, *argv: str) -> None:
    main(["--rules", "unused.yaml", *argv], service=service)


class TestParser:
    def test_requires_command(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_add_defaults(self) -> None:
        args = build_parser().parse_args(["add", "/a", "/b"])

        assert args.status == 301
        assert args.disabled is False


class TestCommands:
    def test_list_empty(self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(cli_service, "list")

        assert "No redirects configured." in capsys.readouterr().out

    def test_add_and_list(
        self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]
    ) -> None:
        run_cli(cli_service, "add", "/old", "/new", "--status", "302")
        run_cli(cli_service, "add", "/off", "/x", "--disabled")
        run_cli(cli_service, "list")

        out = capsys.readouterr().out
        assert "Saved /old -> /new [302]" in out
        assert "/off -> /x [301] (disabled)" in out
        assert "2 redirect(s)." in out

    def test_add_rejected(
        self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_cli(cli_service, "add", "/old", "javascript:alert(1)")

        assert exc_info.value.code == 1
        assert "invalid_destination" in capsys.readouterr().err

    def test_add_absolute_destination_needs_origin(
        self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_cli(cli_service, "add", "/self", "https://example.com/x")

        assert exc_info.value.code == 1
        assert "invalid_destination" in capsys.readouterr().err

        main(
            ["--rules", "unused.yaml", "--origin", "https://example.com",
             "add", "/self", "https://example.com/x"],
            service=cli_service,
        )
        assert "Saved /self -> https://example.com/x [301]" in capsys.readouterr().out

    def test_add_external_destination_rejected_with_origin(self, cli_service: RedirectService) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(
                ["--rules", "unused.yaml", "--origin", "https://example.com",
                 "add", "/go", "https://evil.com/x"],
                service=cli_service,
            )

        assert exc_info.value.code == 1

    def test_add_invalid_status(self, cli_service: RedirectService) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_cli(cli_service, "add", "/old", "/new", "--status", "200")

        assert exc_info.value.code == 1

    def test_delete(self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(cli_service, "add", "/old", "/new")
        run_cli(cli_service, "delete", "/old")

        assert "Deleted /old" in capsys.readouterr().out

        with pytest.raises(SystemExit):
            run_cli(cli_service, "delete", "/old")

    def test_import_and_export(
        self,
        cli_service: RedirectService,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        source = tmp_path / "rules.csv"
        source.write_text("source,destination,statusCode\n/a,/b,302\n/c,/d,\n")

        run_cli(cli_service, "import", str(source))
        assert "Imported 2 redirect(s) from rules.csv." in capsys.readouterr().out

        target = tmp_path / "out.json"
        run_cli(cli_service, "export", "--format", "json", "-o", str(target))

        data = json.loads(target.read_text())
        assert [r["source"] for r in data["redirects"]] == ["/a", "/c"]

    def test_import_overwrite(
        self,
        cli_service: RedirectService,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        run_cli(cli_service, "add", "/old", "/new")
        source = tmp_path / "rules.json"
        source.write_text(json.dumps([{"source": "/a", "destination": "/b"}]))

        run_cli(cli_service, "import", str(source), "--overwrite")
        capsys.readouterr()
        run_cli(cli_service, "export")

        data = json.loads(capsys.readouterr().out)
        assert [r["source"] for r in data["redirects"]] == ["/a"]

    def test_import_missing_file(self, cli_service: RedirectService, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_cli(cli_service, "import", str(tmp_path / "missing.csv"))

        assert exc_info.value.code == 1

    def test_import_unknown_extension(self, cli_service: RedirectService, tmp_path: Path) -> None:
        source = tmp_path / "rules.txt"
        source.write_text("[]")

        with pytest.raises(SystemExit):
            run_cli(cli_service, "import", str(source))

    def test_export_stdout(
        self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]
    ) -> None:
        run_cli(cli_service, "add", "/old", "/new")
        capsys.readouterr()

        run_cli(cli_service, "export", "--format", "csv")

        out = capsys.readouterr().out
        assert out.startswith("source,destination,statusCode")
        assert "/old,/new,301" in out

    def test_dry_run(self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(cli_service, "add", "/products/:id", "/items/:id")
        capsys.readouterr()

        run_cli(cli_service, "test", "https://example.com/products/7")

        out = capsys.readouterr().out
        assert "Matched: /products/:id" in out
        assert 'Params: {"id": "7"}' in out
        assert "Location: https://example.com/items/7" in out
        assert "Status: 301" in out

    def test_dry_run_header(
        self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]
    ) -> None:
        run_cli(cli_service, "test", "https://example.com/x", "-H", "X-Test: 1")

        assert "No match." in capsys.readouterr().out

    def test_dry_run_bad_header(self, cli_service: RedirectService) -> None:
        with pytest.raises(SystemExit):
            run_cli(cli_service, "test", "https://example.com/x", "-H", "nocolon")

    def test_stats(self, cli_service: RedirectService, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(cli_service, "add", "/old", "/new")
        capsys.readouterr()

        run_cli(cli_service, "stats")

        stats = json.loads(capsys.readouterr().out)
        assert stats["redirect_cache"]["size"] == 1
