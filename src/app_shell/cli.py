import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from src.adapters.clock import SystemClock
from src.adapters.kv_store import SQLiteKeyValueStore
from src.components.formats import (
    ExportRulesInput,
    FileFormat,
    FormatError,
    ParseContentInput,
    run_export,
    run_parse,
)
from src.components.redirects import (
    BulkCreateRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    RedirectRule,
    RedirectService,
    RedirectValidationError,
    ResolveRedirectInput,
    create_redirect_service,
    run_bulk_create,
    run_create,
    run_delete,
    run_resolve,
)
from src.rules.loader import apply_env_overrides, build_redirect_config, load_rules

logger = logging.getLogger("cli")

RULES_PATH = os.environ.get("REDIRECTOR_RULES_PATH", "rules.yaml")


def get_service(rules_path: Path) -> RedirectService:
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    try:
        rules = apply_env_overrides(load_rules(rules_path))
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)

    logging.getLogger().setLevel(rules.logging.level)
    return create_redirect_service(
        store=SQLiteKeyValueStore(rules.storage.path),
        config=build_redirect_config(rules),
        clock=SystemClock(),
    )


def _print_errors(errors: list[RedirectValidationError]) -> None:
    for error in errors:
        print(f"  [{error.code}] {error.message}", file=sys.stderr)


async def handle_list(service: RedirectService, args: argparse.Namespace) -> int:
    rules = await service.list_rules()
    if not rules:
        print("No redirects configured.")
        return 0

    for rule in rules:
        flags = "" if rule.enabled else " (disabled)"
        print(f"{rule.source} -> {rule.destination} [{rule.status_code}]{flags}")
    print(f"{len(rules)} redirect(s).")
    return 0


async def handle_add(service: RedirectService, args: argparse.Namespace) -> int:
    try:
        rule = RedirectRule(
            source=args.source,
            destination=args.destination,
            status_code=args.status,
            enabled=not args.disabled,
            description=args.description,
        )
    except ValidationError as e:
        print(f"Invalid redirect: {e}", file=sys.stderr)
        return 1

    result = await run_create(CreateRedirectInput(rule=rule, origin=args.origin), service=service)
    if not result.success:
        print("Redirect rejected:", file=sys.stderr)
        _print_errors(result.errors)
        return 1

    print(f"Saved {rule.source} -> {rule.destination} [{rule.status_code}]")
    return 0


async def handle_delete(service: RedirectService, args: argparse.Namespace) -> int:
    result = await run_delete(DeleteRedirectInput(source=args.source), service=service)
    if not result.success:
        print(f"Redirect {args.source} not found.", file=sys.stderr)
        return 1

    print(f"Deleted {args.source}")
    return 0


async def handle_import(service: RedirectService, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"File {path} not found.", file=sys.stderr)
        return 1

    try:
        fmt = FileFormat(args.format) if args.format else FileFormat.from_filename(path.name)
    except FormatError as e:
        print(str(e), file=sys.stderr)
        return 1

    parsed = run_parse(ParseContentInput(content=path.read_text(), format=fmt))
    if not parsed.success:
        for message in parsed.errors:
            print(message, file=sys.stderr)
        return 1

    if not parsed.rules:
        print("No valid redirects found in the file.", file=sys.stderr)
        return 1

    result = await run_bulk_create(
        BulkCreateRedirectsInput(
            rules=parsed.rules, replace=args.overwrite, origin=args.origin
        ),
        service=service,
    )
    if not result.success:
        print("Import rejected, nothing was saved:", file=sys.stderr)
        _print_errors(result.errors)
        return 1

    print(f"Imported {result.count} redirect(s) from {path.name}.")
    return 0


async def handle_export(service: RedirectService, args: argparse.Namespace) -> int:
    rules = await service.list_rules()
    exported = run_export(ExportRulesInput(rules=tuple(rules), format=FileFormat(args.format)))

    if args.output:
        Path(args.output).write_text(exported.content)
        print(f"Exported {len(rules)} redirect(s) to {args.output}.")
    else:
        sys.stdout.write(exported.content)
    return 0


async def handle_test(service: RedirectService, args: argparse.Namespace) -> int:
    headers: dict[str, str] = {}
    for header in args.header or []:
        name, sep, value = header.partition(":")
        if not sep:
            print(f"Invalid header {header!r}, expected Name:Value", file=sys.stderr)
            return 1
        headers[name.strip()] = value.strip()

    result = await run_resolve(ResolveRedirectInput(url=args.url, headers=headers), service=service)
    if not result.matched or result.rule is None:
        print("No match.")
        return 0

    print(f"Matched: {result.rule.source}")
    if result.params:
        print(f"Params: {json.dumps(result.params)}")
    if result.blocked:
        print(f"Blocked: {result.reason}")
        return 0

    print(f"Location: {result.target_url}")
    print(f"Status: {result.status_code}")
    print(f"Cache-Control: {result.cache_control}")
    return 0


async def handle_stats(service: RedirectService, args: argparse.Namespace) -> int:
    await service.get_rule_table()
    print(json.dumps(service.get_cache_stats(), indent=2))
    return 0


def handle_serve(args: argparse.Namespace) -> None:
    uvicorn.run("src.api.main:app", host=args.host, port=args.port)


HANDLERS = {
    "list": handle_list,
    "add": handle_add,
    "delete": handle_delete,
    "import": handle_import,
    "export": handle_export,
    "test": handle_test,
    "stats": handle_stats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Redirector CLI")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    parser.add_argument(
        "--origin",
        help="Origin the redirects are served from, e.g. https://example.com "
        "(defaults to redirects.public_origin)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    subparsers.add_parser("list", help="List all redirects")

    # add
    add_parser = subparsers.add_parser("add", help="Create or replace a redirect")
    add_parser.add_argument("source", help="Source path or pattern (e.g. /blog/:slug)")
    add_parser.add_argument("destination", help="Destination URL or template")
    add_parser.add_argument("--status", type=int, default=301, help="HTTP status code (3xx)")
    add_parser.add_argument("--disabled", action="store_true", help="Save the rule disabled")
    add_parser.add_argument("--description", help="Free-form note")

    # delete
    delete_parser = subparsers.add_parser("delete", help="Delete a redirect")
    delete_parser.add_argument("source", help="Source of the redirect to delete")

    # import
    import_parser = subparsers.add_parser("import", help="Import redirects from a file")
    import_parser.add_argument("file", help="JSON, CSV or Terraform file")
    import_parser.add_argument(
        "--format",
        choices=[f.value for f in FileFormat],
        help="File format (inferred from the extension by default)",
    )
    import_parser.add_argument(
        "--overwrite", action="store_true", help="Replace all existing redirects"
    )

    # export
    export_parser = subparsers.add_parser("export", help="Export redirects")
    export_parser.add_argument(
        "--format", choices=[f.value for f in FileFormat], default=FileFormat.JSON.value
    )
    export_parser.add_argument("--output", "-o", help="Write to a file instead of stdout")

    # test
    test_parser = subparsers.add_parser("test", help="Dry-run resolution of a URL")
    test_parser.add_argument("url", help="Absolute request URL")
    test_parser.add_argument(
        "-H", "--header", action="append", help="Request header as Name:Value (repeatable)"
    )

    # stats
    subparsers.add_parser("stats", help="Show cache statistics")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None, service: RedirectService | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        handle_serve(args)
        return

    svc = service or get_service(Path(args.rules))
    code = asyncio.run(HANDLERS[args.command](svc, args))
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
