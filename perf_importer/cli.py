from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from perf_importer import __version__ as TOOL_VERSION
from perf_importer.contracts import build_run_summary, wrap_payload
from perf_importer.errors import ImportPipelineError, StoreError
from perf_importer.loader import load_matrix, read_pasted_text
from perf_importer.pipeline import (
    PASTED_LABEL,
    ImportPlan,
    build_import_plan,
    import_matrix,
    validate_target,
)
from perf_importer.settings import DEFAULT_CONFIG_NAME, build_store, load_settings, starter_config_text


EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_STORE_FAILED = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class PerfImporterArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, StoreError):
        return EXIT_STORE_FAILED
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ImportPipelineError, ImportError, UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def format_money(value: float) -> str:
    return f"{value:,.2f}"


# ══════════════════════════════════════════════════════════════════════════════
# INPUT
# ══════════════════════════════════════════════════════════════════════════════

def read_input(args: argparse.Namespace) -> tuple[list[list[Any]], str, list[str]]:
    """Returns (matrix, default source label, reader warnings)."""
    if args.paste:
        if args.input == "-":
            text = sys.stdin.read()
        else:
            path = Path(args.input)
            if not path.exists():
                raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
            text = path.read_text(encoding="utf-8")
        return read_pasted_text(text), PASTED_LABEL, []

    path = Path(args.input)
    if not path.exists():
        raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
    loaded = load_matrix(path, sheet_name=args.sheet_name)
    return loaded["matrix"], path.name, loaded["warnings"]


def resolve_store(args: argparse.Namespace):
    settings = load_settings(getattr(args, "config", None), store_override=getattr(args, "store", None))
    return settings, build_store(settings)


# ══════════════════════════════════════════════════════════════════════════════
# RENDERING
# ══════════════════════════════════════════════════════════════════════════════

def render_totals(totals: dict[str, float]) -> list[str]:
    return [
        f"Total spend: {format_money(totals['totalSpend'])}",
        f"Total results: {totals['totalResults']:g}",
        f"Average CTR: {totals['avgCtr']:.2f}%",
        f"Average CPC: {format_money(totals['avgCpc'])}",
    ]


def render_import_text(payload: dict[str, Any]) -> str:
    report = payload["report"]
    lines = [
        "perf-importer import",
        f"Source: {report['fileName']}",
        f"Target: {report['clientId']} {report['month']}",
        f"Report: {'created' if payload['created'] else 'merged'}"
        + ("" if payload["saved"] else " (dry run, not saved)"),
        f"Campaigns extracted: {payload['campaigns_extracted']}",
        f"Replaced: {len(payload['replaced'])}  Inserted: {len(payload['inserted'])}",
        f"Campaigns in report: {len(report['campaigns'])}",
    ]
    lines.extend(
        render_totals(
            {
                "totalSpend": report["totalSpend"],
                "totalResults": report["totalResults"],
                "avgCtr": report["avgCtr"],
                "avgCpc": report["avgCpc"],
            }
        )
    )
    return "\n".join(lines) + "\n"


def render_inspect_text(payload: dict[str, Any]) -> str:
    lines = [
        "perf-importer inspect",
        f"Input: {payload['input']}",
        f"Header row: {payload['header_row']}",
    ]
    if payload["repaired_delimiter"]:
        lines.append(f"Re-split on: {payload['repaired_delimiter']!r}")
    lines.append("Columns:")
    for role, info in payload["mapping"].items():
        if info["index"] is None:
            continue
        suffix = " (inferred)" if info["source"] == "inferred" else ""
        lines.append(f"- {role}: column {info['index'] + 1} \"{info['header']}\"{suffix}")
    lines.append(f"Campaigns: {payload['campaign_count']}")
    lines.append(f"Skipped rows: {len(payload['skipped'])}")
    if payload["period_start"] or payload["period_end"]:
        lines.append(f"Period: {payload['period_start'] or '?'} -> {payload['period_end'] or '?'}")
    lines.extend(render_totals(payload["totals"]))
    return "\n".join(lines) + "\n"


def render_report_text(report: dict[str, Any]) -> str:
    lines = [
        "perf-importer report",
        f"Target: {report['clientId']} {report['month']}",
        f"Last import: {report['uploadDate']} ({report['fileName']})",
    ]
    lines.extend(
        render_totals(
            {
                "totalSpend": report["totalSpend"],
                "totalResults": report["totalResults"],
                "avgCtr": report["avgCtr"],
                "avgCpc": report["avgCpc"],
            }
        )
    )
    lines.append("Campaigns:")
    for campaign in report["campaigns"]:
        lines.append(
            f"- {campaign['name']}: spend {format_money(campaign['spend'])}, "
            f"{campaign['results']:g} {campaign['resultType']}"
        )
    return "\n".join(lines) + "\n"


def inspect_payload(plan: ImportPlan, input_label: str) -> dict[str, Any]:
    headers = plan.matrix[plan.header_index] if plan.matrix else []
    mapping = plan.mapping.as_dict()
    for info in mapping.values():
        idx = info["index"]
        info["header"] = str(headers[idx]) if idx is not None and idx < len(headers) else None
    return {
        "input": input_label,
        "header_row": plan.header_index + 1,
        "repaired_delimiter": plan.repaired_delimiter,
        "mapping": mapping,
        "campaign_count": plan.campaign_count,
        "skipped": [
            {"row": item.row_number, "reason": item.reason, "label": item.label}
            for item in plan.extraction.skipped
        ],
        "period_start": plan.extraction.period_start,
        "period_end": plan.extraction.period_end,
        "totals": plan.totals.as_dict(),
        "campaigns": [campaign.to_dict() for campaign in plan.extraction.campaigns],
    }


# ══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = PerfImporterArgumentParser(
        prog="perf-importer",
        description="Import ad-platform performance exports into monthly client reports.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    imp = subparsers.add_parser("import", help="Import an export into a client's monthly report.")
    imp.add_argument("input", help="Input file path, or - with --paste to read stdin")
    imp.add_argument("--client", required=True, help="Client id")
    imp.add_argument("--month", required=True, help="Reference month, YYYY-MM")
    imp.add_argument("--label", help="Source label stored with the report (defaults to the file name)")
    imp.add_argument("--paste", action="store_true", help="Treat INPUT as a pasted text block")
    imp.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    imp.add_argument("--store", help="Report store path or URL")
    imp.add_argument("--config", help=f"Config path (default: ./{DEFAULT_CONFIG_NAME} when present)")
    imp.add_argument("--dry-run", action="store_true", help="Merge against the stored report without saving")
    imp.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    imp.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    inspect = subparsers.add_parser("inspect", help="Show how an export would be read, without saving.")
    inspect.add_argument("input", help="Input file path, or - with --paste to read stdin")
    inspect.add_argument("--paste", action="store_true", help="Treat INPUT as a pasted text block")
    inspect.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    inspect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    inspect.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    show = subparsers.add_parser("show", help="Print a stored report.")
    show.add_argument("--client", required=True, help="Client id")
    show.add_argument("--month", required=True, help="Reference month, YYYY-MM")
    show.add_argument("--store", help="Report store path or URL")
    show.add_argument("--config", help=f"Config path (default: ./{DEFAULT_CONFIG_NAME} when present)")
    show.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_import(args: argparse.Namespace) -> int:
    try:
        client_id, month = validate_target(args.client, args.month)
        matrix, default_label, reader_warnings = read_input(args)
        _, store = resolve_store(args)
        outcome = import_matrix(
            matrix,
            client_id=client_id,
            month=month,
            source_label=args.label or default_label,
            store=store,
            dry_run=args.dry_run,
            extra_warnings=reader_warnings,
        )
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)

    payload = {
        "report": outcome.report.to_dict(),
        "created": outcome.created,
        "saved": outcome.saved,
        "replaced": outcome.replaced,
        "inserted": outcome.inserted,
        "campaigns_extracted": outcome.plan.campaign_count,
    }
    summary = build_run_summary(
        command="import",
        input_label=args.input,
        warnings=outcome.warnings,
        metrics={
            "campaigns_extracted": outcome.plan.campaign_count,
            "rows_skipped": len(outcome.plan.extraction.skipped),
            "campaigns_replaced": len(outcome.replaced),
            "campaigns_inserted": len(outcome.inserted),
        },
    )
    if args.json:
        maybe_emit_json_stdout(wrap_payload("perf_importer.import_summary", payload, summary), True)
    else:
        emit_human(render_import_text(payload).rstrip(), quiet=args.quiet)
        for warning in outcome.warnings:
            emit_human(f"Warning: {warning}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_inspect(args: argparse.Namespace) -> int:
    try:
        matrix, default_label, reader_warnings = read_input(args)
        plan = build_import_plan(matrix)
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)

    warnings = reader_warnings + plan.warnings
    payload = inspect_payload(plan, args.input if not args.paste else default_label)
    summary = build_run_summary(
        command="inspect",
        input_label=args.input,
        warnings=warnings,
        metrics={"campaigns_extracted": plan.campaign_count, "rows_skipped": len(plan.extraction.skipped)},
    )
    if args.json:
        maybe_emit_json_stdout(wrap_payload("perf_importer.inspect", payload, summary), True)
    else:
        emit_human(render_inspect_text(payload).rstrip(), quiet=args.quiet)
        for warning in warnings:
            emit_human(f"Warning: {warning}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_show(args: argparse.Namespace) -> int:
    try:
        client_id, month = validate_target(args.client, args.month)
        _, store = resolve_store(args)
        report = store.fetch_report(client_id, month)
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)

    if report is None:
        eprint(f"No report stored for {client_id} {month}")
        return EXIT_COMMAND_ERROR
    if args.json:
        maybe_emit_json_stdout(report.to_dict(), True)
    else:
        print(render_report_text(report.to_dict()).rstrip())
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(starter_config_text(), encoding="utf-8")
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "import":
            return run_import(args)
        if args.command == "inspect":
            return run_inspect(args)
        if args.command == "show":
            return run_show(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
