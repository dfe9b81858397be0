from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from tally_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from tally_import.errors import DecodeError
from tally_import.excel.reader import decode_workbook
from tally_import.logging.init import get_logger, log_summary, set_debug, setup_logging
from tally_import.models.config_models import PipelineConfig
from tally_import.services.filters import all_of, by_category, by_month, by_search
from tally_import.services.normalizer import normalize_grid, normalize_records
from tally_import.services.orchestrator import ProcessingError, detect_source, process_directory, scan_import_files
from tally_import.services.projection import ReportShape, build_report, resolve_shape
from tally_import.services.summary import render_report_table, render_summary_line
from tally_import.storage.import_store import ImportStore, ImportStoreError
from tally_import.xml.vouchers import decode_vouchers

"""CLI entrypoint: ``tally-import`` / ``python -m tally_import.cli``.

Modes:
- default: import every supported file of source_directory, print SUMMARY
- --inspect-data: show detected headers and the first normalized rows, no writes
- --report SHAPE: print one report view of the current (or --import-id) import
- --set-current ID: select the import used by reports

Exit codes: 0 success, 2 at least one file failed, 1 fatal error.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="tally-import", description="Tally export importer and sales report tool")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML (default: config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print detected headers & first rows then exit")
    p.add_argument(
        "--report",
        metavar="SHAPE",
        help=f"Print a report ({', '.join(s.value for s in ReportShape)}) instead of importing",
    )
    p.add_argument("--import-id", help="Import used by --report (default: current import)")
    p.add_argument("--set-current", metavar="ID", help="Make ID the current import and exit")
    p.add_argument("--category", help="Report filter: item category (company)")
    p.add_argument("--month", help="Report filter: month as YYYY-MM")
    p.add_argument("--search", help="Report filter: text contained in any column")
    return p.parse_args(argv)


def _inspect_data(cfg: PipelineConfig) -> int:
    """Print header mapping and sample rows of every source file (read only)."""
    try:
        files = scan_import_files(Path(cfg.source_directory), cfg.file_extensions)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no import files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            data = f.read_bytes()
            if detect_source(f.name) == "xml":
                batch = decode_vouchers(data, f.name)
                result = normalize_records(batch.rows, aliases=cfg.field_aliases, file_name=f.name)
                result.skipped_rows += batch.skipped
            else:
                result = normalize_grid(decode_workbook(data, f.name), aliases=cfg.field_aliases, file_name=f.name)
        except (OSError, DecodeError) as e:
            print(f"  read_error: {e}")
            continue
        mapped = {k: list(v) for k, v in result.header_map.items() if v}
        print(f"  mapped={mapped}")
        print(f"  rows={len(result.rows)} noise={result.noise_rows} skipped={result.skipped_rows}")
        for row in result.rows[:INSPECT_SAMPLE_ROWS]:
            print("    sample_row=", row.to_dict())
    return EXIT_SUCCESS_ALL


def _print_report(store: ImportStore, args: argparse.Namespace) -> int:
    logger = get_logger()
    try:
        document = store.load(args.import_id) if args.import_id else store.current()
    except ImportStoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    if document is None:
        logger.error(f"no imports in {store.directory}")
        return EXIT_FATAL

    shape = resolve_shape(args.report)
    if shape.value != args.report.strip().lower():
        logger.warning(f"unknown report shape '{args.report}', showing raw rows")
    where = all_of(by_category(args.category), by_month(args.month), by_search(args.search))
    logger.info(f"report={shape.value} import={document.meta.import_id} ({document.meta.original_name})")
    print(render_report_table(build_report(document.rows, shape, where=where)))
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    # .env はディレクトリ上書き (TALLY_IMPORT_*) より先に読む
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    store = ImportStore(cfg.store_directory)

    if args.set_current:
        try:
            store.set_current(args.set_current)
        except ImportStoreError as e:
            logger.error(f"store: {e}")
            return EXIT_FATAL
        logger.info(f"current import set to {args.set_current}")
        return EXIT_SUCCESS_ALL

    if args.report:
        return _print_report(store, args)

    if args.inspect_data:
        return _inspect_data(cfg)

    logger.info(f"Importing files from: {cfg.source_directory}")
    try:
        result = process_directory(cfg, store)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    # "SUMMARY " はフォーマッタが付与する
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
