from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from catalogsync.app import (
    analyze_catalog_duplicates,
    apply_refresh,
    export_catalog,
    import_catalog,
    list_catalogs,
    merge_catalog_duplicates,
    preview_refresh,
)
from catalogsync.config import configure_logging
from catalogsync.domain.reconciliation import DiffKind, RuleSet, select_all

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import, merge and refresh product catalogs")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_ = subparsers.add_parser("import", help="Import a catalog feed")
    import_.add_argument("source", help="Feed URL or path to a local document")
    import_.add_argument(
        "--name",
        type=str,
        help="Display name for the catalog (defaults to the file name or host)",
    )

    subparsers.add_parser("list", help="List stored catalogs")

    duplicates = subparsers.add_parser("duplicates", help="Report listings sharing a URL")
    duplicates.add_argument("catalog_id", help="Id of a stored catalog")

    merge = subparsers.add_parser("merge", help="Merge listings sharing a URL")
    merge.add_argument("catalog_id", help="Id of a stored catalog")
    merge.add_argument(
        "--attribute",
        dest="attributes",
        action="append",
        help="Attribute to combine across variants (repeatable, defaults to size and color)",
    )

    refresh = subparsers.add_parser("refresh", help="Compare a catalog with its re-fetched source")
    refresh.add_argument("catalog_id", help="Id of a stored catalog")
    refresh.add_argument(
        "--source",
        type=str,
        help="Read the new document from here instead of the stored source URL",
    )
    refresh.add_argument("--compare-name", action="store_true", help="Compare product names")
    refresh.add_argument(
        "--compare-description", action="store_true", help="Compare product descriptions"
    )
    refresh.add_argument("--ignore-price", action="store_true", help="Do not compare prices")
    refresh.add_argument(
        "--ignore-availability", action="store_true", help="Do not compare availability"
    )
    refresh.add_argument(
        "--ignore-attributes", action="store_true", help="Do not compare attributes"
    )
    refresh.add_argument("--skip-new", action="store_true", help="Do not report new products")
    refresh.add_argument(
        "--include-merged",
        action="store_true",
        help="Report ids folded by an earlier merge as new products",
    )
    refresh.add_argument(
        "--apply-all",
        action="store_true",
        help="Apply every reported change instead of only printing them",
    )

    export = subparsers.add_parser("export", help="Render a stored catalog as YML")
    export.add_argument("catalog_id", help="Id of a stored catalog")
    export.add_argument("--output", type=Path, help="Write to this file instead of stdout")

    return parser.parse_args(list(argv))


def _rules_from_args(args: argparse.Namespace) -> RuleSet:
    return RuleSet(
        compare_name=args.compare_name,
        compare_description=args.compare_description,
        compare_price=not args.ignore_price,
        compare_availability=not args.ignore_availability,
        compare_attributes=not args.ignore_attributes,
        treat_new_as_new=not args.skip_new,
        ignore_ids_in_merge_map=not args.include_merged,
    )


def _run_refresh(args: argparse.Namespace) -> None:
    preview = preview_refresh(args.catalog_id, source=args.source, rules=_rules_from_args(args))
    for diff in preview.diffs:
        if diff.kind is DiffKind.NEW:
            log.info("new      %s %s", diff.product_id, diff.new_product.name)
            continue
        for product_field, change in diff.changes.items():
            log.info(
                "changed  %s %s: %r -> %r",
                diff.product_id,
                product_field,
                change.old,
                change.new,
            )
    if not preview.diffs:
        log.info("Catalog %s is up to date", args.catalog_id)
    elif args.apply_all:
        apply_refresh(preview, select_all(preview.diffs))
        log.info("Applied %d change(s) to catalog %s", len(preview.diffs), args.catalog_id)


def _dispatch(args: argparse.Namespace) -> None:
    if args.command == "import":
        catalog = import_catalog(args.source, display_name=args.name)
        log.info(
            "Imported catalog %s (%s): %d products, %d categories",
            catalog.id,
            catalog.name,
            len(catalog.products),
            len(catalog.categories),
        )
    elif args.command == "list":
        for catalog in list_catalogs():
            log.info("%s  %s  %d products", catalog.id, catalog.name, len(catalog.products))
    elif args.command == "duplicates":
        analysis = analyze_catalog_duplicates(args.catalog_id)
        for group in analysis.groups:
            log.info("%s: %d listings", group.key, len(group.products))
        log.info(
            "%d group(s), %d -> %d products; suggested merge attributes: %s",
            len(analysis.groups),
            analysis.original_product_count,
            analysis.merged_product_count,
            ", ".join(analysis.suggested_merge_attributes) or "none",
        )
    elif args.command == "merge":
        merged = merge_catalog_duplicates(args.catalog_id, attribute_names=args.attributes)
        log.info("Catalog %s now has %d products", merged.id, len(merged.products))
    elif args.command == "refresh":
        _run_refresh(args)
    elif args.command == "export":
        markup = export_catalog(args.catalog_id, destination=args.output)
        if args.output is None:
            sys.stdout.write(markup)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        _dispatch(parsed_args)
    except (LookupError, ValueError):
        log.exception("Invalid request")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
