#!/usr/bin/env python3
"""
CLI for record import/export/status operations.

Usage:
    recordsync --config recordsync.yaml import-all
    recordsync --config recordsync.yaml import-source default
    recordsync --config recordsync.yaml import-record default <uuid>
    recordsync --config recordsync.yaml export-record default node 12 [--option <uuid>:file_assets='{"should_export": true}']
    recordsync --config recordsync.yaml status <uuid>
    recordsync --config recordsync.yaml diff <uuid>
    recordsync --config recordsync.yaml prune default <uuid>
    recordsync --config recordsync.yaml pack default --out archive.zip [--record node 12] [--encrypt]
    recordsync unpack --in archive.zip --out content/
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .archive import ArchiveReader, ArchiveWriter, get_encryption_key
from .config.settings import SyncSettings
from .core.logging import configure_logging
from .discovery.finder import ExportsCache, RecordFinder
from .handlers import create_default_registry
from .handlers.registry import HandlerRegistry
from .options import create_default_options
from .options.registry import MetaOptionRegistry
from .sources.manager import SourceManager
from .store import create_language_manager, create_record_store_from_settings
from .store.base import RecordStore
from .sync.exporter import Exporter
from .sync.factory import ExportableFactory, OptionOverrides
from .sync.importer import Importer
from .sync.pruner import Pruner
from .sync.serializer import RecordSerializer
from .sync.status import StatusResolver


@dataclass
class Services:
    """Everything a command needs, wired from one SyncSettings."""
    settings: SyncSettings
    store: RecordStore
    sources: SourceManager
    handlers: HandlerRegistry
    options: MetaOptionRegistry
    importer: Importer
    factory: ExportableFactory
    exporter: Exporter
    status_resolver: StatusResolver
    pruner: Pruner

    def close(self) -> None:
        self.store.close()


def build_services(settings: SyncSettings, store: Optional[RecordStore] = None) -> Services:
    """Wire the store, plugins and engines described by the settings."""
    store = store or create_record_store_from_settings(settings)
    languages = create_language_manager(settings)
    sources = SourceManager.from_settings(settings)
    handlers = create_default_registry(store)
    options = create_default_options(settings, store)
    finder = RecordFinder()
    exports_cache = ExportsCache()

    serializer = RecordSerializer(store, handlers)
    importer = Importer(store, languages, handlers, options, sources, finder, exports_cache)
    status_resolver = StatusResolver(settings, sources, serializer)
    factory = ExportableFactory(
        store,
        serializer,
        sources,
        status_resolver,
        importer,
        options,
    )
    return Services(
        settings=settings,
        store=store,
        sources=sources,
        handlers=handlers,
        options=options,
        importer=importer,
        factory=factory,
        exporter=Exporter(factory, options, sources, exports_cache),
        status_resolver=status_resolver,
        pruner=Pruner(finder),
    )


def setup_logging(verbose: bool = False, structured: bool = False) -> None:
    """Configure logging."""
    log_level = logging.DEBUG if verbose else logging.INFO

    if structured:
        configure_logging(level=log_level, structured=True)
        return

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_settings(args) -> SyncSettings:
    return SyncSettings(Path(args.config) if args.config else None)


def parse_option_overrides(values: Optional[List[str]]) -> OptionOverrides:
    """
    Parse ``UUID:OPTION=JSON`` strings into per-identity option overrides.

    Raises:
        ValueError: If a value is malformed
    """
    overrides: Dict[str, Dict[str, Any]] = {}
    for value in values or []:
        target, sep, raw = value.partition("=")
        uuid, colon, option_id = target.partition(":")
        if not sep or not colon or not uuid or not option_id:
            raise ValueError(f"Invalid option override '{value}', expected UUID:OPTION=JSON")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in option override '{value}': {e}") from e
        overrides.setdefault(uuid, {})[option_id] = parsed
    return overrides


def _print_report(report, as_json: bool) -> None:
    print(report.summary())
    if as_json:
        print("\n" + json.dumps(report.to_dict(), indent=2))


def _run(args, command) -> int:
    """Build services, run a command with them and close the store."""
    logger = logging.getLogger(__name__)
    try:
        services = build_services(load_settings(args))
    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        return 1

    try:
        return command(services, args)
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        services.close()


def cmd_import_all(services: Services, args) -> int:
    """Import every enabled source."""
    report = services.importer.import_from_all_sources()
    _print_report(report, args.json)
    return 0 if report.ok else 1


def cmd_import_source(services: Services, args) -> int:
    """Import every export of one source."""
    report = services.importer.import_from_source(args.source)
    _print_report(report, args.json)
    return 0 if report.ok else 1


def cmd_import_record(services: Services, args) -> int:
    """Import one export and its dependencies."""
    report = services.importer.import_record_from_source(args.source, args.uuid)
    _print_report(report, args.json)
    return 0 if report.ok else 1


def cmd_export_record(services: Services, args) -> int:
    """Export a live record and its dependencies to a source."""
    report = services.exporter.export_record(
        args.source,
        args.record_type,
        args.record_id,
        parse_option_overrides(args.option),
    )
    _print_report(report, args.json)
    return 0 if report.ok else 1


def cmd_status(services: Services, args) -> int:
    """Show the sync status of a record."""
    exportable = services.factory.create_from_uuid(args.uuid)
    if args.json:
        print(json.dumps({
            "uuid": exportable.uuid,
            "record_type": exportable.record.record_type,
            "bundle": exportable.record.bundle,
            "status": exportable.status.value,
            "source": exportable.source.id if exportable.source else None,
            "path": exportable.filepath or None,
        }, indent=2))
    else:
        print(f"{exportable.record.record_type} {exportable.uuid}: {exportable.status.value}")
    return 0


def cmd_diff(services: Services, args) -> int:
    """Show the difference between the exported and the live form of a record."""
    exportable = services.factory.create_from_uuid(args.uuid)
    lines = services.status_resolver.exportable_to_diff(exportable)
    if args.json:
        print(json.dumps({"uuid": exportable.uuid, "status": exportable.status.value, "diff": lines}, indent=2))
    elif lines:
        print("\n".join(lines))
    else:
        print(f"No differences for {exportable.uuid} ({exportable.status.value})")
    return 0


def cmd_prune(services: Services, args) -> int:
    """Remove an export and the dependencies nothing else needs."""
    logger = logging.getLogger(__name__)
    source = services.sources.get(args.source)
    deleted = services.pruner.remove_with_dependencies(source.directory_processed(), args.uuid)
    if args.json:
        print(json.dumps({"uuid": args.uuid, "deleted": [str(path) for path in deleted]}, indent=2))
    else:
        for path in deleted:
            print(f"Deleted {path}")
    if not deleted:
        logger.warning(f"Nothing removed for {args.uuid}")
    return 0


def cmd_pack(services: Services, args) -> int:
    """Pack a source, or a live record with its dependencies, into an archive."""
    logger = logging.getLogger(__name__)

    encryption_key = None
    if args.encrypt:
        encryption_key = get_encryption_key(key_source="env", prompt=True)
        if not encryption_key:
            logger.error("Encryption key not found. Set RECORDSYNC_ENCRYPTION_KEY env var.")
            return 1

    source = services.sources.get(args.source)
    writer = ArchiveWriter(services.options, encrypt=args.encrypt, encryption_key=encryption_key)
    if args.record:
        record_type, record_id = args.record
        exportables = services.factory.get_record_exportables(record_type, int(record_id), source)
        result_path = writer.write_exportables(exportables.values(), Path(args.out), source.id)
    else:
        result_path = writer.write_source(source, Path(args.out))

    logger.info(f"Created archive: {result_path}")
    return 0


def cmd_unpack(args) -> int:
    """Unpack an archive into a directory."""
    logger = logging.getLogger(__name__)

    archive_path = Path(args.input)
    if not archive_path.exists():
        logger.error(f"Archive not found: {archive_path}")
        return 1

    decryption_key = None
    if archive_path.suffix == ".enc":
        decryption_key = get_encryption_key(key_source="env", prompt=True)
        if not decryption_key:
            logger.error("Decryption key not found. Set RECORDSYNC_ENCRYPTION_KEY env var.")
            return 1

    try:
        reader = ArchiveReader(archive_path, decryption_key)
        result_dir = reader.unpack(Path(args.out))
        logger.info(f"Unpacked to: {result_dir}")
        return 0
    except Exception as e:
        logger.error(f"Failed to unpack: {e}")
        return 1


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Sync serialized records with a live record store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--config", help="Path to the YAML configuration file")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit JSON structured logs")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("import-all", help="Import every enabled source")

    import_source_parser = subparsers.add_parser("import-source", help="Import every export of a source")
    import_source_parser.add_argument("source", help="Source id")

    import_record_parser = subparsers.add_parser("import-record", help="Import one export and its dependencies")
    import_record_parser.add_argument("source", help="Source id")
    import_record_parser.add_argument("uuid", help="Record identity")

    export_parser = subparsers.add_parser("export-record", help="Export a live record and its dependencies")
    export_parser.add_argument("source", help="Source id")
    export_parser.add_argument("record_type", help="Record type")
    export_parser.add_argument("record_id", type=int, help="Live record id")
    export_parser.add_argument("--option", action="append",
                               help="Option override as UUID:OPTION=JSON (repeatable)")

    status_parser = subparsers.add_parser("status", help="Show the sync status of a record")
    status_parser.add_argument("uuid", help="Record identity")

    diff_parser = subparsers.add_parser("diff", help="Diff the exported and live forms of a record")
    diff_parser.add_argument("uuid", help="Record identity")

    prune_parser = subparsers.add_parser("prune", help="Remove an export and its unneeded dependencies")
    prune_parser.add_argument("source", help="Source id")
    prune_parser.add_argument("uuid", help="Record identity")

    pack_parser = subparsers.add_parser("pack", help="Pack exports into an archive")
    pack_parser.add_argument("source", help="Source id")
    pack_parser.add_argument("--out", required=True, help="Output archive path")
    pack_parser.add_argument("--record", nargs=2, metavar=("TYPE", "ID"),
                             help="Pack a live record and its dependencies instead of the whole source")
    pack_parser.add_argument("--encrypt", action="store_true", help="Encrypt the archive")

    unpack_parser = subparsers.add_parser("unpack", help="Unpack an archive")
    unpack_parser.add_argument("--in", dest="input", required=True, help="Input archive path")
    unpack_parser.add_argument("--out", required=True, help="Output directory")

    return parser.parse_args(argv)


COMMANDS = {
    "import-all": cmd_import_all,
    "import-source": cmd_import_source,
    "import-record": cmd_import_record,
    "export-record": cmd_export_record,
    "status": cmd_status,
    "diff": cmd_diff,
    "prune": cmd_prune,
    "pack": cmd_pack,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(verbose=args.verbose, structured=args.log_json)

    if args.command == "unpack":
        return cmd_unpack(args)
    elif args.command in COMMANDS:
        return _run(args, COMMANDS[args.command])
    else:
        print("No command specified. Use --help for usage.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
