"""
course_batch_toolkit.cli - Command-line interface.

Thin host around the batch pipeline: reads an exported course archive,
applies the requested edits and writes the processed archive and/or the
course sheet.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from course_batch_toolkit.core.exceptions import CourseToolkitError
from course_batch_toolkit.core.field_editors import (
    LOCK_VALUES,
    NO_CHANGE,
    QSET_DISPLAY_VALUES,
    REQUIRED_VALUES,
    SHOW_ANSWERS_VALUES,
)
from course_batch_toolkit.core.generators import create_course_sheet
from course_batch_toolkit.core.importers import CoursePackageImporter
from course_batch_toolkit.core.models import CourseContext
from course_batch_toolkit.core.options import SCRUBBING_VALUES, BatchOptions
from course_batch_toolkit.core.package_utils import output_archive_name, save_course_package, save_course_sheet
from course_batch_toolkit.core.sectioning import SECTION_SCOPES
from course_batch_toolkit.core.services import BatchEditService
from course_batch_toolkit.core.services.batch_service import make_progress_logger
from course_batch_toolkit.logging_config import setup_logging
from course_batch_toolkit.version import get_app_version

logger = logging.getLogger(__name__)

__all__ = ["create_parser", "main"]


def _choices(values) -> List[str]:
    return list(values) + [NO_CHANGE]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="course-batch",
        description="Batch edits for exported course packages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  course-batch course.tgz --lock-unlock lock --required-optional require
  course-batch course.tgz --section-scope section_per_te --video-intro --video-credits
  course-batch course.tgz --clean -o cleaned.tgz
  course-batch course.tgz --report-only --sheet course.csv
  course-batch course.tgz --repack-only
        """,
    )
    parser.add_argument("--version", action="version", version=f"course-batch {get_app_version()}")
    parser.add_argument("input", type=Path, help="Exported course archive (.tgz)", metavar="INPUT")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Processed archive path (default: <course name>.tgz beside the input)",
        metavar="PATH",
    )
    parser.add_argument("--sheet", type=Path, help="Also write the course sheet CSV here", metavar="PATH")

    edits = parser.add_argument_group("edits")
    edits.add_argument("--lock-unlock", choices=_choices(LOCK_VALUES))
    edits.add_argument("--required-optional", choices=_choices(REQUIRED_VALUES))
    edits.add_argument("--section-scope", choices=_choices(SECTION_SCOPES))
    edits.add_argument(
        "--video-intro",
        action="store_true",
        default=None,
        help="Merge a lone text section right before a video into the video's section",
    )
    edits.add_argument(
        "--video-credits",
        action="store_true",
        default=None,
        help="Merge a lone text section right after a video into the video's section",
    )
    edits.add_argument("--scrubbing", choices=_choices(SCRUBBING_VALUES))
    edits.add_argument("--show-answers", choices=_choices(SHOW_ANSWERS_VALUES))
    edits.add_argument("--qset-display", choices=_choices(QSET_DISPLAY_VALUES))
    edits.add_argument("--num-attempts", help="Attempts allowed on question sets", metavar="N")
    edits.add_argument("--pass-percent", help="Minimum passing percentage on question sets", metavar="N")
    edits.add_argument(
        "--clean",
        action="store_true",
        default=None,
        help="Remove content the platform cannot re-import",
    )

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "--report-only",
        action="store_true",
        help="Only write the course sheet; no changes to the course",
    )
    modes.add_argument(
        "--repack-only",
        action="store_true",
        help="Read and rewrite the archive without changes (round-trip test)",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> BatchOptions:
    """BatchOptions from configured defaults overridden by command-line values."""
    overrides = {
        "lock_unlock": args.lock_unlock,
        "required_optional": args.required_optional,
        "section_scope": args.section_scope,
        "scrubbing": args.scrubbing,
        "video_intro": args.video_intro,
        "video_credits": args.video_credits,
        "show_answers": args.show_answers,
        "qset_display": args.qset_display,
        "num_attempts": args.num_attempts,
        "pass_percent": args.pass_percent,
        "clean": args.clean,
    }
    return BatchOptions.from_config(overrides)


def _archive_target(args: argparse.Namespace, context: CourseContext) -> Path:
    if args.output is not None:
        return args.output
    return args.input.resolve().parent / output_archive_name(context)


def _sheet_target(args: argparse.Namespace, context: CourseContext) -> Path:
    if args.sheet is not None:
        return args.sheet
    name = context.metadata.get("course_name") or "processed_course"
    return args.input.resolve().parent / f"{name}.csv"


def run(args: argparse.Namespace) -> int:
    """Execute one run described by parsed *args*."""
    progress = make_progress_logger()
    progress.update("Starting")

    progress.update("Getting options")
    options = options_from_args(args)

    importer = CoursePackageImporter()
    context = importer.import_package(args.input, progress_callback=progress.update)

    if args.repack_only:
        target = save_course_package(context, _archive_target(args, context), progress.update)
        print(f"Repacked without changes: {target}")
        return 0

    if args.report_only:
        target = save_course_sheet(create_course_sheet(context), _sheet_target(args, context))
        print(f"Course sheet: {target}")
        return 0

    result = BatchEditService(progress=progress).process(context, options)
    logger.info(result.message)

    archive = save_course_package(context, _archive_target(args, context), progress.update)
    print(f"Processed course: {archive}")
    if args.sheet is not None:
        sheet = save_course_sheet(create_course_sheet(context), args.sheet)
        print(f"Course sheet: {sheet}")
    progress.update("Download")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for a failed run)
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        return run(args)
    except CourseToolkitError as exc:
        logger.error("Run failed: %s", exc)
        print(f"Error: {exc}")
        return 1
