"""
Command-line entry point.

Usage:
    takeoff-editor totals JOB.json [--page PAGE_ID] [--json OUT]
    takeoff-editor payload JOB.json [--out OUT] [--color COLOR] [--profile PROFILE]
    takeoff-editor calibrate JOB.json PAGE_ID PIXELS "12'-6\\"" [--out OUT]

JOB.json is the extraction pipeline's job export: {"id", "pages", "detections"}.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from takeoff_editor import config
from takeoff_editor.calibration.scale import apply_calibration, calibrate_from_text
from takeoff_editor.domain.models import Job
from takeoff_editor.export.payload import build_approve_payload
from takeoff_editor.measurement.aggregation import PageTotals, aggregate_job, aggregate_page
from takeoff_editor.measurement.formatting import format_area, format_length

logger = logging.getLogger(__name__)


def _print_totals(totals: PageTotals):
    print(f"  Facade:        {format_area(totals.building_area_sf)} "
          f"(net siding {format_area(totals.siding_net_sf)})")
    print(f"  Level starter: {format_length(totals.building_level_starter_lf)}")
    print(f"  Windows:       {totals.window_count} / {format_area(totals.window_area_sf)}")
    print(f"  Doors:         {totals.door_count} / {format_area(totals.door_area_sf)}")
    print(f"  Garages:       {totals.garage_count} / {format_area(totals.garage_area_sf)}")
    print(f"  Gables:        {totals.gable_count} / {format_area(totals.gable_area_sf)} "
          f"(rake {format_length(totals.gable_rake_lf)})")
    print(f"  Outside corners: {totals.total_outside_corner_count} / "
          f"{format_length(totals.total_outside_corner_lf)}")
    print(f"  Inside corners:  {totals.total_inside_corner_count} / "
          f"{format_length(totals.total_inside_corner_lf)}")
    for cls, count in sorted(totals.counts_by_class.items()):
        print(f"  {cls}: {count} EA")


def _write_json(data: dict, out: Optional[str]):
    text = json.dumps(data, indent=2)
    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {out}")
    else:
        print(text)


def cmd_totals(args: argparse.Namespace) -> int:
    job = Job.from_file(args.job)

    if args.page:
        page = job.get_page(args.page)
        if page is None:
            print(f"Error: page {args.page} not found in job {job.id}")
            return 1
        totals = aggregate_page(page, job.detections)
        if totals is None:
            print(f"Error: page {page.id} has no usable scale")
            return 1
        print(f"Page {page.id} ({page.elevation_name or page.page_type.value}) @ {page.scale_ratio} px/ft")
        _print_totals(totals)
        if args.json:
            _write_json(totals.model_dump(mode="json"), args.json)
        return 0

    result = aggregate_job(job.pages, job.detections)
    print(f"Job {job.id}: {len(result.included_page_ids)} calibrated elevation page(s) included, "
          f"{len(result.excluded_page_ids)} excluded")
    if result.all_pages is None:
        print("  No calibrated elevation pages.")
    else:
        _print_totals(result.all_pages)
    if args.json:
        _write_json(result.model_dump(mode="json"), args.json)
    return 0


def cmd_payload(args: argparse.Namespace) -> int:
    job = Job.from_file(args.job)
    result = aggregate_job(job.pages, job.detections)
    if result.all_pages is None:
        print(f"Error: job {job.id} has no calibrated elevation pages")
        return 1
    payload = build_approve_payload(
        job.id,
        result.all_pages,
        job.detections,
        job.pages,
        product_color=args.color,
        profile=args.profile,
    )
    _write_json(payload.model_dump(mode="json"), args.out)
    return 0


def cmd_calibrate(args: argparse.Namespace) -> int:
    job = Job.from_file(args.job)
    page = job.get_page(args.page)
    if page is None:
        print(f"Error: page {args.page} not found in job {job.id}")
        return 1
    result = calibrate_from_text(args.pixels, args.length)
    if result is None:
        print(f"Error: cannot calibrate {args.pixels} px against {args.length!r}")
        return 1

    page = apply_calibration(page, result)
    job.pages = [page if p.id == page.id else p for p in job.pages]
    notation = result.notation or "custom"
    print(f"Page {page.id}: {result.pixels_per_foot:.2f} px/ft ({notation})")
    if args.out:
        _write_json(job.model_dump(mode="json", by_alias=True), args.out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="takeoff-editor", description="Takeoff measurement tools")
    sub = parser.add_subparsers(dest="command", required=True)

    totals = sub.add_parser("totals", help="Print page or job totals")
    totals.add_argument("job", help="Job JSON file")
    totals.add_argument("--page", help="Only this page id")
    totals.add_argument("--json", help="Also write the totals as JSON to this file")
    totals.set_defaults(func=cmd_totals)

    payload = sub.add_parser("payload", help="Build the approve/pricing payload")
    payload.add_argument("job", help="Job JSON file")
    payload.add_argument("--out", help="Output file (stdout by default)")
    payload.add_argument("--color", help="Siding color")
    payload.add_argument("--profile", default="cedarmill", help="Siding profile")
    payload.set_defaults(func=cmd_payload)

    calibrate = sub.add_parser("calibrate", help="Calibrate a page from a known dimension")
    calibrate.add_argument("job", help="Job JSON file")
    calibrate.add_argument("page", help="Page id")
    calibrate.add_argument("pixels", type=float, help="Pixel distance of the reference line")
    calibrate.add_argument("length", help="Real length, e.g. 12'-6\"")
    calibrate.add_argument("--out", help="Write the calibrated job JSON here")
    calibrate.set_defaults(func=cmd_calibrate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
