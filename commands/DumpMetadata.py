#!/usr/bin/env python3
"""
DumpMetadata.py - Command line utility to print the metadata of FITS and XISF files

This script extracts metadata from one or more image files and prints either a
human-readable summary or JSON. Derived quantities (plate scale, field of view,
session date) are included when the headers allow them.

Usage:
    python DumpMetadata.py [options] FILE [FILE ...]

Options:
    -h, --help          Show this help message and exit
    -v, --verbose       Enable verbose logging
    -c, --config        Path to configuration file (default: astrometa.ini)
    -j, --json          Print JSON instead of a summary
    -r, --raw           Include raw header records
    -t, --timezone      IANA timezone used for the session date
    -f, --format        Format hint (FITS, XISF, GZIP) instead of signature detection
    -l, --list-formats  List the supported formats and their file extensions

Examples:
    # Summary of one file
    python DumpMetadata.py light_0001.fits

    # JSON for several files, session dates in local time
    python DumpMetadata.py -j -t America/Edmonton *.xisf
"""

import sys
import os
import json
import argparse
import logging

from astrometa import (
    AstroMetaError, ConfigManager, extract_metadata_from_path, setup_logging,
)
from astrometa.file_formats import get_file_format_processor


def build_report(metadata, include_raw=False):
    """Assemble the JSON-ready report for one file."""
    report = metadata.to_dict()
    if not include_raw:
        report.pop('raw_headers', None)
    report['derived'] = {
        'plate_scale': metadata.plate_scale(),
        'plate_scale_binned': metadata.plate_scale(binned=True),
        'field_of_view': metadata.field_of_view(),
    }
    return report


def print_formats():
    """Print each supported format with its file extensions."""
    for name, extensions in get_file_format_processor().get_supported_formats().items():
        print(f"{name:<6} {' '.join(extensions)}")


def print_summary(file_path, metadata, include_raw=False):
    """Print a human-readable summary of one file."""
    equipment, detector, exposure = metadata.equipment, metadata.detector, metadata.exposure

    print(f"{file_path} [{metadata.source_format}]")
    print(f"  Object:       {exposure.object_name or '-'} ({exposure.frame_type or '-'})")
    if exposure.ra is not None and exposure.dec is not None:
        print(f"  RA/Dec:       {exposure.ra:.5f} {exposure.dec:+.5f}")
    print(f"  Observed:     {exposure.date_obs.isoformat() if exposure.date_obs else '-'}")
    print(f"  Session:      {exposure.session_date.date() if exposure.session_date else '-'}")
    print(f"  Exposure:     {exposure.exposure_time if exposure.exposure_time is not None else '-'} s")
    print(f"  Filter:       {metadata.filter.name or '-'}")
    print(f"  Telescope:    {equipment.telescope_name or '-'} "
          f"(focal length {equipment.focal_length or '-'} mm)")
    print(f"  Camera:       {detector.camera_name or '-'} "
          f"{detector.width}x{detector.height}, bin {detector.binning_x}x{detector.binning_y}")

    scale = metadata.plate_scale()
    if scale is not None:
        print(f"  Plate scale:  {scale:.3f} arcsec/px")
    fov = metadata.field_of_view()
    if fov is not None:
        print(f"  Field:        {fov[0]:.1f}' x {fov[1]:.1f}'")

    for attachment in metadata.attachments:
        state = 'ok' if not attachment.has_issues else f"{len(attachment.issues)} issue(s)"
        print(f"  Block {attachment.id}: {attachment.kind} {attachment.geometry or ''} "
              f"{attachment.compression_codec or 'uncompressed'}"
              f"{' (shuffled)' if attachment.is_shuffled else ''} [{state}]")
        for issue in attachment.issues:
            print(f"    - {issue}")

    if include_raw:
        for key, value in metadata.raw_headers.items():
            print(f"  {key:<20} = {value}")


def main():
    """Main function to dump metadata from command line."""
    parser = argparse.ArgumentParser(
        description="Print metadata extracted from FITS and XISF files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python DumpMetadata.py image.fits                 # Summary
    python DumpMetadata.py -j image.xisf              # JSON output
    python DumpMetadata.py -t Europe/Madrid *.fits    # Session dates in local time
        """
    )

    parser.add_argument('files', nargs='*', metavar='FILE',
                        help='FITS or XISF files to read')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('-c', '--config', default=None,
                        help='Path to configuration file (default: astrometa.ini)')
    parser.add_argument('-j', '--json', action='store_true',
                        help='Print JSON instead of a summary')
    parser.add_argument('-r', '--raw', action='store_true',
                        help='Include raw header records')
    parser.add_argument('-t', '--timezone',
                        help='IANA timezone used for the session date')
    parser.add_argument('-f', '--format', dest='format_hint',
                        help='Format hint (FITS, XISF, GZIP)')
    parser.add_argument('-l', '--list-formats', action='store_true',
                        help='List the supported formats and exit')

    args = parser.parse_args()

    if args.list_formats:
        print_formats()
        return 0
    if not args.files:
        parser.error("at least one FILE is required")

    try:
        config = ConfigManager(args.config).load_config()
    except AstroMetaError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config, verbose=args.verbose)
    logger = logging.getLogger(__name__)

    if args.timezone:
        config.extraction.timezone = args.timezone
    config.extraction.compute_session_date = True

    reports = {}
    failures = 0
    for file_path in args.files:
        try:
            metadata = extract_metadata_from_path(file_path, format_hint=args.format_hint,
                                                  config=config.extraction)
        except AstroMetaError as e:
            logger.error(f"{file_path}: {e}")
            failures += 1
            continue

        if args.json:
            reports[os.path.abspath(file_path)] = build_report(metadata, args.raw)
        else:
            print_summary(file_path, metadata, args.raw)

    if args.json:
        print(json.dumps(reports, indent=2))

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
