from __future__ import annotations

import argparse
import logging
import sys

from hrmsreport.config import get_settings
from hrmsreport.runner import generate_pdf


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description='Generate a tabbed HRMS appraisal PDF from JSON')
    parser.add_argument(
        '-i',
        '--input',
        default=settings.default_input,
        help=f'Path to the appraisal JSON (default: {settings.default_input})',
    )
    parser.add_argument(
        '-o',
        '--output',
        default=settings.default_output,
        help=f'Path of the PDF to write (default: {settings.default_output})',
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    args = build_parser().parse_args(argv)
    try:
        output_path = generate_pdf(args.input, args.output, settings=settings)
    except Exception as exc:
        print(f'Error: {exc}', file=sys.stderr)
        return 1

    print(f'PDF generated: {output_path}')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
