"""
cli.py — Command-line entry point.

    python cli.py --template deck.pptx --data job.json --output out.pptx
    python cli.py --template deck.pptx --list-tags
"""

from __future__ import annotations

import argparse
import shutil
import traceback
from pathlib import Path
from typing import List, Optional

from engine.errors import JobValidationError
from generators.presentation import Powerpoint
from orchestrator import TemplateOrchestrator


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fill a PPTX template from a JSON data file")
    parser.add_argument("--template", required=True, help="Path to the .pptx template")
    parser.add_argument("--data", default=None, help="Path to the JSON templating job")
    parser.add_argument("--output", default=None, help="Output .pptx path (the template is never modified)")
    parser.add_argument(
        "--list-tags",
        action="store_true",
        help="Print the text and table tags found in the template and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show full traceback for unexpected errors",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        template_path = Path(args.template).resolve()

        if args.list_tags:
            with Powerpoint(template_path, editable=False) as pptx:
                for tag in TemplateOrchestrator.list_tags(pptx):
                    print(tag)
            return

        if not args.data or not args.output:
            parser.error("--data and --output are required unless --list-tags is given")

        data_path = Path(args.data).resolve()
        output_path = Path(args.output).resolve()

        orchestrator = TemplateOrchestrator()
        job = orchestrator.load_job(data_path)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(template_path, output_path)
        with Powerpoint(output_path) as pptx:
            report = orchestrator.run(pptx, job, base_dir=data_path.parent)

        print(
            f"{output_path}: {report.slides_count} slides "
            f"({report.slides_created} created, {report.template_slides_removed} templates removed)"
        )
    except JobValidationError as e:
        raise SystemExit(str(e)) from e
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        raise SystemExit(f"Templating failed: {e}") from e


if __name__ == "__main__":
    main()
