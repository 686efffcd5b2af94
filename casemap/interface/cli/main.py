"""CLI: analyze one filing and emit the positioned case graph plus brief as JSON."""

import argparse
import json
import sys

from loguru import logger

from casemap.application.dto.analysis_dto import AnalyzeDocumentRequest
from casemap.config.composition import build_analyze_use_case
from casemap.config.settings import AppSettings
from casemap.domain.errors import DomainError


def _configure_logging(verbose: bool) -> None:
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="DEBUG" if verbose else "INFO",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="casemap-analyze", description=__doc__)
    parser.add_argument("--path", required=True, help="PDF (or .txt) to analyze")
    parser.add_argument("--out", help="Write JSON here instead of stdout")
    parser.add_argument("--no-rag", action="store_true", help="Skip retrieval and citations")
    parser.add_argument(
        "--ocr", choices=["pypdf", "llamaparse"], default=None, help="Override OCR_BACKEND"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    settings = AppSettings()
    try:
        uc = build_analyze_use_case(settings, with_rag=not args.no_rag, ocr_backend=args.ocr)
    except DomainError as err:
        print(f"\n[ERROR] {type(err).__name__}: {err}")
        return 1

    req = AnalyzeDocumentRequest(
        path=args.path,
        use_rag=not args.no_rag,
        top_k=settings.rag_top_k,
        max_extract_chars=settings.extract_max_chars,
    )
    result = uc.execute(req)

    if not result.ok or result.value is None:
        err = result.error
        print(f"\n[ERROR] {type(err).__name__}: {err}")
        return 1

    for warning in result.value.warnings:
        print(f"[WARN] {warning}", file=sys.stderr)
    payload = json.dumps(result.value.to_dict(), indent=2, ensure_ascii=False)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as fh:
            fh.write(payload)
        print(f"Wrote {args.out}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
