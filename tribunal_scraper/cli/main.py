"""Command-line interface for the tribunal case scraper."""

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, List, Optional

from tribunal_scraper.lib.config import Config
from tribunal_scraper.lib.deadline import Deadline
from tribunal_scraper.lib.errors import InvalidQueryError
from tribunal_scraper.lib.logging_config import get_logger, setup_logging
from tribunal_scraper.lib.site_profile import SiteProfile
from tribunal_scraper.lib.storage import TTLResultCache
from tribunal_scraper.models.query import SearchQuery
from tribunal_scraper.services.batch_service import BatchService
from tribunal_scraper.services.captcha_solver import VisionCaptchaSolver
from tribunal_scraper.services.case_search_service import CaseSearchService
from tribunal_scraper.services.export_service import ExportService
from tribunal_scraper.services.navigation import BrowserSession

logger = get_logger()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tribunal-scraper",
        description="Tribunal case status search and extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One case by bench, case type, number and year
  tribunal-scraper search --bench Mumbai --case-type "Company Petition IB (IBC)" --case-number 123 --year 2022

  # A JSON file holding a list of query objects
  tribunal-scraper batch queries.json --deadline-seconds 540

  # Print only, no files written
  tribunal-scraper search --bench chennai --year 2023 --no-export

Notes:
  - Captcha solving needs TRIBUNAL_CAPTCHA_SOLVER_API_KEY (or OPENAI_API_KEY).
  - Settings are read from config.private.toml / config.toml, then TRIBUNAL_* env vars.
""",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--output", type=str, default=None, help="Output directory (default from config)")
    common.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run Chrome headless (default from config)",
    )
    common.add_argument("--deadline-seconds", type=float, default=None, help="Overall run deadline")
    common.add_argument("--max-captcha-attempts", type=int, default=None, help="Captcha attempts per query")
    common.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
    common.add_argument("--config-dir", type=str, default=None, help="Directory holding config.toml / config.private.toml")
    common.add_argument("--no-export", action="store_true", help="Do not write JSON files")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    search = subparsers.add_parser("search", parents=[common], help="Search a single case")
    search.add_argument("--bench", required=True, help="Bench name or code")
    search.add_argument("--case-type", default=None, help="Case type name or code")
    search.add_argument("--case-number", default=None, help="Diary/CP number")
    search.add_argument("--year", default=None, help="Filing year")

    batch = subparsers.add_parser("batch", parents=[common], help="Run queries from a JSON file")
    batch.add_argument("file", type=str, help="JSON file with a list of query objects")
    return parser


def load_queries(path: str) -> List[dict]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("queries"), list):
        data = data["queries"]
    if not isinstance(data, list):
        raise InvalidQueryError("batch file must contain a list of query objects")
    return data


class TribunalScraperCLI:
    def __init__(
        self,
        session_factory: Callable[..., BrowserSession] = BrowserSession,
        solver_factory: Callable[[], object] = VisionCaptchaSolver,
        out=None,
    ):
        self.session_factory = session_factory
        self.solver_factory = solver_factory
        self.out = out or sys.stdout
        self.session: Optional[BrowserSession] = None

    def _emit(self, payload: dict) -> None:
        self.out.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")

    def _service(self, args) -> CaseSearchService:
        self.session = self.session_factory(headless=args.headless)
        return CaseSearchService(
            self.session,
            profile=SiteProfile.from_config(),
            solver=self.solver_factory(),
            max_captcha_attempts=args.max_captcha_attempts,
        )

    def run(self, argv: Optional[List[str]] = None) -> int:
        parser = build_parser()
        args = parser.parse_args(argv)
        if not args.command:
            parser.print_help(self.out)
            return EXIT_USAGE

        if args.config_dir:
            Config.reload(Path(args.config_dir))
        setup_logging(log_level=(args.log_level or Config.get_log_level()).upper(), log_file=Config.get_log_file())
        deadline = Deadline(
            args.deadline_seconds if args.deadline_seconds is not None else Config.get_run_deadline_seconds()
        )
        exporter = None if args.no_export else ExportService(args.output)

        try:
            if args.command == "search":
                try:
                    query = SearchQuery(
                        bench=args.bench,
                        case_type=args.case_type,
                        case_number=args.case_number,
                        year=args.year,
                    )
                except InvalidQueryError as exc:
                    logger.error(f"Invalid query: {exc}")
                    return EXIT_USAGE
                outcome = self._service(args).search(query, deadline)
                self._emit(outcome.to_dict())
                if exporter is not None:
                    exporter.export_outcome(outcome)
                return EXIT_OK if outcome.success else EXIT_FAILED

            try:
                queries = load_queries(args.file)
            except (OSError, ValueError) as exc:
                logger.error(f"Cannot read batch file {args.file}: {exc}")
                return EXIT_USAGE
            cache = TTLResultCache(Config.get_cache_ttl_seconds(), Config.get_cache_max_entries())
            summary = BatchService(self._service(args), cache=cache).run(queries, deadline)
            self._emit(summary.to_dict())
            if exporter is not None:
                for item in summary.items:
                    if item.outcome is not None and item.outcome.query is not None and not item.from_cache:
                        exporter.export_outcome(item.outcome)
                exporter.export_summary(summary)
            return EXIT_OK if summary.failed == 0 else EXIT_FAILED
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None


def main():
    """Main entry point."""
    sys.exit(TribunalScraperCLI().run())


if __name__ == "__main__":
    main()
