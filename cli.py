import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from config.settings import get_settings
from errors import ConfigurationError, CRMError, ExtractionError, RunInProgressError
from services.rate_limiter import RateLimiter
from services.reporting import print_daily_report, print_summary
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


def _contacts_repo():
    from crm.client import HubSpotClient
    from crm.repos import ContactsRepo
    return ContactsRepo(HubSpotClient(get_settings()))


def cmd_run(args):
    from pipelines.scrape_posts import build_orchestrator
    orchestrator = build_orchestrator(get_settings(), source_name=args.source)
    try:
        result = orchestrator.run_batch(profile_urls=args.profile or None, trigger="cli")
    except (ConfigurationError, CRMError, ExtractionError, RunInProgressError) as e:
        print(f"Run failed: {e}")
        return 1
    if args.json:
        print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
    else:
        print_summary(result)
    return 0 if result.success else 1


def cmd_stats(args):
    stats = RateLimiter(get_settings()).get_stats()
    print(json.dumps(stats.model_dump(), indent=2))
    return 0


def cmd_verify(args):
    repo = _contacts_repo()
    profiles = repo.list_profiles()
    pending = [p for p in profiles if not p.processed]
    print(f"Profiles in list: {len(profiles)} ({len(pending)} pending)")
    for p in profiles[:args.limit]:
        mark = "x" if p.processed else " "
        print(f"  [{mark}] {p.display_name or 'N/A'} - {p.canonical_url}")
    print(f"All processed: {repo.all_processed()}")
    return 0


def cmd_reset_processed(args):
    if not args.yes:
        print("Refusing to reset without --yes")
        return 1
    ok = _contacts_repo().reset_all_processed()
    print("Processed flags reset" if ok else "Reset finished with errors")
    return 0 if ok else 1


def cmd_serve(args):
    import uvicorn
    from server import create_app
    settings = get_settings()
    uvicorn.run(create_app(settings=settings), host=args.host, port=args.port or settings.port)
    return 0


def cmd_report(args):
    day = args.date or datetime.now(timezone.utc).strftime('%Y-%m-%d')
    print_daily_report(day)
    return 0


def main(argv=None):
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="LinkedIn posts harvester CLI")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run one quota-bounded scrape batch")
    p_run.add_argument('--profile', '-p', action='append', help='Profile URL to scrape instead of the CRM list (repeatable)')
    p_run.add_argument('--source', '-s', default=None, help='Extraction source name (default: apify_linkedin_posts)')
    p_run.add_argument('--json', action='store_true', help='Print the full run result as JSON')
    p_run.set_defaults(func=cmd_run)

    p_stats = sub.add_parser("stats", help="Show today's rate-limit counter")
    p_stats.set_defaults(func=cmd_stats)

    p_ver = sub.add_parser("verify", help="List CRM profiles and their processed state")
    p_ver.add_argument("--limit", type=int, default=5, help="Profiles to print (default: 5)")
    p_ver.set_defaults(func=cmd_verify)

    p_reset = sub.add_parser("reset-processed", help="Clear the processed flag on every listed contact")
    p_reset.add_argument("--yes", action="store_true", help="Confirm the reset")
    p_reset.set_defaults(func=cmd_reset_processed)

    p_serve = sub.add_parser("serve", help="Start the HTTP API and the scheduler")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default from settings)")
    p_serve.set_defaults(func=cmd_serve)

    p_rep = sub.add_parser("report", help="Aggregate traced runs for a day")
    p_rep.add_argument("--date", default=None, help="YYYY-MM-DD (default: today, UTC)")
    p_rep.set_defaults(func=cmd_report)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
