#!/usr/bin/env python
"""Run a complete site analysis from the command line.

Prints progress as it arrives and writes the final result as JSON.

Usage:
    python scripts/run_analysis.py example.com --max-pages 10
    python scripts/run_analysis.py example.com --no-ai --output result.json
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, ".")

load_dotenv()


async def watch_progress(subscription) -> None:
    """Print progress updates until the run reaches a terminal state."""
    async for update in subscription:
        line = f"  [{update.percentage:3d}%] {update.status.value}"
        if update.current_page_url:
            line += f" {update.current_page_url}"
        if update.error:
            line += f" ({update.error})"
        print(line)


async def run(args: argparse.Namespace) -> dict | None:
    from api.config import get_settings
    from api.deps import build_services
    from api.exceptions import SiteAuditError
    from pipeline.crawler.url import normalize_domain
    from pipeline.models import AnalysisOptions

    settings = get_settings()
    services = build_services(settings)
    domain = normalize_domain(args.domain)

    options = AnalysisOptions(
        use_sitemap=not args.no_sitemap,
        use_ai=not args.no_ai,
        skip_alt_text_generation=args.skip_alt_text,
        max_pages=args.max_pages,
        crawl_delay_ms=args.crawl_delay_ms,
        follow_external_links=args.follow_external,
        additional_info=args.info,
        force_refresh=args.force_refresh,
    )

    print(f"\n{'='*60}")
    print("SiteAudit Analysis")
    print(f"Domain: {domain}")
    print(f"AI: {'enabled' if options.use_ai and settings.ai_enabled else 'disabled'}")
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"{'='*60}\n")

    subscription = services.tracker.subscribe(domain)
    watcher = asyncio.create_task(watch_progress(subscription))
    try:
        result = await services.orchestrator.run_analysis(domain, options, args.user_id)
    except SiteAuditError as e:
        print(f"\nAnalysis failed: [{e.code}] {e.message}")
        return None
    finally:
        await asyncio.wait([watcher], timeout=1.0)
        subscription.close()

    stats = result.processing_stats
    print(f"\n{'='*60}")
    print(f"Pages discovered: {stats.pages_discovered}")
    print(f"Pages analyzed:   {stats.pages_analyzed}")
    print(f"AI calls:         {stats.ai_calls_made}")
    if result.enhanced_insights:
        print(f"SEO effectiveness: {result.enhanced_insights.seo_effectiveness_score}/100")
    print(f"Time:             {stats.total_processing_time:.1f}s")
    print(f"{'='*60}\n")

    return result.to_dict()


def main() -> None:
    parser = argparse.ArgumentParser(description="Analyze a site's SEO")
    parser.add_argument("domain", help="Domain or URL to analyze")
    parser.add_argument("--max-pages", type=int, default=10)
    parser.add_argument("--crawl-delay-ms", type=int, default=1000)
    parser.add_argument("--no-sitemap", action="store_true", help="Skip sitemap discovery")
    parser.add_argument("--no-ai", action="store_true", help="Disable AI augmentation")
    parser.add_argument("--skip-alt-text", action="store_true")
    parser.add_argument("--follow-external", action="store_true")
    parser.add_argument("--force-refresh", action="store_true", help="Bypass suggestion cache")
    parser.add_argument("--info", help="Additional business context for the AI prompts")
    parser.add_argument("--user-id", help="Run against this user's quota")
    parser.add_argument("--output", "-o", help="Write the JSON result to this file")
    args = parser.parse_args()

    result = asyncio.run(run(args))
    if result is None:
        sys.exit(1)

    payload = json.dumps(result, indent=2, default=str)
    if args.output:
        with open(args.output, "w") as f:
            f.write(payload)
        print(f"Result written to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
