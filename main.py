"""
Command-line entry point: print reply suggestions for a post.

Usage:
    python main.py --text "Just got my car fixed" --page-url https://www.facebook.com/groups/cars/posts/1
    python main.py --text "..." --accept 1   # also record the first suggestion as used

Environment:
    - TEMPLATE_SOURCE / TEMPLATES_PATH / TEMPLATES_URL
    - USAGE_LOG_SOURCE / USAGE_LOG_PATH
    - DEFAULT_PROMO_URL
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
from typing import List, Optional

from reply_auto.config.settings import get_engine_settings, load_environment
from reply_auto.models import CallerContext, Suggestion
from reply_auto.utils.group_id import resolve_group_id
from reply_auto.workflow.backends import build_pipeline


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Suggest replies for a social-media post.")
    parser.add_argument("--text", dest="text", required=True, help="Post text to analyze.")
    parser.add_argument("--group", dest="group_id", default=None, help="Group id for usage rotation.")
    parser.add_argument("--page-url", dest="page_url", default="", help="Page URL the post was read from.")
    parser.add_argument("--category", dest="category", default=None, help="Preferred template category.")
    parser.add_argument("--default-url", dest="default_url", default="", help="Fallback promo link.")
    parser.add_argument("--templates", dest="templates_path", default=None, help="Template JSON file.")
    parser.add_argument("--unmetered", action="store_true", help="Skip the rolling quota.")
    parser.add_argument(
        "--accept",
        dest="accept",
        type=int,
        default=0,
        help="1-based index of a suggestion to record as used.",
    )
    return parser.parse_args(argv)


def format_suggestions(suggestions: List[Suggestion]) -> str:
    lines = []
    for idx, suggestion in enumerate(suggestions, 1):
        tag = " [limit]" if suggestion.is_limit_notice else " [fallback]" if suggestion.is_fallback else ""
        lines.append(f"{idx}. {suggestion.template_label}{tag}")
        lines.append(f"   {suggestion.text}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> List[Suggestion]:
    settings = get_engine_settings()
    if args.templates_path:
        settings = dataclasses.replace(settings, template_source="json", templates_path=args.templates_path)

    pipeline = build_pipeline(settings)
    context = CallerContext(
        group_id=args.group_id or resolve_group_id(args.page_url),
        preferred_category=args.category,
        default_url=args.default_url,
        unmetered=args.unmetered,
    )
    suggestions = await pipeline.generate_suggestions(args.text, context)

    if 0 < args.accept <= len(suggestions):
        chosen = suggestions[args.accept - 1]
        if not (chosen.is_fallback or chosen.is_limit_notice):
            await pipeline.record_acceptance(chosen.template_id, context.group_id, chosen.variant_index)
    return suggestions


def main(argv: Optional[List[str]] = None) -> None:
    """
    Load configuration, run the pipeline once, and print the suggestions.
    """
    args = parse_args(argv)
    load_environment()
    suggestions = asyncio.run(run(args))
    print(format_suggestions(suggestions))


if __name__ == "__main__":
    main()
