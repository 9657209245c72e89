#!/usr/bin/env python
"""
CivicPulse CLI - Command Line Interface

Usage:
    python -m civicpulse.cli analyze --text "Biya don do am again #Cameroon"
    python -m civicpulse.cli bulk posts.jsonl --json
    python -m civicpulse.cli stats
    python -m civicpulse.cli learn-figure "Cabral Libii" --confidence 0.9
    python -m civicpulse.cli learn-slang "sotey" --language pidgin --sentiment negative
    python -m civicpulse.cli context --key sarcasm_markers
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import ProcessorConfig
from .models import CivicPulseError, InvalidSignalRequest, SignalRequest
from .processor import SignalProcessor, create_processor


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _build_config(args) -> ProcessorConfig:
    config = ProcessorConfig.from_env(args.env)
    if args.database_url:
        config.database.url = args.database_url
    if args.no_llm:
        config.llm.enabled = False
    return config


def _setup_logging(args, config: ProcessorConfig) -> None:
    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _open(args) -> SignalProcessor:
    return await create_processor(args.config)


def _print_result(request: SignalRequest, result) -> None:
    text = request.content.strip()
    print(f"Text: {text[:80]}{'...' if len(text) > 80 else ''}")
    print(f"  Polarity:   {result.polarity.value} ({result.score:+.2f})")
    print(f"  Language:   {result.language.value}")
    print(f"  Emotions:   {', '.join(result.emotions) or '-'}")
    print(f"  Categories: {', '.join(result.categories) or '-'}")
    print(f"  Region:     {result.region or '-'}")
    print(f"  Threat:     {result.threat_level.value}")
    if result.hashtags:
        print(f"  Hashtags:   {', '.join('#' + h for h in result.hashtags)}")
    print()


# =============================================================================
# Commands
# =============================================================================

def cmd_analyze(args):
    """Analyze text(s) and record the signals."""
    if args.file:
        with open(args.file, 'r', encoding='utf-8') as f:
            texts = [line.strip() for line in f if line.strip()]
    else:
        texts = [args.text] if args.text else []

    if not texts:
        print("Error: Provide --text or --file")
        return 1

    async def run():
        async with await _open(args) as processor:
            results = []
            for text in texts:
                request = SignalRequest(content=text, platform=args.platform)
                result = await processor.analyze_sentiment(request)
                results.append((request, result))
            return results, dict(processor.stats)

    try:
        results, stats = asyncio.run(run())
    except InvalidSignalRequest as e:
        print(f"Error: {e}")
        return 1

    if args.json:
        _print_json([result.to_dict() for _, result in results])
        return 0

    print(f"\n{'='*60}")
    print("CivicPulse - Sentiment Analysis")
    print(f"{'='*60}\n")
    for request, result in results:
        _print_result(request, result)
    if stats.get("degraded"):
        print(f"({stats['degraded']} classification(s) used the fallback classifier)")
    return 0


def _load_requests(path: str) -> List[Dict[str, Any]]:
    """Read a JSON array or JSON-lines file of request objects."""
    with open(path, 'r', encoding='utf-8') as f:
        raw = f.read().strip()
    if not raw:
        return []
    if raw.startswith('['):
        return json.loads(raw)
    return [json.loads(line) for line in raw.splitlines() if line.strip()]


def cmd_bulk(args):
    """Analyze a batch of requests from a file."""
    try:
        items = _load_requests(args.path)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read {args.path}: {e}")
        return 1

    async def run():
        async with await _open(args) as processor:
            return await processor.bulk_analyze(items)

    report = asyncio.run(run())

    if args.json:
        _print_json(report.to_dict())
    else:
        print(f"Processed: {report.processed}")
        print(f"Succeeded: {report.succeeded}")
        print(f"Failed:    {report.failed}")
        for index, item in enumerate(report.items):
            if not item.success:
                print(f"  [{index}] {item.error}")
    return 0 if report.failed == 0 else 2


def cmd_stats(args):
    """Show engine statistics."""
    async def run():
        async with await _open(args) as processor:
            return await processor.get_stats()

    _print_json(asyncio.run(run()))
    return 0


def cmd_learn_figure(args):
    """Teach the engine a new political figure."""
    async def run():
        async with await _open(args) as processor:
            await processor.learning.learn_political_figure(args.name, confidence=args.confidence)
            return await processor.store.get()

    bundle = asyncio.run(run())
    print(f"Context version {bundle.version}: {len(bundle.political_figures.detected_figures)} detected figure(s)")
    return 0


def cmd_learn_slang(args):
    """Teach the engine a new slang pattern."""
    async def run():
        async with await _open(args) as processor:
            await processor.learning.learn_slang_pattern(
                args.pattern,
                language=args.language,
                sentiment=args.sentiment,
                confidence=args.confidence,
            )
            return await processor.store.get()

    bundle = asyncio.run(run())
    learned = bundle.lexicon(args.language).learned_patterns
    print(f"Context version {bundle.version}: {len(learned)} learned {args.language} pattern(s)")
    return 0


def cmd_context(args):
    """Print the current local-context bundle."""
    async def run():
        async with await _open(args) as processor:
            return await processor.store.get()

    bundle = asyncio.run(run())
    if args.key:
        try:
            _print_json(bundle.section(args.key))
        except KeyError:
            print(f"Error: unknown context key {args.key!r}")
            return 1
    else:
        _print_json(bundle.model_dump(mode="json"))
    return 0


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CivicPulse - Civic Sentiment & Threat Signal Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--env", help="Path to .env file")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument("--no-llm", action="store_true", help="Use the heuristic classifier only")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze text for sentiment and threats")
    analyze_parser.add_argument("--text", "-t", help="Text to analyze")
    analyze_parser.add_argument("--file", "-f", help="File with texts (one per line)")
    analyze_parser.add_argument("--platform", "-p", default="cli", help="Source platform")
    analyze_parser.add_argument("--json", "-j", action="store_true", help="Output JSON")
    analyze_parser.set_defaults(func=cmd_analyze)

    # Bulk command
    bulk_parser = subparsers.add_parser("bulk", help="Analyze a JSON / JSON-lines batch")
    bulk_parser.add_argument("path", help="File of request objects")
    bulk_parser.add_argument("--json", "-j", action="store_true", help="Output JSON")
    bulk_parser.set_defaults(func=cmd_bulk)

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Show engine statistics")
    stats_parser.set_defaults(func=cmd_stats)

    # Learning commands
    figure_parser = subparsers.add_parser("learn-figure", help="Add a political figure")
    figure_parser.add_argument("name", help="Figure name")
    figure_parser.add_argument("--confidence", "-c", type=float, help="Confidence (0-1)")
    figure_parser.set_defaults(func=cmd_learn_figure)

    slang_parser = subparsers.add_parser("learn-slang", help="Add a slang pattern")
    slang_parser.add_argument("pattern", help="Slang phrase")
    slang_parser.add_argument("--language", "-l", default="en", choices=["en", "fr", "pidgin"])
    slang_parser.add_argument("--sentiment", "-s", choices=["positive", "negative", "neutral"])
    slang_parser.add_argument("--confidence", "-c", type=float, help="Confidence (0-1)")
    slang_parser.set_defaults(func=cmd_learn_slang)

    # Context command
    context_parser = subparsers.add_parser("context", help="Show the local-context bundle")
    context_parser.add_argument("--key", "-k", help="Only this section")
    context_parser.set_defaults(func=cmd_context)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    args.config = _build_config(args)
    _setup_logging(args, args.config)

    try:
        return args.func(args)
    except CivicPulseError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
