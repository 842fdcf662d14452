#!/usr/bin/env python3
"""
Command-line interface for DocSearch.

Loads a JSON corpus into an in-memory document source, builds the index
and runs one query or prints index statistics.

Usage:
    python -m docsearch search corpus.json "budget report" --user alice
    python -m docsearch stats corpus.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from .shared import DocSearchError, get_settings, setup_logging
from .services.hybrid_search import (
    Document, Entity, HybridSearchService, InMemoryDocumentSource, SearchOptions, SearchType, SortBy
)


def load_corpus(path: str) -> List[Document]:
    """Read documents from a JSON file holding a list, or an object with a "documents" list."""
    data = json.loads(Path(path).read_text(encoding='utf-8'))
    if isinstance(data, dict):
        data = data.get('documents', [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of documents")

    documents = []
    for item in data:
        item = dict(item)
        item['entities'] = [_to_entity(e) for e in item.get('entities') or []]
        documents.append(Document(**item))
    return documents


def _to_entity(raw: Any) -> Entity:
    if isinstance(raw, dict):
        return Entity(type=str(raw.get('type', 'concept')), name=str(raw['name']))
    entity_type, name = raw
    return Entity(type=str(entity_type), name=str(name))


async def _build_service(corpus: str) -> HybridSearchService:
    source = InMemoryDocumentSource(load_corpus(corpus))
    service = HybridSearchService(source)
    count = await service.initialize()
    print(f"📚 Indexed {count} documents from {corpus}")
    return service


async def _search(args) -> int:
    service = await _build_service(args.corpus)
    options = SearchOptions(
        search_type=args.type,
        filter_type=args.filter_type,
        sort_by=args.sort_by,
        max_results=args.max_results,
        page=args.page,
    )
    response = await service.search(args.query, options, caller_id=args.user)

    if args.json:
        print(response.model_dump_json(indent=2))
        return 0

    print(f"🔍 '{response.query}' ({response.search_type}, intent: {response.intent})")
    if response.degraded_branches:
        print(f"⚠️ Degraded branches: {', '.join(response.degraded_branches)}")

    if not response.results:
        print("❌ No results found")
        return 0

    print(f"✅ {response.total_results} results in {response.search_time_ms}ms")
    for result in response.results:
        print(f"  {result.rank}. {result.title or result.doc_id} "
              f"[{result.relevance_score:.3f}] ({', '.join(result.search_types)})")
        if result.highlight:
            print(f"     {result.highlight}")

    if response.suggestions:
        print(f"\n💡 Related: {', '.join(response.suggestions)}")
    return 0


async def _stats(args) -> int:
    service = await _build_service(args.corpus)
    stats: Dict[str, Any] = service.get_stats()
    print(json.dumps(stats['index'], indent=2))
    return 0


def search_command(args):
    """Load a corpus and run one search"""
    return asyncio.run(_search(args))


def stats_command(args):
    """Load a corpus and print index statistics"""
    return asyncio.run(_stats(args))


def main():
    """DocSearch CLI entry point"""
    parser = argparse.ArgumentParser(
        prog='docsearch',
        description='DocSearch: hybrid document search and ranking'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    search_parser = subparsers.add_parser('search', help='Search a JSON corpus')
    search_parser.add_argument('corpus', help='Path to a JSON file of documents')
    search_parser.add_argument('query', help='Search query')
    search_parser.add_argument('--user', default=None, help='Caller user ID')
    search_parser.add_argument('--type', choices=[t.value for t in SearchType], default=SearchType.HYBRID.value,
                               help='Retrieval branches to run')
    search_parser.add_argument('--max-results', type=int, default=None, help='Page size')
    search_parser.add_argument('--page', type=int, default=1, help='Page number')
    search_parser.add_argument('--filter-type', default=None, help='Only return this document type')
    search_parser.add_argument('--sort-by', choices=[s.value for s in SortBy], default=SortBy.RELEVANCE.value,
                               help='Result ordering')
    search_parser.add_argument('--json', action='store_true', help='Print the full response as JSON')
    search_parser.set_defaults(func=search_command)

    stats_parser = subparsers.add_parser('stats', help='Index a JSON corpus and print statistics')
    stats_parser.add_argument('corpus', help='Path to a JSON file of documents')
    stats_parser.set_defaults(func=stats_command)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        print("\n💡 Quick start: python -m docsearch search corpus.json 'budget report'")
        return 1

    setup_logging(get_settings().log_level)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n⚠️ Operation cancelled by user")
        return 1
    except (DocSearchError, ValueError, OSError) as e:
        print(f"❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
