"""Terminal client that reuses the in-process search gateway."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, List

from product_search.config import settings
from product_search.errors import SearchServiceError
from product_search.es_client import create_client
from product_search.gateway import SearchGateway
from product_search.models import Product, SearchRequest

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def build_gateway() -> SearchGateway:
    return SearchGateway(
        create_client(settings),
        settings.es_index,
        fuzzy=settings.fuzzy_search,
        suggest_size=settings.suggest_size,
    )


def pretty_print_results(request: SearchRequest, products: List[Product]) -> None:
    color = GREEN if products else RED
    print(f"Query: {request.query} | page {request.page} | {color}{len(products)} results{RESET}")
    for idx, item in enumerate(products, start=request.offset + 1):
        print(
            f"  {idx:02d}. {item.id} | {item.name} | {item.category} | "
            f"price={item.price:.2f} stock={item.stock}"
        )


def interactive_shell(gateway: SearchGateway, args: argparse.Namespace) -> None:
    print("Interactive product search. Prefix a line with '?' for suggestions, 'exit' to quit.")
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not line:
            continue
        if line.lower() in {"exit", "quit"}:
            return
        try:
            if line.startswith("?"):
                print("  " + ", ".join(gateway.suggest(line[1:].strip())))
                continue
            request = _request_from_args(line, args)
            pretty_print_results(request, gateway.search(request))
        except SearchServiceError as exc:
            print(f"{RED}{exc.message}{RESET}")


def batch_mode(gateway: SearchGateway, file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            request = _request_from_args(query, args)
            pretty_print_results(request, gateway.search(request))


def _request_from_args(query: str, args: argparse.Namespace) -> SearchRequest:
    return SearchRequest(
        query=query,
        page=args.page,
        size=args.size,
        sort=args.sort,
        category=args.category,
        price_min=args.price_min,
        price_max=args.price_max,
        stock_min=args.stock_min,
        stock_max=args.stock_max,
    )


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--size", type=int, default=10)
    parser.add_argument("--sort", default="price")
    parser.add_argument("--category")
    parser.add_argument("--price-min")
    parser.add_argument("--price-max")
    parser.add_argument("--stock-min")
    parser.add_argument("--stock-max")
    parser.add_argument("--suggest", action="store_true", help="Print completions for the query instead")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.page < 1 or args.size < 1:
        parser.error("--page and --size must be positive")

    gateway = build_gateway()
    if args.batch:
        batch_mode(gateway, args.batch, args)
        return 0
    if args.query:
        if args.suggest:
            for text in gateway.suggest(args.query):
                print(text)
            return 0
        request = _request_from_args(args.query, args)
        pretty_print_results(request, gateway.search(request))
        return 0
    interactive_shell(gateway, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
