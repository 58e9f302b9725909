#!/usr/bin/env python3
"""
minichain - Command Line Interface

Commands:
    ask     - Send a prompt to the chat model
    search  - Rank the lines of a text file against a query
    models  - List supported chat models

Usage:
    python -m minichain.cli ask "What would be a good company name?"
    python -m minichain.cli search notes.txt "password reset" -k 3
    python -m minichain.cli models

For help on a specific command:
    python -m minichain.cli <command> --help
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from minichain.config import settings
from minichain.exceptions import MinichainError
from minichain.logger import get_logger, init_logging, setup_logging

logger = get_logger(__name__)


def cmd_ask(args: argparse.Namespace) -> int:
    """
    Send one prompt and print the first generation.
    """
    from minichain.core.llm import OpenAIChat

    try:
        llm = OpenAIChat(model_name=args.model)
        result = llm.generate([args.prompt], stop=args.stop)
        print(result.get_first_generation_text())

        if args.verbose:
            usage = result.token_usage
            print(f"\nModel: {result.model_name}")
            print(
                f"Tokens: prompt={usage.prompt_tokens} "
                f"completion={usage.completion_tokens} total={usage.total_tokens}"
            )
        return 0

    except MinichainError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.debug("Ask failed", exc_info=True)
        return 1


def _read_lines(path: Path) -> List[Tuple[int, str]]:
    """Non-blank lines of a file with their 1-based line numbers."""
    lines = path.read_text(encoding="utf-8").splitlines()
    return [(number, line.strip()) for number, line in enumerate(lines, 1) if line.strip()]


def cmd_search(args: argparse.Namespace) -> int:
    """
    Load each non-blank line of a file into a store and search it.
    """
    from minichain.core.embeddings import OpenAIEmbeddingProvider
    from minichain.core.vectorstore import InMemoryVectorStore

    path = Path(args.path)
    if not path.is_file():
        print(f"Error: {path} is not a file", file=sys.stderr)
        return 1

    try:
        lines = _read_lines(path)
        store = InMemoryVectorStore.from_texts(
            [text for _, text in lines],
            OpenAIEmbeddingProvider(),
            metadatas=[{"source": path.name, "line": number} for number, _ in lines]
        )

        results = store.similarity_search_with_score(args.query, k=args.k)
        if not results:
            print("No documents found.")
            return 0

        for rank, (doc, score) in enumerate(results, 1):
            print(f"{rank}. [{score:.3f}] (line {doc.metadata['line']}) {doc.page_content}")
        return 0

    except MinichainError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.debug("Search failed", exc_info=True)
        return 1


def cmd_models(args: argparse.Namespace) -> int:
    """
    List supported chat models.
    """
    from minichain.core.models import ChatModel

    default = ChatModel.default()
    for model in ChatModel:
        marker = " (default)" if model is default else ""
        print(f"{model.value}{marker}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all commands."""
    parser = argparse.ArgumentParser(
        prog="minichain",
        description="Semantic search and chat completions from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minichain.cli ask "Tell me a joke" --model gpt-4
  python -m minichain.cli search notes.txt "billing question" -k 3
  python -m minichain.cli models
        """
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ask_parser = subparsers.add_parser(
        "ask",
        help="Send a prompt to the chat model"
    )
    ask_parser.add_argument(
        "prompt",
        help="Prompt text"
    )
    ask_parser.add_argument(
        "--model", "-m",
        default=None,
        help=f"Chat model (default: {settings.llm.model_name or 'standard tier'})"
    )
    ask_parser.add_argument(
        "--stop",
        action="append",
        default=None,
        help="Stop sequence (repeatable)"
    )
    ask_parser.set_defaults(func=cmd_ask)

    search_parser = subparsers.add_parser(
        "search",
        help="Rank the lines of a text file against a query"
    )
    search_parser.add_argument(
        "path",
        help="Text file, one document per line"
    )
    search_parser.add_argument(
        "query",
        help="Query text"
    )
    search_parser.add_argument(
        "-k",
        type=int,
        default=settings.vectorstore.default_k,
        help=f"Number of documents to return (default: {settings.vectorstore.default_k})"
    )
    search_parser.set_defaults(func=cmd_search)

    models_parser = subparsers.add_parser(
        "models",
        help="List supported chat models"
    )
    models_parser.set_defaults(func=cmd_models)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    init_logging()
    if args.verbose:
        setup_logging(level="DEBUG", log_file=settings.logging.file)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
