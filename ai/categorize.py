"""Categorize financial transactions line by line using the local provider.

Usage: ai-categorize <input_file> [output_file]
"""
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, TextIO

from ai.adapters import Dispatcher
from ai.cli import ConnectorArgumentParser
from core.config import build_request_config, load_settings
from core.errors import AIError
from core.logging import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "categories_output.txt"
UNKNOWN = "Unknown"

CATEGORIES = [
    "Government Benefit", "Transfer In", "Transfer Out", "Rent", "Insurance",
    "Student Loan", "Payroll", "Investment", "Internal Transfer", "Interest Income",
    "Interest Expense", "Credit Card Payment", "Subscription", "Food & Dining",
    "Groceries", "Alcohol", "Transportation", "Transit", "Parking", "Gas",
    "Shopping", "Entertainment", "Gaming", "Healthcare", "Pet", "Telecommunications",
    "Bank Fee", "Bank Rebate", "Cheque Deposit", "Office Supplies", "Clothing",
    "Personal Care", "Home & Garden", "Flowers", "Automotive", "Advertising",
    "Events", UNKNOWN,
]

PROMPT_PREFIX = (
    "Categorize this financial transaction into exactly one category. "
    "Reply with ONLY the category name, nothing else.\n\n"
    f"Categories: {', '.join(CATEGORIES)}\n\n"
    'Transaction: "'
)


def build_prompt(transaction: str) -> str:
    return f'{PROMPT_PREFIX}{transaction}"'


class TransactionCategorizer:
    """Classifies transactions, caching answers for repeated lines within one run."""

    def __init__(self, dispatcher: Dispatcher, settings, provider: str = "local", model: Optional[str] = None):
        self.dispatcher = dispatcher
        self.settings = settings
        self.provider = provider
        self.model = model
        self.cache: Dict[str, str] = {}
        self.calls = 0
        self.hits = 0

    def categorize(self, transaction: str) -> str:
        config = build_request_config(
            self.settings, build_prompt(transaction), provider=self.provider, model=self.model
        )
        self.calls += 1
        try:
            answer = self.dispatcher.dispatch(config).text
        except AIError as e:
            logger.warning(f"Categorization failed for {transaction!r}: {e}")
            return UNKNOWN
        return " ".join(answer.split()) or UNKNOWN

    def run(self, input_path: Path, output_path: Path, out: TextIO) -> None:
        lines = input_path.read_text(encoding="utf-8").splitlines()
        total = len(lines)
        print(f"Processing {total} lines -> {output_path}", file=out)

        with open(output_path, "w", encoding="utf-8") as f:
            for current, line in enumerate(lines, start=1):
                if not line:
                    f.write(f"{UNKNOWN}\n")
                    print(f"[{current}/{total}] (empty) -> {UNKNOWN}", file=out)
                    continue

                cached = self.cache.get(line)
                if cached is not None:
                    self.hits += 1
                    f.write(f"{cached}\n")
                    print(f"[{current}/{total}] {line} -> {cached} (cached)", file=out)
                    continue

                category = self.categorize(line)
                self.cache[line] = category
                f.write(f"{category}\n")
                print(f"[{current}/{total}] {line} -> {category}", file=out)

        print("", file=out)
        print(f"Done! API calls: {self.calls}, Cache hits: {self.hits}", file=out)


def main(argv=None, out: Optional[TextIO] = None, dispatcher: Optional[Dispatcher] = None) -> int:
    """CLI entry point for the transaction categorizer."""
    out = out or sys.stdout
    parser = ConnectorArgumentParser(prog="ai-categorize", description="Categorize financial transactions")
    parser.add_argument("input_file", help="File with one transaction per line")
    parser.add_argument("output_file", nargs="?", default=DEFAULT_OUTPUT,
                        help=f"Where to write one category per line (default: {DEFAULT_OUTPUT})")
    parser.add_argument("--provider", default="local", help="Provider used for classification")
    parser.add_argument("--model", help="Model name (provider-specific default if omitted)")
    try:
        args = parser.parse_args(argv)
    except AIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    input_path = Path(args.input_file)
    if not input_path.is_file():
        print(f"Error: File '{input_path}' not found", file=sys.stderr)
        return 1

    try:
        settings = load_settings()
    except AIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    categorizer = TransactionCategorizer(
        dispatcher or Dispatcher(settings), settings, provider=args.provider, model=args.model
    )
    try:
        categorizer.run(input_path, Path(args.output_file), out)
    except UnicodeDecodeError as e:
        print(f"Error: File '{input_path}' is not valid UTF-8: {e.reason}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
