"""
Symbol list loading.
Reads symbols from a delimited text file or an inline comma-separated list.
"""

from pathlib import Path
from typing import List, Union


class SymbolListError(Exception):
    """Raised when the symbol list is missing, unreadable or empty."""
    pass


def parse_symbols(text: str) -> List[str]:
    """
    Parse symbols from delimited text.

    One symbol or comma-separated list per line; blank lines and '#'
    comments are ignored. Symbols are upper-cased and de-duplicated, keeping
    first-seen order.

    Args:
        text: Raw text

    Returns:
        List of symbols (possibly empty)
    """
    symbols = []
    seen = set()

    for line in text.splitlines():
        line = line.split('#', 1)[0]
        for token in line.split(','):
            symbol = token.strip().upper()
            if symbol and symbol not in seen:
                seen.add(symbol)
                symbols.append(symbol)

    return symbols


def read_symbols_from_file(path: Union[str, Path]) -> List[str]:
    """
    Read symbols from a text file.

    Raises:
        SymbolListError: If the file is missing, unreadable or has no symbols
    """
    path = Path(path)
    if not path.exists():
        raise SymbolListError(f"Symbol file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SymbolListError(f"Could not read symbol file {path}: {e}") from e

    symbols = parse_symbols(text)
    if not symbols:
        raise SymbolListError(f"Symbol file is empty: {path}")

    return symbols


def load_symbols(source: str) -> List[str]:
    """
    Resolve a CLI symbols argument: an existing file path, else an inline list.

    Examples:
        load_symbols('data/symbols.csv')
        load_symbols('AAPL,MSFT,SPY')

    Raises:
        SymbolListError: If no symbols can be loaded
    """
    if not source or not source.strip():
        raise SymbolListError("No symbols given")

    if Path(source).is_file():
        return read_symbols_from_file(source)

    looks_like_path = source.endswith(('.csv', '.txt')) or '/' in source
    if looks_like_path:
        raise SymbolListError(f"Symbol file not found: {source}")

    symbols = parse_symbols(source)
    if not symbols:
        raise SymbolListError(f"No symbols in: {source!r}")
    return symbols
