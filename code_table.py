import math
from fractions import Fraction
from typing import Dict, List, Tuple

from loguru import logger

from huffman_errors import InvalidCodeTableError, PrefixConflictError


def validate_symbol(symbol: str) -> None: # encode walks messages one character at a time
    if not isinstance(symbol, str) or len(symbol) != 1:
        raise InvalidCodeTableError(f"symbols must be single characters, got {symbol!r}")


def validate_code(symbol: str, code: str) -> None: # non-empty string over {0,1}
    if not isinstance(code, str) or not code:
        raise InvalidCodeTableError(f"code for {symbol!r} must be a non-empty bit string, got {code!r}")
    if code.strip("01"):
        raise InvalidCodeTableError(f"code for {symbol!r} contains characters other than 0/1: {code!r}")


def validate_code_table(code_table: Dict[str, str]) -> None:
    for symbol, code in code_table.items():
        validate_symbol(symbol)
        validate_code(symbol, code)


def find_prefix_conflicts(code_table: Dict[str, str]) -> List[Tuple[str, str]]:
    """
    Return (a, b) symbol pairs where the code of a is a prefix of (or equal to) the code of b.

    After sorting by code, every code that starts with codes[i] sits in one run
    directly after it, so each scan stops at the first non-match.
    """
    entries = sorted(code_table.items(), key=lambda item: (item[1], item[0]))
    conflicts = []
    for i, (symbol, code) in enumerate(entries):
        j = i + 1
        while j < len(entries) and entries[j][1].startswith(code):
            conflicts.append((symbol, entries[j][0]))
            j += 1
    return conflicts


def is_prefix_free(code_table: Dict[str, str]) -> bool:
    return not find_prefix_conflicts(code_table)


def invert_code_table(code_table: Dict[str, str], strict: bool = False) -> Dict[str, str]:
    """
    Build the code -> symbol lookup used by the decoder.

    Strict mode refuses tables that are not prefix-free. Otherwise duplicate codes
    keep the symbol seen last, which drops the earlier symbol from decoding.
    """
    if strict:
        conflicts = find_prefix_conflicts(code_table)
        if conflicts:
            raise PrefixConflictError(conflicts)

    reverted: Dict[str, str] = {}
    for symbol, code in code_table.items():
        if code in reverted:
            logger.warning(f"Code {code!r} is shared by {reverted[code]!r} and {symbol!r}, keeping {symbol!r}")
        reverted[code] = symbol
    return reverted


def kraft_sum(code_table: Dict[str, str]) -> Fraction: # exactly 1 for the codes of a full binary tree
    return sum((Fraction(1, 2 ** len(code)) for code in code_table.values()), Fraction(0))


def expected_code_length(code_table: Dict[str, str], frequency_table: Dict[str, int]) -> float:
    total = sum(frequency_table.values())
    if total == 0:
        return 0.0
    bits = 0
    for symbol, frequency in frequency_table.items():
        if symbol not in code_table:
            raise InvalidCodeTableError(f"no code for symbol {symbol!r}")
        bits += frequency * len(code_table[symbol])
    return bits / total


def shannon_entropy(frequency_table: Dict[str, int]) -> float: # bits per symbol
    total = sum(frequency_table.values())
    entropy = 0.0
    for frequency in frequency_table.values():
        if frequency > 0:
            p = frequency / total
            entropy -= p * math.log2(p)
    return entropy
