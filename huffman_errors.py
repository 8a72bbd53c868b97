from typing import List, Tuple


class HuffmanError(Exception):
    """Base class for every error raised by the coding engine."""


class UnmappedSymbolError(HuffmanError, KeyError):
    def __init__(self, symbol: str, position: int):
        self.symbol = symbol
        self.position = position
        super().__init__(f"symbol {symbol!r} at position {position} has no code in the table")

    def __str__(self) -> str: # KeyError would repr() the message
        return self.args[0]


class MalformedParentError(HuffmanError, ValueError):
    pass


class MissingOriginalTextError(HuffmanError):
    pass


class CodeTableError(HuffmanError, ValueError):
    pass


class InvalidCodeTableError(CodeTableError):
    pass


class PrefixConflictError(CodeTableError):
    def __init__(self, conflicts: List[Tuple[str, str]]):
        self.conflicts = conflicts # (shorter-or-equal symbol, longer symbol)
        shown = ", ".join(f"{a!r}/{b!r}" for a, b in conflicts[:5])
        super().__init__(f"code table is not prefix-free ({len(conflicts)} conflicts: {shown})")


class InvalidBitError(CodeTableError):
    pass


class TrailingBitsError(CodeTableError):
    def __init__(self, trailing: str):
        self.trailing = trailing
        super().__init__(f"{len(trailing)} trailing bits do not match any code: {trailing!r}")
