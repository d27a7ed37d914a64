"""Program arguments held either as one command-line string or as a list.

The two forms are reconciled with the classical argv splitting rules used by
the Microsoft C runtime (also what .NET applies on Unix):

* runs of spaces and tabs separate arguments;
* backslashes are literal unless they precede a double quote, in which case
  each pair yields one backslash and an odd one escapes the quote;
* an unescaped double quote toggles quoting, except that two consecutive
  quotes inside a quoted run yield one literal quote.
"""

from __future__ import annotations

import threading
from collections.abc import Collection, Iterable, Iterator, Sequence

from procspawn.errors import ArgumentError, require

_QUOTE = '"'
_BACKSLASH = "\\"
_SEPARATORS = (" ", "\t")


def split_command_line(line: str) -> list[str]:
    """Split a command-line string into its list of literal arguments."""

    require(line, "line")
    results: list[str] = []
    length = len(line)
    i = 0
    while i < length:
        while i < length and line[i] in _SEPARATORS:
            i += 1
        if i == length:
            break
        argument, i = _next_argument(line, i)
        results.append(argument)
    return results


def _next_argument(line: str, i: int) -> tuple[str, int]:
    length = len(line)
    chars: list[str] = []
    in_quotes = False

    while i < length:
        backslashes = 0
        while i < length and line[i] == _BACKSLASH:
            i += 1
            backslashes += 1

        if backslashes:
            if i >= length or line[i] != _QUOTE:
                chars.append(_BACKSLASH * backslashes)
            else:
                chars.append(_BACKSLASH * (backslashes // 2))
                if backslashes % 2:
                    chars.append(_QUOTE)
                    i += 1
            continue

        char = line[i]
        if char == _QUOTE:
            if in_quotes and i < length - 1 and line[i + 1] == _QUOTE:
                # "" inside quotes is one literal quote; quoting stays on
                chars.append(_QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
            i += 1
            continue

        if char in _SEPARATORS and not in_quotes:
            break

        chars.append(char)
        i += 1

    return "".join(chars), i


def join_command_line(arguments: Iterable[str]) -> str:
    """Quote and join arguments so that `split_command_line` restores them."""

    return " ".join(_quote_argument(argument) for argument in arguments)


def _quote_argument(argument: str) -> str:
    if argument and not any(c.isspace() or c == _QUOTE for c in argument):
        return argument

    parts = [_QUOTE]
    length = len(argument)
    i = 0
    while i < length:
        char = argument[i]
        i += 1
        if char == _BACKSLASH:
            backslashes = 1
            while i < length and argument[i] == _BACKSLASH:
                i += 1
                backslashes += 1
            if i == length:
                # doubled so the closing quote stays a delimiter
                parts.append(_BACKSLASH * (backslashes * 2))
            elif argument[i] == _QUOTE:
                parts.append(_BACKSLASH * (backslashes * 2 + 1))
                parts.append(_QUOTE)
                i += 1
            else:
                parts.append(_BACKSLASH * backslashes)
            continue
        if char == _QUOTE:
            parts.append(_BACKSLASH + _QUOTE)
            continue
        parts.append(char)
    parts.append(_QUOTE)
    return "".join(parts)


class ProgramArguments(Collection[str]):
    """Immutable program arguments backed by a raw line or by a list.

    A value built with `parse` keeps the line verbatim and splits it only when
    the list form is first needed. A value built with `from_list` serializes
    itself on demand with `join_command_line`.
    """

    EMPTY: ProgramArguments

    __slots__ = ("_line", "_args", "_lock")

    def __init__(self, line: str | None, args: tuple[str, ...] | None) -> None:
        if (line is None) == (args is None):
            raise ArgumentError("line", "Exactly one of line or args must be given.")
        self._line = line
        self._args = args
        self._lock = threading.Lock() if args is None else None

    @classmethod
    def parse(cls, line: str) -> ProgramArguments:
        require(line, "line")
        return cls.EMPTY if not line else cls(line, None)

    @classmethod
    def from_list(cls, items: Iterable[str]) -> ProgramArguments:
        require(items, "items")
        args = tuple(items)
        for item in args:
            if not isinstance(item, str):
                raise ArgumentError("items", f"Arguments must be strings, got {item!r}.")
        return cls(None, args)

    @classmethod
    def of(cls, *items: str) -> ProgramArguments:
        return cls.from_list(items)

    @property
    def is_raw(self) -> bool:
        return self._line is not None

    def _list(self) -> tuple[str, ...]:
        args = self._args
        if args is not None:
            return args
        assert self._lock is not None
        with self._lock:
            if self._args is None:
                self._args = tuple(split_command_line(self._line or ""))
            return self._args

    def to_list(self) -> list[str]:
        return list(self._list())

    def append(self, item: str) -> ProgramArguments:
        return self.extend((item,))

    def extend(self, items: Iterable[str]) -> ProgramArguments:
        require(items, "items")
        return ProgramArguments.from_list((*self._list(), *items))

    def __len__(self) -> int:
        if self._line is not None and not self._line:
            return 0
        return len(self._list())

    def __iter__(self) -> Iterator[str]:
        return iter(self._list())

    def __contains__(self, item: object) -> bool:
        return item in self._list()

    def __getitem__(self, index: int) -> str:
        return self._list()[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ProgramArguments):
            return other is self or self._list() == other._list()
        if isinstance(other, (list, tuple)):
            return list(self._list()) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._list())

    def __str__(self) -> str:
        if self._line is not None:
            return self._line
        return join_command_line(self._args or ())

    def __repr__(self) -> str:
        if self._line is not None:
            return f"ProgramArguments.parse({self._line!r})"
        return f"ProgramArguments.from_list({list(self._args or ())!r})"


ProgramArguments.EMPTY = ProgramArguments(None, ())


def as_arguments(value: ProgramArguments | str | Sequence[str]) -> ProgramArguments:
    """Coerce a raw line, a list of strings or an existing value."""

    require(value, "args")
    if isinstance(value, ProgramArguments):
        return value
    if isinstance(value, str):
        return ProgramArguments.parse(value)
    return ProgramArguments.from_list(value)
