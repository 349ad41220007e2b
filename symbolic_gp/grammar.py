"""
symbolic_gp/grammar.py - Named, mutable symbol sets queried by name
"""
import logging
from typing import Dict, Iterable, List, Optional

from .errors import DatasetShapeError
from .symbols import Symbol, constant_symbol, variable_symbol

logger = logging.getLogger(__name__)


class Grammar:
    """The vocabulary available to creators and operators.

    Symbol names are unique. Disabling a symbol hides it from every candidate
    set but leaves trees that already use it untouched.
    """

    def __init__(self, name: str = 'Grammar', symbols: Iterable[Symbol] = ()):
        self.name = name
        self._symbols: Dict[str, Symbol] = {}
        for symbol in symbols:
            self.add_symbol(symbol)

    @classmethod
    def for_regression(cls, variable_names: Iterable[str], function_symbols: Iterable[Symbol],
                       allow_constants: bool = True) -> 'Grammar':
        """Functions plus one variable symbol per input and an optional constant"""
        variable_names = list(variable_names)
        function_symbols = list(function_symbols)
        if not variable_names:
            raise ValueError("At least one variable name must be provided.")
        if not function_symbols:
            raise ValueError("At least one functional symbol must be provided.")

        constant = constant_symbol() if allow_constants else None
        taken = {s.name for s in function_symbols}
        if constant is not None:
            taken.add(constant.name)
        clashes = [name for name in variable_names if name in taken]
        if clashes:
            raise DatasetShapeError(
                f"Variable names {clashes} clash with symbol names; rename those columns")

        grammar = cls('SymbolicRegressionGrammar', function_symbols)
        for name in variable_names:
            grammar.add_symbol(variable_symbol(name))
        if constant is not None:
            grammar.add_symbol(constant)
        logger.debug("Built grammar with %d functions, %d variables, constants=%s",
                     len(function_symbols), len(variable_names), allow_constants)
        return grammar

    def add_symbol(self, symbol: Symbol) -> None:
        if symbol.name in self._symbols:
            raise ValueError(f"Symbol '{symbol.name}' already exists in grammar '{self.name}'")
        self._symbols[symbol.name] = symbol

    def remove_symbol(self, name: str) -> Optional[Symbol]:
        return self._symbols.pop(name, None)

    def get_symbol(self, name: str) -> Optional[Symbol]:
        return self._symbols.get(name)

    @property
    def symbols(self) -> List[Symbol]:
        return list(self._symbols.values())

    def enabled_symbols(self) -> List[Symbol]:
        return [s for s in self._symbols.values() if s.enabled]

    def terminal_symbols(self) -> List[Symbol]:
        return [s for s in self.enabled_symbols() if s.is_terminal]

    def function_symbols(self) -> List[Symbol]:
        return [s for s in self.enabled_symbols() if not s.is_terminal]

    def variable_symbols(self) -> List[Symbol]:
        return [s for s in self.enabled_symbols() if s.is_variable]

    def set_enabled(self, name: str, enabled: bool) -> None:
        symbol = self._symbols.get(name)
        if symbol is None:
            raise KeyError(f"Unknown symbol: {name}")
        symbol.enabled = enabled

    def enable_only(self, names: Iterable[str]) -> None:
        """Disable every symbol except the named ones"""
        keep = set(names)
        unknown = keep - set(self._symbols)
        if unknown:
            raise KeyError(f"Unknown symbols: {sorted(unknown)}")
        for name, symbol in self._symbols.items():
            symbol.enabled = name in keep

    def __len__(self):
        return len(self._symbols)

    def __contains__(self, name):
        return name in self._symbols

    def __repr__(self):
        return f"Grammar({self.name!r}, symbols={len(self._symbols)}, enabled={len(self.enabled_symbols())})"
