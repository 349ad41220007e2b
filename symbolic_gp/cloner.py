"""
symbolic_gp/cloner.py - Identity-preserving deep copy for object graphs
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

from .errors import CloneUnsupportedError


class DeepCloneable(ABC):
    """Capability of objects that can be copied through a Cloner.

    Implementations of ``clone`` must follow a fixed order: build their own
    empty shell, call ``cloner.register(self, shell)`` and only then clone
    their children with ``cloner.clone(child)``. Registering before recursing
    is what lets shared references and cycles resolve to the one shell.
    """

    @abstractmethod
    def clone(self, cloner: 'Cloner') -> 'DeepCloneable':
        """Create the clone of this object within the given cloner pass"""
        pass

    def deep_copy(self) -> 'DeepCloneable':
        """Clone this object with a fresh Cloner"""
        return Cloner().clone(self)


class Cloner:
    """Identity map from original objects to their clones.

    One instance covers exactly one top-level copy. It is not thread-safe and
    must not be reused for unrelated copies.
    """

    def __init__(self):
        # id(original) -> (original, clone); holding the original keeps its id stable
        self._clones: Dict[int, Tuple[Any, Any]] = {}

    def register(self, original: Any, clone: Any) -> None:
        self._clones[id(original)] = (original, clone)

    def clone(self, original: Any) -> Any:
        """Return the clone of ``original``, producing it on first request"""
        if original is None:
            return None

        entry = self._clones.get(id(original))
        if entry is not None:
            return entry[1]

        if not isinstance(original, DeepCloneable):
            raise CloneUnsupportedError(type(original))

        result = original.clone(self)
        if id(original) not in self._clones:
            self.register(original, result)
        return result

    def __len__(self):
        return len(self._clones)
