"""
DLX3 Block Registry (Functional Core)

Maps 4-character type tags to block *constructors*.  Every ``construct``
call invokes the constructor again, so two CDAT frames in the same file
always decode into two independent ``PassengerCountBlock`` objects.

A registry is plain configuration owned by the caller and handed to the
``FrameReader``; there is no module-level instance to mutate.  Tests and
integrators can register stub or additional grammars on their own copy::

    registry = default_registry()
    registry.register("XTRA", MyExtraBlock)
    result = FrameReader(registry).read(data)

Package Location: src/dlx3/analysis/registry.py
"""

from typing import Callable, Dict, List, Mapping, Optional

from .blocks import BUILTIN_BLOCKS, Block

BlockConstructor = Callable[[], Block]

TAG_LENGTH: int = 4


def _validate_tag(tag: str) -> str:
    if not isinstance(tag, str) or len(tag) != TAG_LENGTH:
        raise ValueError(f"Block tag must be {TAG_LENGTH} characters: {tag!r}")
    try:
        tag.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"Block tag must be ASCII: {tag!r}")
    return tag


class BlockRegistry:
    """Tag → constructor table used by the frame reader for dispatch."""

    def __init__(self, constructors: Optional[Mapping[str, BlockConstructor]] = None):
        self._constructors: Dict[str, BlockConstructor] = {}
        for tag, constructor in (constructors or {}).items():
            self.register(tag, constructor)

    def register(self, tag: str, constructor: BlockConstructor) -> None:
        """
        Register (or replace) the constructor for *tag*.

        Args:
            tag: 4-character ASCII type tag, case-sensitive (``rFMS``).
            constructor: Zero-argument callable returning a new ``Block``;
                a ``Block`` subclass is the usual choice.

        Raises:
            ValueError: If *tag* is not 4 ASCII characters.
            TypeError: If *constructor* is not callable.
        """
        _validate_tag(tag)
        if not callable(constructor):
            raise TypeError(f"Constructor for {tag!r} is not callable")
        self._constructors[tag] = constructor

    def unregister(self, tag: str) -> None:
        """Remove *tag*; unknown tags are ignored."""
        self._constructors.pop(tag, None)

    def construct(self, tag: str) -> Optional[Block]:
        """Return a freshly constructed block for *tag*, or ``None``."""
        constructor = self._constructors.get(tag)
        if constructor is None:
            return None
        return constructor()

    def tags(self) -> List[str]:
        return sorted(self._constructors)

    def copy(self) -> "BlockRegistry":
        return BlockRegistry(self._constructors)

    def __contains__(self, tag: object) -> bool:
        return tag in self._constructors

    def __len__(self) -> int:
        return len(self._constructors)


def default_registry() -> BlockRegistry:
    """A new registry holding the 13 built-in DLX3 block types."""
    return BlockRegistry({cls.TAG: cls for cls in BUILTIN_BLOCKS})
