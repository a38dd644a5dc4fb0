"""
Stacks of variable frames for one namespace ("local" or "global").
"""
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from interpretr.interpretr_datatypes import UndefinedVariable


class Variables:
    """A stack of name -> value frames, searched innermost first.

    Each frame is a plain dict owned by the stack. Blocks keep a reference
    to the frame objects themselves (see `snapshot`), so writes made through
    an enclosing frame are seen by every closure sharing it.
    """
    def __init__(self, kind: str):
        self.kind = kind
        # Outermost first; the innermost frame is the last element.
        self._frames: List[Dict[str, Any]] = []

    @contextmanager
    def frame(self, bindings: Optional[Dict[str, Any]] = None,
              base: Optional[Tuple[Dict[str, Any], ...]] = None) -> Iterator[Dict[str, Any]]:
        """Push a frame seeded with `bindings` for the duration of the block.

        With `base`, the stack is swapped for that captured chain plus the
        new frame, and the previous stack is restored on exit.
        """
        new_frame = dict(bindings or {})
        saved = None
        if base is not None:
            saved = self._frames
            self._frames = list(base)
        self._frames.append(new_frame)
        try:
            yield new_frame
        finally:
            if saved is not None:
                self._frames = saved
            elif self._frames and self._frames[-1] is new_frame:
                self._frames.pop()

    def set(self, name: str, value: Any) -> Any:
        """Write into the nearest frame holding `name`, else the innermost one."""
        self._scope_for(name)[name] = value
        return value

    def get(self, name: str, on_missing: Callable[[], Any]) -> Any:
        for scope in reversed(self._frames):
            if name in scope:
                return scope[name]
        return on_missing()

    def fetch(self, name: str) -> Any:
        def missing():
            raise UndefinedVariable(name, self.kind)
        return self.get(name, missing)

    def __contains__(self, name: str) -> bool:
        return any(name in scope for scope in self._frames)

    def snapshot(self) -> Tuple[Dict[str, Any], ...]:
        """The live frame chain, outermost first."""
        return tuple(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def clear(self) -> None:
        self._frames = []

    def _scope_for(self, name: str) -> Dict[str, Any]:
        for scope in reversed(self._frames):
            if name in scope:
                return scope
        if not self._frames:
            raise RuntimeError(f"no active {self.kind} frame to bind `{name}' in")
        return self._frames[-1]

    def __repr__(self) -> str:
        names = [', '.join(scope.keys()) for scope in reversed(self._frames)]
        return f"<Variables {self.kind} frames={names!r}>"
