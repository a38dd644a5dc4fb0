"""
Authorization hooks consulted before every dispatch and constant lookup.
"""
from typing import Any, Iterable, Optional

from interpretr.interpretr_datatypes import Node


def api_method(func):
    """A decorator to explicitly mark host methods as safe for scripts."""
    func._is_interpretr_api = True
    return func


def is_api_method(member: Any) -> bool:
    # The mark may sit on the bound method or the underlying function
    if getattr(member, '_is_interpretr_api', False):
        return True
    func = getattr(member, '__func__', None)
    return func is not None and getattr(func, '_is_interpretr_api', False)


class Capabilities:
    """The default authorization point: every call and lookup is allowed.

    Subclasses override `authorize` to veto; a falsy answer makes the
    evaluator raise `AuthorizationDenied` before anything is invoked.
    """
    def authorize(self, receiver: Any, member_name: str, node: Optional[Node]) -> bool:
        return True


class RestrictedCapabilities(Capabilities):
    """Deny private members, and anything outside `allowed` when it is given.

    Members marked with `@api_method` on the receiver are always allowed
    unless they are private.
    """
    def __init__(self, allowed: Optional[Iterable[str]] = None):
        self.allowed = None if allowed is None else frozenset(allowed)

    def authorize(self, receiver: Any, member_name: str, node: Optional[Node]) -> bool:
        if member_name.startswith('_'):
            return False
        if self.allowed is None or member_name in self.allowed:
            return True
        return is_api_method(getattr(receiver, member_name, None))
