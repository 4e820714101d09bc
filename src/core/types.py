"""Type aliases shared by the guards, policies and middlewares."""

from collections.abc import Awaitable
from typing import Any, TypeAlias

# HTTP headers as seen by guards and middlewares
Headers: TypeAlias = dict[str, str]

# Free-form options attached to a guard enhancer (e.g. {"roles": [...]})
GuardOptions: TypeAlias = dict[str, Any]

# Result of a guard or a policy: immediate or pending
MaybeAwaitableBool: TypeAlias = bool | Awaitable[bool]
