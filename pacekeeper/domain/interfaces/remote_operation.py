"""Contract for a single remote API call driven by the retry coordinator.

A remote operation is any zero-argument coroutine function that performs one
call and reports a tagged outcome instead of raising for expected failures.
Transport details stay with the caller; bind arguments with a closure or
``functools.partial``.
"""

from typing import Awaitable, Callable

from pacekeeper.domain.models.outcomes import OperationOutcome

RemoteOperation = Callable[[], Awaitable[OperationOutcome]]
