"""Custom exception hierarchy for nodeform.

All nodeform-specific exceptions inherit from NodeformError, enabling
callers to catch every provisioning failure with a single except clause.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path


class NodeformError(Exception):
    """Base exception for all nodeform errors."""


class ConfigurationError(NodeformError):
    """Raised for invalid configuration or missing required settings."""


class TemplateError(NodeformError):
    """Raised when a profile template cannot be rendered or converted."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"failed to render {path}: {reason}")


class PublishError(NodeformError):
    """Raised when user data cannot be published to object storage."""


class StackError(NodeformError):
    """Base for failures reported by the stack primitive."""

    def __init__(self, stack_name: str, reason: str) -> None:
        self.stack_name = stack_name
        self.reason = reason
        super().__init__(f"stack {stack_name}: {reason}")


class StackApplyError(StackError):
    """Raised when a create or update request is rejected."""


class StackWaitError(StackError):
    """Raised when a stack settles in a failed or rolled back state."""


class StackTimeoutError(StackWaitError):
    """Raised when a stack does not converge before the deadline."""

    def __init__(self, stack_name: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(stack_name, f"timed out after {timeout:.0f}s waiting for convergence")


class StackDeleteError(StackError):
    """Raised when a stack cannot be deleted."""


class ScalingError(NodeformError):
    """Raised when a node pool cannot be drained."""


class ProvisioningError(NodeformError):
    """Raised when one or more node pools failed to provision.

    The message lists every failing pool; ``failures`` keeps the
    original exception per pool name.
    """

    def __init__(self, failures: Mapping[str, Exception]) -> None:
        self.failures = dict(failures)
        super().__init__(
            ", ".join(
                f"failed to provision node pool {name}: {error}"
                for name, error in self.failures.items()
            )
        )
