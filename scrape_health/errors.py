"""Domain errors raised by the pipeline stages.

``StoreUnavailable`` and ``PublishFailed`` abort a run.  ``NotifyFailed`` is
only ever logged by the orchestrator.
"""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class StoreUnavailable(PipelineError):
    """The record store could not return a complete result set."""


class PublishFailed(PipelineError):
    """The monitoring sink rejected the metric batch or was unreachable."""


class NotifyFailed(PipelineError):
    """An operator notification could not be delivered."""
