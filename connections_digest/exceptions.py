"""Digest job exceptions.

DigestConfigurationError fails a run before any query or dispatch.
DigestJobError is raised after dispatch when any recipient reported an
error; it carries the accumulated run result for the scheduler to record.
"""


class DigestError(Exception):
    """Base class for digest job failures."""


class DigestConfigurationError(DigestError):
    pass


class DigestJobError(DigestError):
    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


class DeliveryError(DigestError):
    """A transport could not hand a rendered message to its relay."""
