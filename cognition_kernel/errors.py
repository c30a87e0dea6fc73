"""Cognition kernel exceptions."""


class CognitionKernelError(Exception):
    """Base class for cognition kernel errors."""


class NamespaceViolation(CognitionKernelError):
    """A stage wrote or cited an atom outside its namespace contract."""


class UnknownEntityError(CognitionKernelError):
    """A referenced agent, location or scene is not in the world."""
