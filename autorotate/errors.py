"""
Exception types raised inside the auto-rotation core.

Callers of the public service never see these: rotation selection and
provisioning catch them and degrade to "no rotation".
"""


class AutoRotateError(Exception):
    """Base class for auto-rotation failures."""
    pass


class CodecError(AutoRotateError):
    """Raised when an image cannot be decoded or encoded."""
    pass


class RecognitionError(AutoRotateError):
    """Raised when the recognition engine fails on a bitmap."""
    pass
