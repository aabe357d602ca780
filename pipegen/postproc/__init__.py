"""Post-processing of model output."""

from .sanitizer import MalformedEnvelopeError, ResponseSanitizer
from .security import SecretPolicy

__all__ = ["MalformedEnvelopeError", "ResponseSanitizer", "SecretPolicy"]
