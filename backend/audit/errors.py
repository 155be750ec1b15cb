"""
Error taxonomy for audit sessions.

NavigationError, ScanTimeout, ExtractionError and UnclassifiedError end a
session. InteractionNotFound and ReportRenderTimeout are soft: the session
records them as SoftFailure values and carries on.
"""


class AuditError(Exception):
    @property
    def kind(self) -> str:
        return type(self).__name__


class NavigationError(AuditError):
    pass


class ScanTimeout(AuditError):
    pass


class InteractionNotFound(AuditError):
    pass


class ReportRenderTimeout(AuditError):
    pass


class ExtractionError(AuditError):
    pass


class UnclassifiedError(AuditError):
    pass


class PdfRenderError(AuditError):
    pass
