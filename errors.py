"""Exception taxonomy shared by the generation, edit and export endpoints.

Each class carries the HTTP status it is rendered with; `main.py` turns any
of them into a `{"error": message}` JSON body.
"""


class PresentationServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequestValidationError(PresentationServiceError):
    """Malformed input to an endpoint. Raised before any model call."""
    status_code = 400


class ModelError(PresentationServiceError):
    status_code = 500


class ModelInvocationError(ModelError):
    """The generative call itself failed or timed out."""


class ExtractionError(ModelError):
    """The model answered but no JSON payload could be recovered."""


class EmptyContentError(ExtractionError):
    """A payload was recovered but it holds no usable bullet points."""
