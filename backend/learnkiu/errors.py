from __future__ import annotations


class LearnKIUError(Exception):
	"""Base failure carrying a stable, user-facing message and an HTTP status."""

	status_code: int = 500
	default_message: str = "Unexpected error"

	def __init__(self, message: str | None = None) -> None:
		self.message = message or self.default_message
		super().__init__(self.message)


class ValidationError(LearnKIUError):
	status_code = 400
	default_message = "Invalid input"


class AuthError(LearnKIUError):
	status_code = 401
	default_message = "Could not validate credentials"


class NoContentError(LearnKIUError):
	status_code = 404
	default_message = "No content found"


class NoTranscriptContent(NoContentError):
	default_message = "No readable transcript content found"


class ExternalServiceError(LearnKIUError):
	status_code = 502
	default_message = "External service request failed"


class AssessmentGenerationFailed(ExternalServiceError):
	default_message = "Failed to generate assessment. Please try again."
