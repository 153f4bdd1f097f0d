"""
Wrappers around the external AI API.

`AIClient` performs the HTTP calls; one `BaseAIService` subclass per business
module shapes the request payloads and the results.
"""

from .client import AIClient, AIRequestError  # noqa: F401
