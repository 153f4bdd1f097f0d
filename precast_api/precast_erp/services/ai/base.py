from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Iterable, Optional

from precast_erp.core.errors import AIServiceError, NotFoundError, ValidationFailedError
from precast_erp.services.ai.client import AIClient, AIRequestError

logger = logging.getLogger(__name__)


def camel(name: str) -> str:
    """snake_case -> camelCase, the key style of the AI API."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class BaseAIService:
    """
    Common plumbing for the per-module AI services.

    Subclasses build a payload with `payload`, hand it to one AIClient helper
    through `_call` and reshape the answer with `pick`.
    """

    def __init__(self, client: AIClient) -> None:
        self.client = client

    async def _call(self, request: Awaitable[Any], failure: str) -> Any:
        """Await an AI request; any failure becomes AIServiceError(failure)."""
        try:
            return await request
        except AIRequestError as exc:
            logger.error("%s: %s", failure, exc)
            raise AIServiceError(failure, details={"upstream_status": exc.status_code}) from exc

    @staticmethod
    def payload(model_type: Optional[str] = None, **fields: Any) -> dict[str, Any]:
        """
        Request body with camelCase keys, tagged with `modelType` when given.
        None values are dropped.
        """
        body: dict[str, Any] = {camel(k): v for k, v in fields.items() if v is not None}
        if model_type:
            body["modelType"] = model_type
        return body

    @staticmethod
    def pick(result: Any, keys: Iterable[str], aliases: Optional[dict[str, str]] = None) -> dict[str, Any]:
        """
        Select named fields from an AI result. Each output key is read from its
        camelCase form unless `aliases` names the response key. Missing keys
        come back as None.
        """
        source = result if isinstance(result, dict) else {}
        aliases = aliases or {}
        return {key: source.get(aliases.get(key, camel(key))) for key in keys}

    # Public method names reachable through `run`.
    actions: tuple[str, ...] = ()

    # PUBLIC_INTERFACE
    async def run(self, action: str, params: dict[str, Any]) -> Any:
        """
        Invoke the AI method named by `action` (kebab or snake case) with the
        matching keys of `params`.
        """
        name = action.replace("-", "_")
        if name not in self.actions:
            raise NotFoundError(f"Unknown AI action: {action}")
        method = getattr(self, name)
        signature = inspect.signature(method)
        kwargs = {k: v for k, v in params.items() if k in signature.parameters}
        missing = [
            p.name
            for p in signature.parameters.values()
            if p.default is inspect.Parameter.empty and p.name not in kwargs
        ]
        if missing:
            raise ValidationFailedError(f"Missing required fields: {', '.join(missing)}")
        return await method(**kwargs)
