import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from langfuse import Langfuse

from app.core.config import Settings

logger = logging.getLogger(__name__)


class ObservabilityService:
    """Langfuse tracing for workflow decisions; a no-op when disabled."""

    def __init__(self, settings: Settings):
        self._client: Langfuse | None = None
        if settings.langfuse_enabled:
            self._client = Langfuse(
                public_key=settings.langfuse_public_key,
                secret_key=settings.langfuse_secret_key,
                base_url=settings.langfuse_base_url,
            )
            logger.info("Langfuse tracing enabled at %s", settings.langfuse_base_url)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @contextmanager
    def trace(
        self,
        name: str,
        input_data: Any | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[Any]:
        if not hasattr(self._client, "start_as_current_observation"):
            yield None
            return

        with self._client.start_as_current_observation(
            as_type="span",
            name=name,
            input=input_data,
            metadata=metadata,
        ) as span:
            yield span

    def annotate(self, span: Any, output_data: Any) -> None:
        if hasattr(span, "update"):
            span.update(output=output_data)

    def flush(self) -> None:
        if self._client is not None:
            self._client.flush()
