from __future__ import annotations

import base64
import logging

from safepost.core.config import get_settings
from safepost.core.errors import (
    EngineContractViolation,
    EngineTimeout,
    EngineUnavailable,
    ProviderConfigError,
)
from safepost.domain.types import ImageAttachment

logger = logging.getLogger(__name__)


class GeminiVertexProvider:
    def __init__(self, request_id: str | None = None) -> None:
        self._settings = get_settings()
        self._request_id = request_id

    def _split_messages(self, messages: list[dict]) -> tuple[str, str]:
        # Gemini takes system guidance separately from the user turn.
        system_lines: list[str] = []
        other_lines: list[str] = []
        for msg in messages:
            role = msg.get("role", "user")
            content = msg.get("content", "")
            if role == "system":
                system_lines.append(content)
            else:
                other_lines.append(content)
        return "\n\n".join(system_lines), "\n\n".join(other_lines)

    def _validate_config(self) -> tuple[str, str, str]:
        # Fail fast to avoid confusing downstream SDK errors.
        project = self._settings.google_cloud_project
        location = self._settings.google_cloud_location
        model = self._settings.gemini_model
        missing = []
        if not project:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not location:
            missing.append("GOOGLE_CLOUD_LOCATION")
        if not model:
            missing.append("GEMINI_MODEL")
        if missing:
            raise ProviderConfigError(
                f"Vertex config missing: set {', '.join(missing)} in .env."
            )
        return project, location, model

    async def complete(
        self,
        messages: list[dict],
        *,
        image: ImageAttachment | None = None,
        temperature: float | None = None,
    ) -> str:
        project, location, model_name = self._validate_config()

        try:
            from vertexai import init
            from vertexai.generative_models import GenerationConfig, GenerativeModel, Part
            from google.auth.exceptions import DefaultCredentialsError, RefreshError
            from google.api_core.exceptions import (
                DeadlineExceeded,
                GoogleAPICallError,
                PermissionDenied,
                Unauthenticated,
            )
        except Exception as exc:  # pragma: no cover - import errors are environment-specific
            raise ProviderConfigError(
                "Vertex AI SDK not available. Install google-cloud-aiplatform."
            ) from exc

        system_text, user_text = self._split_messages(messages)
        parts = [Part.from_text(user_text)]
        if image is not None:
            parts.append(
                Part.from_data(data=base64.b64decode(image.data_base64), mime_type=image.mime_type)
            )
        config = GenerationConfig(
            temperature=self._settings.engine_temperature if temperature is None else temperature,
            response_mime_type="application/json",
        )

        try:
            logger.info("vertex_complete_start request_id=%s model=%s", self._request_id, model_name)
            init(project=project, location=location)
            model = GenerativeModel(model_name, system_instruction=system_text or None)
            response = await model.generate_content_async(parts, generation_config=config)
        except (DefaultCredentialsError, RefreshError, PermissionDenied, Unauthenticated) as exc:
            logger.warning("vertex_complete_auth_error request_id=%s", self._request_id)
            raise EngineUnavailable(
                "Vertex auth error: run `gcloud auth application-default login`."
            ) from exc
        except DeadlineExceeded as exc:
            logger.warning("vertex_complete_deadline request_id=%s", self._request_id)
            raise EngineTimeout("Vertex request exceeded its deadline.") from exc
        except (GoogleAPICallError, OSError) as exc:
            logger.error("vertex_complete_error request_id=%s", self._request_id)
            raise EngineUnavailable("Vertex AI request failed.") from exc

        try:
            text = response.text
        except ValueError as exc:
            # Blocked or empty candidates carry no text part.
            raise EngineContractViolation("Vertex response contained no text.") from exc
        logger.info("vertex_complete_done request_id=%s chars=%s", self._request_id, len(text))
        return text
