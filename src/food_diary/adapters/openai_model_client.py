"""OpenAI-compatible chat completions client for the hosted model."""

from collections.abc import Sequence
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from food_diary.domain.errors import (
    CredentialInvalidError,
    GatewayError,
    ModelUnavailableError,
    TransportError,
)
from food_diary.services.gateway import ModelClient, Turn

CREDENTIAL_INVALID_MESSAGE = (
    "The API key is invalid or billing is not enabled. "
    "Select a key from a project with billing enabled."
)
MODEL_UNAVAILABLE_MESSAGE = (
    "The model call failed. Select a valid API key and try again."
)

_UNAUTHORIZED = 401
_FORBIDDEN = 403
_NOT_FOUND = 404
_BAD_REQUEST = 400


@dataclass
class OpenAIModelClient(ModelClient):
    """Model client backed by an OpenAI-compatible chat completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout: float
    ) -> "OpenAIModelClient":
        """Create a client without SDK-level retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
            )
        )

    async def generate_json(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        schema: dict[str, object],
        schema_name: str,
    ) -> str | None:
        """Request output constrained to a JSON schema."""
        return await self._complete(
            model=model,
            messages=[_to_message(turn) for turn in contents],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                },
            },
        )

    async def generate_text(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str,
    ) -> str | None:
        """Request free text under a system instruction."""
        messages = [{"role": "system", "content": system_instruction}]
        messages.extend(_to_message(turn) for turn in contents)
        return await self._complete(model=model, messages=messages)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()

    async def _complete(self, **request_payload: object) -> str | None:
        try:
            response = await self.client.chat.completions.create(**request_payload)
        except openai.APIError as exc:
            raise classify_api_error(exc) from exc
        if not response.choices:
            return None
        return response.choices[0].message.content


def classify_api_error(exc: openai.APIError) -> GatewayError:
    """Map an SDK error onto the gateway error taxonomy."""
    if isinstance(exc, openai.APIStatusError):
        status_code = exc.status_code
        if status_code in {_UNAUTHORIZED, _FORBIDDEN}:
            return CredentialInvalidError(CREDENTIAL_INVALID_MESSAGE)
        if status_code == _NOT_FOUND:
            return ModelUnavailableError(MODEL_UNAVAILABLE_MESSAGE)
        # Some providers report a malformed key as a plain bad request.
        if status_code == _BAD_REQUEST and "api key" in exc.message.lower():
            return CredentialInvalidError(CREDENTIAL_INVALID_MESSAGE)
        return TransportError(f"Model service error ({status_code}): {exc.message}")
    return TransportError(exc.message or "Could not reach the model service.")


def _to_message(turn: Turn) -> dict[str, object]:
    """Convert a role/parts turn into a chat completions message."""
    role = "assistant" if turn["role"] == "model" else "user"
    parts = turn["parts"]
    if all("text" in part for part in parts):
        return {"role": role, "content": "\n".join(part["text"] for part in parts)}
    content: list[dict[str, object]] = []
    for part in parts:
        if "inline_data" in part:
            inline = part["inline_data"]
            content.append(
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:{inline['mime_type']};base64,{inline['data']}"
                    },
                }
            )
        else:
            content.append({"type": "text", "text": part["text"]})
    return {"role": role, "content": content}
