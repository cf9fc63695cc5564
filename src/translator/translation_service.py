"""Provider client translating batches of locale keys with Gemini or OpenAI."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from common.config import settings
from common.gpt_utils import clean_markdown_code_fences, parse_json_object
from common.string_utils import mask_api_key, truncate_for_logging
from translator.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_TRANSLATION_CONTEXT = "Friendly but professional administrative panel tone"
DEFAULT_TARGET_LANGUAGE = "Portuguese (Brazil)"
DEFAULT_PROJECT_NAME = "Software Application"
DEFAULT_MODELS = {"openai": "gpt-3.5-turbo", "gemini": "gemini-pro"}

FALLBACK_OPENAI_MODELS = ["gpt-3.5-turbo", "gpt-4", "gpt-4-turbo", "gpt-4o"]
FALLBACK_GEMINI_MODELS = ["gemini-1.5-flash", "gemini-pro", "gemini-1.5-pro"]

SUPPORTED_PROVIDERS = ("gemini", "openai")


def validate_api_key(api_key: Optional[str], provider: str = "gemini") -> str:
    """
    Reject missing or obviously malformed API keys before any request.

    Args:
        api_key: Key as entered by the user
        provider: Provider the key belongs to (named in the error)

    Returns:
        The key with surrounding whitespace removed

    Raises:
        ConfigurationError: If the key is empty or contains whitespace
    """
    field_name = f"{provider.upper()}_API_KEY"
    if not api_key or not api_key.strip():
        raise ConfigurationError(
            "No API Key found! Please add your Gemini or OpenAI key in Settings "
            "(GEMINI_API_KEY or OPENAI_API_KEY)."
        )

    api_key = api_key.strip()
    if any(char.isspace() for char in api_key):
        raise ConfigurationError(
            f"Invalid API Key found in {field_name}. It seems to contain spaces or "
            f"text. Please check Settings and paste ONLY the key."
        )
    return api_key


class KeyValueTranslator:
    """Sends one batch of (key, source text) pairs to a provider and maps keys to translations."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the translator.

        Args:
            timeout: Per-request timeout in seconds (defaults to settings)
            transport: Optional httpx transport for the Gemini REST API
        """
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._transport = transport

    async def translate_batch(
        self,
        keys: Sequence[str],
        source_texts: Sequence[str],
        context: Optional[str],
        api_key: str,
        provider: str = "gemini",
        model: Optional[str] = None,
        target_language: Optional[str] = None,
        project_name: Optional[str] = None,
        project_description: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Translate a batch of source texts.

        Args:
            keys: Dot-path keys of the batch
            source_texts: Source text for each key, same order as keys
            context: Free-text guidance from the user
            api_key: Provider API key
            provider: 'gemini' or 'openai'
            model: Model identifier (provider default when empty)
            target_language: Human readable target language name
            project_name: Name of the localized product
            project_description: Short description of the product

        Returns:
            Mapping of key to translated text for every key the model returned

        Raises:
            ConfigurationError: If the API key is malformed or the provider unknown
            ProviderError: If the provider rejects the request
            ModelJSONParsingError: If the response is not a JSON object
        """
        if len(keys) != len(source_texts):
            raise ValueError(
                f"keys and source_texts differ in length ({len(keys)} != {len(source_texts)})"
            )
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider '{provider}'. Use one of: {', '.join(SUPPORTED_PROVIDERS)}"
            )

        api_key = validate_api_key(api_key, provider)
        model = model or DEFAULT_MODELS[provider]
        language = target_language or DEFAULT_TARGET_LANGUAGE

        system_prompt = self._build_system_prompt(
            language,
            project_name or DEFAULT_PROJECT_NAME,
            project_description or "",
            context,
        )
        user_prompt = self._build_user_prompt(keys, source_texts)

        logger.info(
            f"Sending {len(keys)} keys to {model} ({provider}, key {mask_api_key(api_key)})"
        )

        if provider == "openai":
            content = await self._call_openai(api_key, model, system_prompt, user_prompt)
        else:
            content = await self._call_gemini(api_key, model, system_prompt, user_prompt)

        logger.debug(f"Received raw content: {truncate_for_logging(content, 200, 100)}")

        translations = self._parse_translation_response(content, keys)
        logger.info(f"Parsed {len(translations)}/{len(keys)} translations")
        return translations

    def _build_system_prompt(
        self,
        language: str,
        project_name: str,
        project_description: str,
        context: Optional[str],
    ) -> str:
        """
        Build the system instruction with the fixed localization rules.

        Args:
            language: Target language name
            project_name: Name of the localized product
            project_description: Optional product description
            context: Optional user supplied context

        Returns:
            System prompt text
        """
        description = f", which is {project_description}" if project_description else ""
        return (
            f"You are a professional software localization expert.\n"
            f"You will receive a JSON object where keys are the specific IDs and values "
            f"are the source text in English (or the source language).\n"
            f"Your task is to translate the source text into {language} with HIGH "
            f"FIDELITY to the software context.\n\n"
            f"### CRITICAL RULES:\n"
            f'1. **Preserve Case**: If the source is lowercase ("connect fail"), keep '
            f"the translation lowercase unless it violates grammar significantly. If it "
            f"is Title Case, use Title Case.\n"
            f"2. **Preserve Variables**: Do not translate or alter HTML tags, "
            f"placeholders like %s, {{0}}, {{name}}, or special tokens.\n"
            f"3. **Software Context**: This is for **{project_name}**{description}. "
            f"Treat specific terms related to this software as technical terms.\n"
            f"4. **Natural & Professional**: Use idiomatic {language}. Fix minor typos "
            f"in the source if the intent is clear.\n"
            f"5. **No Hallucinations**: Do not explain your logic. Return ONLY valid JSON.\n\n"
            f"### USER CONTEXT:\n"
            f'The user provided this additional context: "{context or DEFAULT_TRANSLATION_CONTEXT}"\n\n'
            f"Return ONLY the raw JSON object with all original keys and translated "
            f"values. No Markdown block quotes.\n"
        )

    def _build_user_prompt(
        self, keys: Sequence[str], source_texts: Sequence[str]
    ) -> str:
        """Serialize the batch as a JSON object of key to source text."""
        payload = {key: text for key, text in zip(keys, source_texts)}
        return json.dumps(payload, ensure_ascii=False, indent=2)

    async def _call_openai(
        self, api_key: str, model: str, system_prompt: str, user_prompt: str
    ) -> str:
        """
        Call the OpenAI Chat Completions API.

        Raises:
            ProviderError: On any API failure, with the HTTP status in the message
        """
        client = AsyncOpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.openai_temperature,
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"OpenAI Error ({e.status_code}): {e.message}", status_code=e.status_code
            ) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e
        finally:
            await client.close()

        if not response.choices:
            raise ProviderError("OpenAI API returned no choices in response")

        content = response.choices[0].message.content
        if not content:
            raise ProviderError(
                f"OpenAI API returned empty content "
                f"(finish_reason: {response.choices[0].finish_reason})"
            )
        return content

    async def _call_gemini(
        self, api_key: str, model: str, system_prompt: str, user_prompt: str
    ) -> str:
        """
        Call the Gemini generateContent REST endpoint.

        Raises:
            ProviderError: On a non-2xx response or a response without candidates
        """
        model_name = model if model.startswith("models/") else f"models/{model}"
        url = f"{GEMINI_API_BASE_URL}/{model_name}:generateContent"
        body = {
            "contents": [
                {"parts": [{"text": f"{system_prompt}\n\nInput JSON:\n{user_prompt}"}]}
            ],
            # Force JSON output for models that support it
            "generationConfig": {"responseMimeType": "application/json"},
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, json=body, headers={"x-goog-api-key": api_key}
                )
        except httpx.TimeoutException as e:
            raise ProviderError(f"Gemini request timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        if response.is_error:
            code, message = self._extract_gemini_error(response)
            logger.error(f"Gemini API error detail: {truncate_for_logging(response.text)}")
            raise ProviderError(f"Gemini Error ({code}): {message}", status_code=code)

        data = response.json()
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Gemini unexpected response: {truncate_for_logging(str(data))}")
            raise ProviderError("Invalid response from Gemini (No candidates)") from e

    @staticmethod
    def _extract_gemini_error(response: httpx.Response) -> tuple:
        """Pull (code, message) out of a Gemini error body."""
        try:
            error = response.json().get("error") or {}
        except (json.JSONDecodeError, AttributeError):
            error = {}
        code = error.get("code") or response.status_code
        message = error.get("message") or "Gemini API Error"
        return code, message

    def _parse_translation_response(
        self, content: str, keys: Sequence[str]
    ) -> Dict[str, str]:
        """
        Parse the model output into a key to translation mapping.

        Keys that were not requested and values that are not non-empty
        strings are dropped with a warning.

        Raises:
            ModelJSONParsingError: If the content is not a JSON object
        """
        parsed = parse_json_object(clean_markdown_code_fences(content))

        requested = set(keys)
        translations: Dict[str, str] = {}
        for key, value in parsed.items():
            if key not in requested:
                logger.warning(f"⚠️  Ignoring unrequested key in response: {key}")
                continue
            if not isinstance(value, str) or not value:
                logger.warning(f"⚠️  Ignoring non-text translation for key: {key}")
                continue
            translations[key] = value

        missing = len(requested) - len(translations)
        if missing:
            logger.warning(f"⚠️  Model returned no usable translation for {missing} keys")
        return translations


async def fetch_openai_models(api_key: Optional[str]) -> List[str]:
    """
    List GPT models available to an OpenAI key.

    Returns:
        Sorted model ids containing 'gpt', a fallback list when the request
        fails, or an empty list when no key is given
    """
    if not api_key:
        return []
    client = AsyncOpenAI(api_key=api_key.strip(), max_retries=0)
    try:
        page = await client.models.list()
        return sorted(model.id for model in page.data if "gpt" in model.id)
    except openai.APIError as e:
        logger.warning(f"⚠️  Failed to fetch OpenAI models, using fallback list: {e}")
        return list(FALLBACK_OPENAI_MODELS)
    finally:
        await client.close()


async def fetch_gemini_models(
    api_key: Optional[str], transport: Optional[httpx.AsyncBaseTransport] = None
) -> List[str]:
    """
    List Gemini models available to a Gemini key.

    Returns:
        Sorted model names containing 'gemini' without the 'models/' prefix,
        a fallback list when the request fails, or an empty list when no key
        is given
    """
    if not api_key:
        return []
    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as client:
            response = await client.get(
                f"{GEMINI_API_BASE_URL}/models",
                headers={"x-goog-api-key": api_key.strip()},
            )
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
    except (httpx.HTTPError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️  Failed to fetch Gemini models, using fallback list: {e}")
        return list(FALLBACK_GEMINI_MODELS)

    names = [
        model["name"].replace("models/", "")
        for model in data.get("models", [])
        if "gemini" in model.get("name", "").lower()
    ]
    return sorted(names)
