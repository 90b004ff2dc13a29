"""Expense classification through the Gemini generateContent API."""

import os
import json
import time
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from classification.models import Classification
from shared.exceptions import ClassificationUnavailable

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash-preview-05-20"

SYSTEM_PROMPT = (
    "Eres un asistente financiero experto. Tu tarea es analizar la descripción de un gasto "
    "y asignar una 'category' (categoría general en español, ej: 'Comida', 'Transporte', "
    "'Entretenimiento', 'Vivienda', 'Salud', 'Educación', 'Servicios', 'Otros') y una "
    "'classification' (clasificación detallada en español, ej: 'Restaurante', 'Gasolina', "
    "'Cine', 'Alquiler', 'Supermercado'). La respuesta DEBE ser un objeto JSON con las claves "
    "'category' y 'classification'."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "category": {
            "type": "STRING",
            "description": "La categoría general del gasto (ej: Comida)"
        },
        "classification": {
            "type": "STRING",
            "description": "La clasificación detallada del gasto (ej: Restaurante)"
        }
    },
    "required": ["category", "classification"]
}


class ClassificationService:
    """Client for the generative-language classification endpoint."""

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize classification service.

        Args:
            http_client: Optional preconfigured httpx client
            sleep: Function used to wait between attempts
        """
        self.api_key = os.environ.get('GEMINI_API_KEY', '')
        self.model = os.environ.get('GEMINI_MODEL', DEFAULT_MODEL)
        self.max_retries = int(os.environ.get('CLASSIFIER_MAX_RETRIES', '3'))
        self.initial_delay = float(os.environ.get('CLASSIFIER_INITIAL_DELAY', '1.0'))
        timeout = float(os.environ.get('CLASSIFIER_TIMEOUT', '10'))

        self.client = http_client or httpx.Client(timeout=timeout)
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return GEMINI_API_URL.format(model=self.model)

    def classify(self, description: str) -> Classification:
        """
        Classify an expense description.

        Never raises: when the API is unavailable or answers with something
        unusable, the fallback "No Categorizado" / "Manual" is returned.

        Args:
            description: Expense description

        Returns:
            Classification
        """
        try:
            response = self._post_with_backoff(self._build_payload(description))
            result = self._parse_response(response)
            logger.info(f"Classified expense as {result.category} / {result.classification}")
            return result
        except ClassificationUnavailable as e:
            logger.warning(f"Classification unavailable, using fallback: {e.message}")
            return Classification.fallback()

    def _build_payload(self, description: str) -> Dict[str, Any]:
        user_query = f'Gasto: "{description}". Categoriza y clasifica este gasto.'

        return {
            "contents": [{"parts": [{"text": user_query}]}],
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA
            }
        }

    def _post_with_backoff(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST the payload, retrying transport and HTTP failures.

        Waits initial_delay, then doubles it before each further attempt,
        for at most max_retries retries.

        Raises:
            ClassificationUnavailable: After the last attempt fails
        """
        attempts = self.max_retries + 1
        retryer = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.initial_delay),
            retry=retry_if_exception_type((httpx.HTTPError, ValueError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            return retryer(self._post, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Classification failed after {attempts} attempts: {e}")
            raise ClassificationUnavailable(
                f"Classification failed after {attempts} attempts: {e}"
            )

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.post(
            self.endpoint,
            params={'key': self.api_key},
            json=payload
        )
        response.raise_for_status()
        return response.json()


    @staticmethod
    def _parse_response(response: Dict[str, Any]) -> Classification:
        """
        Extract the JSON classification from a generateContent response.

        Raises:
            ClassificationUnavailable: If the payload is empty or malformed
        """
        try:
            text = response['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            raise ClassificationUnavailable("Empty or unstructured API response")

        if not text:
            raise ClassificationUnavailable("Empty or unstructured API response")

        try:
            return Classification.model_validate(json.loads(text))
        except (TypeError, ValueError, PydanticValidationError) as e:
            raise ClassificationUnavailable(f"Malformed classification payload: {str(e)}")
