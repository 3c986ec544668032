"""
Structured extraction of summary, key points and action items from a transcript.
"""

import json
import logging
import time
from typing import Any, Optional

from .error_handling import ExtractionFailed
from .models import StructuredExtraction

logger = logging.getLogger(__name__)


EXTRACTION_SYSTEM_PROMPT = """You are Echo Notes AI - an intelligent note assistant.
Given a voice note transcription, analyze it and create:
1. A concise summary (2-4 sentences capturing the essence)
2. 3-6 key points (main ideas or important information)
3. 2-5 clear action items (specific tasks or next steps)

Format your response as JSON with this exact structure:
{
  "summary": "your summary here",
  "key_points": ["point 1", "point 2", "point 3"],
  "action_items": ["action 1", "action 2"]
}

Be concise, clear, and actionable. If there are no clear action items, still provide thoughtful suggestions."""


class ExtractionStage:
    """
    Turns transcript text into a StructuredExtraction using a chat model.

    The model is asked for a single JSON object. Missing or malformed fields
    in that object default to empty values; a response that cannot be read
    as a JSON object at all raises ExtractionFailed.
    """

    def __init__(self, client: Optional[Any], model_name: str = "gpt-4o-mini", temperature: float = 0.7):
        self.client = client
        self.model_name = model_name
        self.temperature = temperature
        self._is_processing = False

    def is_available(self) -> bool:
        return self.client is not None

    def is_processing(self) -> bool:
        """Check if extraction is currently in progress."""
        return self._is_processing

    def build_messages(self, transcript: str) -> list[dict]:
        """The fixed instruction contract plus the transcript verbatim."""
        return [
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {"role": "user", "content": transcript},
        ]

    def extract(self, transcript: str) -> StructuredExtraction:
        """
        Extract structured fields from a transcript.

        Args:
            transcript: Transcript text, possibly empty

        Returns:
            StructuredExtraction with defaulted fields where the model omitted them

        Raises:
            ExtractionFailed: If the provider call fails or the response is not a JSON object
        """
        if self.client is None:
            raise ExtractionFailed(
                "Language model provider is not configured. Set OPENAI_API_KEY."
            )

        self._is_processing = True
        start = time.time()
        try:
            logger.info(f"Extracting structured notes with {self.model_name}")
            completion = self.client.chat.completions.create(
                model=self.model_name,
                messages=self.build_messages(transcript),
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"Extraction request failed: {e}")
            raise ExtractionFailed(str(e) or type(e).__name__, original_exception=e)
        finally:
            self._is_processing = False

        content = _message_content(completion)
        extraction = self.parse_response(content)
        logger.info(
            f"Extraction complete in {time.time() - start:.1f}s: "
            f"{len(extraction.key_points)} key points, {len(extraction.action_items)} action items"
        )
        return extraction

    def parse_response(self, response_text: Optional[str]) -> StructuredExtraction:
        """Parse the raw model response into a StructuredExtraction."""
        if response_text is None or not response_text.strip():
            response_text = "{}"

        try:
            document = json.loads(response_text)
        except json.JSONDecodeError as e:
            logger.debug(f"Response text: {response_text}")
            raise ExtractionFailed(f"Invalid JSON in language model response: {e}", original_exception=e)

        if not isinstance(document, dict):
            raise ExtractionFailed(
                f"Language model returned JSON {type(document).__name__}, expected an object"
            )

        return StructuredExtraction.from_document(document)


def _message_content(completion: Any) -> Optional[str]:
    try:
        return completion.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as e:
        raise ExtractionFailed(f"Malformed completion from language model: {e}", original_exception=e)
