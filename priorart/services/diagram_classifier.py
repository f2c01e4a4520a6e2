"""
Diagram classifier adapter (OpenAI vision, JSON mode).

Reads one rendered diagram page and returns its type, a one-paragraph
semantic summary and the components, connections and labels it shows.
The classifier never raises: any failure yields the "unknown" result with
confidence 0, which keeps the diagram out of the vector index.
"""

import base64
import json
import logging
from typing import Any, Dict, Optional

from openai import OpenAI
from pydantic import ValidationError

from priorart import config
from priorart.models.records import DiagramType
from priorart.services.schemas import DiagramClassification

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = """You are analysing a single sheet of patent drawings.

Classify the drawing and describe it for prior-art search.

Return JSON with exactly these keys:
{
  "type": "flowchart" | "block_diagram" | "mechanical" | "architecture" | "unknown",
  "semanticSummary": "<2-4 sentences describing what the drawing shows and how the parts interact>",
  "components": ["<labelled element>", ...],
  "connections": ["<element A> -> <element B>: <relationship>", ...],
  "labels": ["<reference numerals or text labels visible>", ...],
  "confidence": <0.0-1.0, how sure you are of the reading>
}

Use "unknown" with low confidence when the sheet is blank, illegible or not a drawing."""


def unknown_classification(summary: str = "Diagram could not be classified.") -> Dict[str, Any]:
    return {
        "type": DiagramType.UNKNOWN.value,
        "semantic_summary": summary,
        "components": [],
        "connections": [],
        "labels": [],
        "confidence": 0.0,
    }


class DiagramClassifier:
    """
    Usage:
        classifier = DiagramClassifier()
        result = classifier.classify(png_bytes)
        # {"type": "flowchart", "semantic_summary": "...", "confidence": 0.82, ...}
    """

    def __init__(self, model: str = config.VISION_MODEL, client: Optional[OpenAI] = None):
        self.model = model
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY environment variable is not set")
            self._client = OpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    def classify(self, image_bytes: bytes, mime_type: str = "image/png") -> Dict[str, Any]:
        if not image_bytes:
            return unknown_classification("Empty diagram image.")

        try:
            encoded = base64.b64encode(image_bytes).decode("ascii")
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": CLASSIFY_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                    ],
                }],
                response_format={"type": "json_object"},
                temperature=0.1,
            )
            parsed = DiagramClassification.model_validate(
                json.loads(response.choices[0].message.content)
            )
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Diagram classifier returned invalid output: {e}")
            return unknown_classification("Diagram classifier returned invalid output.")
        except Exception as e:
            logger.error(f"Diagram classification failed: {e}")
            return unknown_classification()

        result = parsed.model_dump()
        result["type"] = DiagramType.coerce(result["type"]).value
        return result
